from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Authentication endpoints (at /api/auth/)
    path('api/auth/', include('accounts.urls')),  # register, login, refresh

    # Driver APIs (profile, status, location, stats, earnings, history)
    path('api/driver/', include('drivers.urls')),

    # Rides endpoints (at /api/rides/)
    path('api/rides/', include('rides.urls')),

    # Rider wallet (at /api/wallet/)
    path('api/wallet/', include('wallets.urls')),

    # Geocoding, distance/time and autocomplete (at /api/maps/)
    path('api/maps/', include('maps.urls')),
]
