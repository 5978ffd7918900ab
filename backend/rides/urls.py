from django.urls import path
from . import views

app_name = 'rides'

urlpatterns = [
    path('', views.rides, name='rides'),
    path('fare/', views.fare_estimate, name='fare-estimate'),
    path('current/', views.current_rides, name='current-rides'),
    path('<int:ride_id>/', views.ride_detail, name='ride-detail'),

    # Rider actions
    path('<int:ride_id>/cancel/', views.cancel_ride, name='cancel-ride'),
    path('<int:ride_id>/rate/', views.rate_ride, name='rate-ride'),
    path('<int:ride_id>/pay/', views.pay_ride, name='pay-ride'),

    # Driver actions
    path('<int:ride_id>/accept/', views.accept_ride, name='accept-ride'),
    path('<int:ride_id>/start/', views.start_ride, name='start-ride'),
    path('<int:ride_id>/end/', views.end_ride, name='end-ride'),
]
