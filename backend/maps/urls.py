from django.urls import path
from . import views

app_name = 'maps'

urlpatterns = [
    path('coordinates/', views.coordinates, name='coordinates'),
    path('distance-time/', views.distance_time, name='distance-time'),
    path('suggestions/', views.suggestions, name='suggestions'),
]
