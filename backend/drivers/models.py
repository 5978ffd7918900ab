from django.db import models
from django.utils import timezone
from django.conf import settings

User = settings.AUTH_USER_MODEL


class VehicleClass(models.TextChoices):
    CAR = 'car', 'Car'
    MOTO = 'moto', 'Moto'
    AUTO = 'auto', 'Auto'


class DriverProfile(models.Model):
    """Driver-specific details, availability and earnings counters"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]
    
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='driver_profile')
    
    # Vehicle details
    vehicle_number = models.CharField(max_length=20, unique=True)
    vehicle_color = models.CharField(max_length=30, blank=True, default='')
    vehicle_capacity = models.PositiveSmallIntegerField(default=1)
    vehicle_class = models.CharField(max_length=10, choices=VehicleClass.choices)
    
    # Status & location
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='inactive')
    current_latitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    current_longitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    last_location_update = models.DateTimeField(default=timezone.now)

    # Earnings counters (reset lazily, see drivers.services.refresh_earnings_window)
    today_earnings = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    trips_today = models.PositiveIntegerField(default=0)
    weekly_earnings = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    weekly_trips = models.PositiveIntegerField(default=0)
    total_trips = models.PositiveIntegerField(default=0)
    rating = models.DecimalField(max_digits=2, decimal_places=1, default=4.5)
    avg_ride_time = models.PositiveIntegerField(default=25)  # minutes
    online_hours = models.PositiveIntegerField(default=0)
    last_earnings_reset = models.DateTimeField(default=timezone.now)
    last_weekly_reset = models.DateTimeField(default=timezone.now)
    
    class Meta:
        db_table = 'driver_profiles'
        indexes = [
            models.Index(fields=['status', 'vehicle_class'], name='driver_status_class_idx'),
            models.Index(fields=['current_latitude', 'current_longitude'], name='driver_location_idx'),
        ]
        
    def __str__(self):
        return f"{self.user.username} - {self.vehicle_number}"
