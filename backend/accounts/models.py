from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Extended user model with role selection"""
    ROLE_CHOICES = [
        ('user', 'Rider'),
        ('driver', 'Driver'),
    ]
    
    # Role & basic info
    role = models.CharField(max_length=10, choices=ROLE_CHOICES)
    phone_number = models.CharField(max_length=15, blank=True, default='')

    # Rider statistics
    total_rides = models.PositiveIntegerField(default=0)
    total_spent = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    
    class Meta:
        db_table = 'users'

    @property
    def is_rider(self) -> bool:
        return self.role == 'user'

    @property
    def is_driver(self) -> bool:
        return self.role == 'driver'

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username
        
    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
