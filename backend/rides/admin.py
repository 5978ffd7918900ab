"""Tells what to show in the Django admin interface for rides app"""

from django.contrib import admin
from .models import Ride, RideOffer

@admin.register(Ride)
class RideAdmin(admin.ModelAdmin):
    """Ride admin"""
    list_display = ['id', 'rider', 'driver', 'vehicle_class', 'status', 'payment_status', 'fare', 'created_at']
    list_filter = ['status', 'payment_status', 'vehicle_class', 'created_at']
    search_fields = ['rider__username', 'driver__username', 'pickup', 'destination']
    readonly_fields = ['otp', 'created_at', 'accepted_at', 'started_at', 'ended_at', 'cancelled_at']
    date_hierarchy = 'created_at'


@admin.register(RideOffer)
class RideOfferAdmin(admin.ModelAdmin):
    list_display = ("ride", "driver", "status", "sent_at", "responded_at")
    list_filter = ("status",)
    search_fields = ("ride__id", "driver__username")
