from django.contrib import admin
from drivers.models import DriverProfile


@admin.register(DriverProfile)
class DriverProfileAdmin(admin.ModelAdmin):
    """Admin panel for managing Driver Profiles"""

    list_display = [
        "user",
        "vehicle_number",
        "vehicle_class",
        "status",
        "rating",
        "today_earnings",
        "total_trips",
        "last_location_update",
    ]

    list_filter = [
        "status",
        "vehicle_class",
    ]

    search_fields = [
        "user__username",
        "vehicle_number",
    ]

    readonly_fields = [
        "last_location_update",
        "last_earnings_reset",
        "last_weekly_reset",
    ]

    ordering = ("user__username",)
