from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from accounts.models import User


@admin.register(User)
class AccountAdmin(BaseUserAdmin):
    """Riders show their wallet, drivers their vehicle and duty status."""

    list_display = (
        "username",
        "role",
        "phone_number",
        "total_rides",
        "total_spent",
        "wallet_balance",
        "vehicle",
        "duty_status",
    )
    list_filter = ("role", "is_active")
    list_select_related = ("wallet", "driver_profile")
    search_fields = ("username", "phone_number", "driver_profile__vehicle_number")
    ordering = ("-date_joined",)

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Ride activity", {"fields": ("role", "phone_number", "total_rides", "total_spent")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Ride activity", {"fields": ("role", "phone_number")}),
    )
    readonly_fields = ("total_rides", "total_spent")

    @admin.display(description="Wallet")
    def wallet_balance(self, obj):
        wallet = getattr(obj, "wallet", None)
        return wallet.balance if wallet else "-"

    @admin.display(description="Vehicle")
    def vehicle(self, obj):
        profile = getattr(obj, "driver_profile", None)
        if profile is None:
            return "-"
        return f"{profile.vehicle_number} ({profile.get_vehicle_class_display()})"

    @admin.display(description="Status")
    def duty_status(self, obj):
        profile = getattr(obj, "driver_profile", None)
        return profile.get_status_display() if profile else "-"
