import logging
import math
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import Avg
from django.utils import timezone

from drivers.models import DriverProfile
from common.utils.money import to_decimal
from services.exceptions import AccountNotFoundError, ServiceValidationError

logger = logging.getLogger(__name__)

WEEKLY_WINDOW = timedelta(days=7)


def get_driver_profile(user) -> DriverProfile:
    try:
        return DriverProfile.objects.select_related("user").get(user=user)
    except DriverProfile.DoesNotExist:
        raise AccountNotFoundError("Driver profile not found")


# EARNINGS WINDOW
def refresh_earnings_window(profile: DriverProfile, now=None, save: bool = True) -> list:
    """
    Zero the daily/weekly counters when their window has rolled over.

    Daily uses the local calendar date, weekly uses elapsed time since the
    last weekly reset. Returns the list of fields that changed.
    """
    now = now or timezone.now()
    changed = []

    if timezone.localdate(now) != timezone.localtime(profile.last_earnings_reset).date():
        profile.today_earnings = Decimal("0")
        profile.trips_today = 0
        profile.last_earnings_reset = now
        changed += ["today_earnings", "trips_today", "last_earnings_reset"]

    if now - profile.last_weekly_reset >= WEEKLY_WINDOW:
        profile.weekly_earnings = Decimal("0")
        profile.weekly_trips = 0
        profile.last_weekly_reset = now
        changed += ["weekly_earnings", "weekly_trips", "last_weekly_reset"]

    if changed and save:
        profile.save(update_fields=changed)
        logger.info("Reset earnings counters %s for driver %s", changed, profile.user_id)

    return changed


def record_ride_earnings(driver_user, amount, duration) -> DriverProfile:
    """
    Credit one settled ride to the driver's counters.

    Only call this behind a successful payment_status pending->completed
    transition; it is not idempotent on its own.
    """
    amount = to_decimal(amount)
    duration = int(duration or 0)

    with transaction.atomic():
        try:
            profile = DriverProfile.objects.select_for_update().get(user=driver_user)
        except DriverProfile.DoesNotExist:
            raise AccountNotFoundError("Driver profile not found")

        refresh_earnings_window(profile, save=False)

        profile.today_earnings += amount
        profile.weekly_earnings += amount
        profile.trips_today += 1
        profile.weekly_trips += 1
        profile.total_trips += 1
        profile.online_hours += math.ceil(duration / 60)
        profile.avg_ride_time = math.ceil(
            (profile.avg_ride_time * (profile.total_trips - 1) + duration) / profile.total_trips
        )
        profile.save()

    logger.info("Driver %s earned %s (trip %s)", profile.user_id, amount, profile.total_trips)
    return profile


def recompute_driver_rating(driver_user) -> Optional[Decimal]:
    """Mean of every rated ride of the driver, one decimal place."""
    from rides.models import Ride

    avg = Ride.objects.filter(driver=driver_user, rating__isnull=False).aggregate(value=Avg("rating"))["value"]
    if avg is None:
        return None

    rating = to_decimal(avg).quantize(Decimal("0.1"))
    DriverProfile.objects.filter(user=driver_user).update(rating=rating)
    return rating


# STATS
def get_driver_stats(user) -> dict:
    profile = get_driver_profile(user)
    refresh_earnings_window(profile)
    return {
        "today_earnings": profile.today_earnings,
        "trips_today": profile.trips_today,
        "weekly_earnings": profile.weekly_earnings,
        "weekly_trips": profile.weekly_trips,
        "total_trips": profile.total_trips,
        "rating": profile.rating,
        "avg_ride_time": profile.avg_ride_time,
        "online_hours": profile.online_hours,
    }


def get_driver_earnings_summary(user, limit: int = 20) -> dict:
    """Driver-side wallet view: counters plus recent paid rides as credits."""
    from rides.models import Ride
    from common.conf import driver_share
    from common.utils.money import round_half_up

    profile = get_driver_profile(user)
    refresh_earnings_window(profile)

    rides = (
        Ride.objects.filter(driver=user, status=Ride.COMPLETED)
        .select_related("rider")
        .order_by("-ended_at")[:limit]
    )
    transactions = []
    for ride in rides:
        total = ride.total_fare if ride.total_fare is not None else ride.fare
        transactions.append({
            "ride_id": ride.id,
            "amount": round_half_up(total * driver_share()),
            "kind": "credit",
            "description": f"Ride from {ride.pickup} to {ride.destination}",
            "payment_status": ride.payment_status,
            "payment_method": ride.payment_method,
            "created_at": ride.ended_at or ride.updated_at,
        })

    return {
        "today_earnings": profile.today_earnings,
        "weekly_earnings": profile.weekly_earnings,
        "total_trips": profile.total_trips,
        "transactions": transactions,
    }


# DRIVER STATUS UPDATE
def update_driver_status(profile: DriverProfile, new_status: str) -> DriverProfile:
    if new_status not in dict(DriverProfile.STATUS_CHOICES):
        raise ServiceValidationError(f"Invalid status '{new_status}'")

    profile.status = new_status
    profile.save(update_fields=["status"])
    logger.info("Driver %s is now %s", profile.user_id, new_status)
    return profile


def update_driver_location(profile: DriverProfile, lat, lon) -> DriverProfile:
    """
    Update driver location, used by:
    - HTTP fallback
    - WebSocket update-location messages
    """
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        raise ServiceValidationError("Latitude and longitude must be numbers")
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise ServiceValidationError("Coordinates out of range")

    profile.current_latitude = round(to_decimal(lat), 6)
    profile.current_longitude = round(to_decimal(lon), 6)
    profile.last_location_update = timezone.now()
    profile.save(update_fields=["current_latitude", "current_longitude", "last_location_update"])
    return profile
