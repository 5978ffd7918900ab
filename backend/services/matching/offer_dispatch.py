"""
Ride offer broadcast and accept resolution.

Every reachable eligible driver gets the ride request at once. The first
driver whose claim lands wins; the others are told the ride was taken.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from django.db import transaction
from django.utils import timezone

from common.conf import ride_setting
from common.utils import parse_coordinates
from drivers.models import DriverProfile
from realtime import notifications
from rides.models import Ride, RideOffer
from services.exceptions import ProviderError, RideUnavailableError
from services.ride_management import registry
from .driver_search import find_eligible

logger = logging.getLogger(__name__)


def _ride_request_payload(ride: Ride, route_info: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    route_info = route_info or {}
    return {
        "ride_id": ride.id,
        "otp": ride.otp,
        "rider": notifications.rider_contact(ride.rider),
        "pickup": ride.pickup,
        "destination": ride.destination,
        "fare": ride.fare,
        "vehicle_class": ride.vehicle_class,
        "distance": route_info.get("distance", ride.distance),
        "duration": route_info.get("duration", ride.duration),
    }


def broadcast_ride_available(ride: Ride, drivers: Iterable[DriverProfile],
                             route_info: Optional[Dict[str, Any]] = None) -> int:
    """
    Push ``ride-request`` to every driver with a live connection.

    Drivers without one are skipped. Returns how many drivers were reached.
    """
    payload = _ride_request_payload(ride, route_info)
    reached = 0

    for profile in drivers:
        if not notifications.send_now(profile.user_id, notifications.RIDE_REQUEST, payload):
            continue
        RideOffer.objects.get_or_create(ride=ride, driver_id=profile.user_id)
        reached += 1

    logger.info("Ride %s offered to %d driver(s)", ride.id, reached)
    return reached


def locate_pickup(ride: Ride, routing=None):
    if ride.pickup_latitude is not None and ride.pickup_longitude is not None:
        return float(ride.pickup_latitude), float(ride.pickup_longitude)

    coords = parse_coordinates(ride.pickup)
    if coords is not None:
        return coords

    if routing is None:
        from services.routing import get_routing_service
        routing = get_routing_service()
    try:
        point = routing.geocode(ride.pickup)
    except ProviderError as e:
        logger.warning("Could not geocode pickup of ride %s: %s", ride.id, e.message)
        return None
    return point.lat, point.lng


def dispatch_ride(ride_id, routing=None) -> int:
    """
    Find and notify drivers for a pending ride.

    Runs after the ride has been committed (see rides.tasks). Returns the
    number of drivers reached.
    """
    ride = Ride.objects.select_related("rider").filter(pk=ride_id).first()
    if ride is None:
        logger.warning("Dispatch skipped: ride %s does not exist", ride_id)
        return 0
    if ride.status != Ride.PENDING:
        logger.info("Dispatch skipped: ride %s is %s", ride_id, ride.status)
        return 0

    coords = locate_pickup(ride, routing)
    drivers = find_eligible(coords, float(ride_setting("DISPATCH_RADIUS_KM")), ride.vehicle_class)
    reached = broadcast_ride_available(ride, drivers)

    if not reached:
        notifications.send_now(ride.rider_id, notifications.NO_DRIVERS_AVAILABLE, {
            "ride_id": ride.id,
            "message": "No drivers found nearby. Please try again later.",
        })
    return reached


def resolve_accept(ride_id, driver) -> Ride:
    """
    Claim the ride for ``driver`` and tell everyone involved.

    Raises:
        RideUnavailableError: another driver won or the ride is not pending
        RideNotFoundError: no such ride
    """
    with transaction.atomic():
        try:
            ride = registry.claim_if_pending(ride_id, driver)
        except RideUnavailableError:
            logger.info("Driver %s lost the race for ride %s", driver.id, ride_id)
            raise

        now = timezone.now()
        ride.offers.filter(driver=driver).update(status="accepted", responded_at=now)
        losers = list(
            ride.offers.filter(status="pending").exclude(driver=driver).values_list("driver_id", flat=True)
        )
        ride.offers.filter(driver_id__in=losers).update(status="taken", responded_at=now)

        notifications.notify_driver_event(
            notifications.RIDE_ACCEPTED, ride,
            extra={"otp": ride.otp, "rider": notifications.rider_contact(ride.rider)},
        )
        notifications.notify_rider_event(
            notifications.RIDE_ACCEPTED, ride,
            extra={"driver": notifications.driver_contact(ride.driver)},
        )
        for driver_id in losers:
            notifications.notify_account(driver_id, notifications.RIDE_TAKEN, {"ride_id": ride.id})

    logger.info("Ride %s accepted by driver %s", ride.id, driver.id)
    return ride
