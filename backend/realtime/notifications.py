"""
Notification helpers for sending ride events to connected clients.

Events are delivered through the presence registry after the surrounding
database transaction commits, so a client never hears about a state that
was rolled back.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from django.db import transaction

from .presence import get_presence

logger = logging.getLogger(__name__)

RIDE_REQUEST = "ride-request"
RIDE_ACCEPTED = "ride-accepted"
RIDE_TAKEN = "ride-taken"
RIDE_STARTED = "ride-started"
RIDE_ENDED = "ride-ended"
PAYMENT_SUCCESS = "payment-success"
RIDE_CANCELLED = "ride-cancelled"
NO_DRIVERS_AVAILABLE = "no-drivers-available"


# ---------------------- Payload Helpers ----------------------

def rider_contact(user) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.display_name,
        "phone": user.phone_number,
    }


def driver_contact(user) -> Dict[str, Any]:
    data = {
        "id": user.id,
        "name": user.display_name,
        "phone": user.phone_number,
    }
    profile = getattr(user, "driver_profile", None)
    if profile is not None:
        data.update({
            "vehicle_number": profile.vehicle_number,
            "vehicle_color": profile.vehicle_color,
            "vehicle_class": profile.vehicle_class,
            "rating": profile.rating,
        })
    return data


def ride_payload(ride, include_otp: bool = False) -> Dict[str, Any]:
    from rides.serializers import RideSerializer

    data = dict(RideSerializer(ride).data)
    if include_otp:
        data["otp"] = ride.otp
    return data


# ---------------------- Delivery ----------------------

def send_now(account_id, event: str, payload: Dict[str, Any] = None) -> bool:
    """Send immediately. Use only where no transaction can still roll back."""
    return get_presence().send(account_id, event, payload)


def notify_account(account_id, event: str, payload: Dict[str, Any] = None) -> None:
    """Send ``event`` once the current transaction has committed."""
    if account_id is None:
        return
    transaction.on_commit(lambda: get_presence().send(account_id, event, payload))


def notify_rider_event(event: str, ride, message: str = "", extra: Dict[str, Any] = None) -> None:
    payload = {
        "ride_id": ride.id,
        "status": ride.status,
        "ride": ride_payload(ride, include_otp=True),
        **(extra or {}),
    }
    if message:
        payload["message"] = message
    notify_account(ride.rider_id, event, payload)


def notify_driver_event(event: str, ride, driver_id=None, message: str = "",
                        extra: Dict[str, Any] = None) -> None:
    driver_id = driver_id or ride.driver_id
    if not driver_id:
        return
    payload = {
        "ride_id": ride.id,
        "status": ride.status,
        "ride": ride_payload(ride),
        **(extra or {}),
    }
    if message:
        payload["message"] = message
    notify_account(driver_id, event, payload)
