"""
Ride registry.

The only place that writes ``Ride.status`` and ``Ride.driver``. Every write is
a single conditional UPDATE, so two callers can never both observe success
for the same transition.
"""

import logging
from datetime import timedelta
from typing import Iterable, Optional, Union

from django.db.models import Q
from django.utils import timezone

from rides.models import Ride
from services.exceptions import (
    InvalidTransitionError,
    RideNotFoundError,
    RideUnavailableError,
    ServiceValidationError,
)

logger = logging.getLogger(__name__)

DATE_RANGES = {
    "1week": timedelta(weeks=1),
    "1month": timedelta(days=30),
    "3months": timedelta(days=90),
    "6months": timedelta(days=180),
    "1year": timedelta(days=365),
}
DEFAULT_DATE_RANGE = "6months"
HISTORY_LIMIT = 100


def create(rider, pickup: str, destination: str, vehicle_class: str, fare, otp: str, **extra) -> Ride:
    return Ride.objects.create(
        rider=rider,
        pickup=pickup,
        destination=destination,
        vehicle_class=vehicle_class,
        fare=fare,
        otp=otp,
        status=Ride.PENDING,
        payment_status="pending",
        driver=None,
        **extra,
    )


def get(ride_id) -> Ride:
    try:
        return Ride.objects.select_related("rider", "driver__driver_profile").get(pk=ride_id)
    except (Ride.DoesNotExist, ValueError, TypeError):
        raise RideNotFoundError()


def claim_if_pending(ride_id, driver) -> Ride:
    """Assign ``driver`` if, and only if, the ride is still pending and unassigned."""
    updated = Ride.objects.filter(
        pk=ride_id, status=Ride.PENDING, driver__isnull=True
    ).update(
        driver=driver,
        status=Ride.ACCEPTED,
        accepted_at=timezone.now(),
        updated_at=timezone.now(),
    )
    if not updated:
        if not Ride.objects.filter(pk=ride_id).exists():
            raise RideNotFoundError()
        raise RideUnavailableError()
    return get(ride_id)


def advance_if_status(
    ride_id,
    expected: Union[str, Iterable[str]],
    new: str,
    **fields,
) -> Ride:
    """
    Move the ride from ``expected`` to ``new``.

    ``expected`` may be a single status or a collection of them. Raises
    InvalidTransitionError when the stored status does not match.
    """
    expected_set = {expected} if isinstance(expected, str) else set(expected)
    for status in expected_set:
        if not Ride.can_transition(status, new):
            raise InvalidTransitionError(f"Cannot move a ride from {status} to {new}")

    updated = Ride.objects.filter(
        pk=ride_id, status__in=expected_set
    ).update(status=new, updated_at=timezone.now(), **fields)

    if not updated:
        current = Ride.objects.filter(pk=ride_id).values_list("status", flat=True).first()
        if current is None:
            raise RideNotFoundError()
        raise InvalidTransitionError(
            f"Ride is {current}, expected {' or '.join(sorted(expected_set))}",
            details={"status": current},
        )
    return get(ride_id)


def mark_payment_completed(ride_id, method: str, **fields) -> bool:
    """
    One-shot ``payment_status`` pending -> completed.

    Returns False when the ride was already settled or is not completed.
    """
    updated = Ride.objects.filter(
        pk=ride_id, status=Ride.COMPLETED, payment_status="pending"
    ).update(
        payment_status="completed",
        payment_method=method,
        updated_at=timezone.now(),
        **fields,
    )
    return bool(updated)


def set_rating_once(ride_id, rating: int, review: Optional[str]) -> bool:
    updated = Ride.objects.filter(
        pk=ride_id, status=Ride.COMPLETED, rating__isnull=True
    ).update(rating=rating, review=review, updated_at=timezone.now())
    return bool(updated)


def _party_filter(user):
    return Q(rider=user) | Q(driver=user)


def list_by_party(user, status: Optional[str] = None, date_range: Optional[str] = None,
                  since=None, until=None, limit: int = HISTORY_LIMIT):
    """Rides the user took part in, newest first."""
    qs = Ride.objects.filter(_party_filter(user)).select_related("rider", "driver__driver_profile")

    if status:
        if status not in dict(Ride.STATUS_CHOICES):
            raise ServiceValidationError(f"Unknown status '{status}'")
        qs = qs.filter(status=status)

    if since is None and date_range is not None:
        window = DATE_RANGES.get(date_range, DATE_RANGES[DEFAULT_DATE_RANGE])
        since = timezone.now() - window
    if since is not None:
        qs = qs.filter(created_at__gte=since)
    if until is not None:
        qs = qs.filter(created_at__lte=until)

    return list(qs.order_by("-created_at")[:limit])


def current_for_party(user):
    return list(
        Ride.objects.filter(_party_filter(user), status__in=Ride.ACTIVE_STATUSES)
        .select_related("rider", "driver__driver_profile")
        .order_by("-created_at")
    )
