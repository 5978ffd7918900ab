"""
Core ride lifecycle operations.

pending -> accepted -> ongoing -> completed, with cancelled reachable from
any non-terminal state. Every status change goes through the registry's
guarded updates; notifications go out after the change is committed.
"""

import logging
import math
import secrets
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from common.utils import parse_coordinates
from common.utils.money import to_decimal
from drivers.models import DriverProfile, VehicleClass
from rides.models import Ride
from services.exceptions import (
    DriverNotAvailableError,
    InvalidOtpError,
    InvalidTransitionError,
    PermissionDeniedError,
    ServiceValidationError,
)
from services.fares import fare_for_class, get_fare_estimate
from services.payments import PaymentMethod, charge
from . import registry
from .settlement import settle_completed_ride, settle_manual_payment

logger = logging.getLogger(__name__)

OTP_LENGTH = 6


@dataclass
class RideResult:
    """Result object for ride operations."""
    success: bool
    ride: Optional[Ride] = None
    message: str = ""
    error_code: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


def generate_otp() -> str:
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


def normalise_otp(value) -> Optional[str]:
    """Trimmed, zero-padded 6-digit string, or None if it is not numeric."""
    text = str(value if value is not None else "").strip()
    if not text.isdigit() or len(text) > OTP_LENGTH:
        return None
    return text.zfill(OTP_LENGTH)


def _require_driver(user) -> DriverProfile:
    if not getattr(user, "is_driver", False):
        raise PermissionDeniedError("Only drivers can perform this action")
    try:
        return DriverProfile.objects.get(user=user)
    except DriverProfile.DoesNotExist:
        raise PermissionDeniedError("Driver profile not found")


def _require_assigned_driver(ride: Ride, driver) -> None:
    if ride.driver_id != driver.id:
        raise PermissionDeniedError("This ride is not assigned to you")


# ===================== Rider Operations =====================

def create_ride(
    rider,
    pickup: str,
    destination: str,
    vehicle_class: str,
    wallet_linked: bool = False,
    pickup_coords=None,
    routing=None,
) -> RideResult:
    """
    Create a new ride request and schedule driver dispatch.

    The fare lookup happens before any row is written and never blocks on
    the routing provider. Dispatch runs in a Celery task after commit.

    Raises:
        PermissionDeniedError: caller is not a rider
        ServiceValidationError: bad class or blank locations
    """
    if not getattr(rider, "is_rider", False):
        raise PermissionDeniedError("Only riders can request rides")

    pickup = (pickup or "").strip()
    destination = (destination or "").strip()
    if not pickup or not destination:
        raise ServiceValidationError("Pickup and destination are required")
    if vehicle_class not in VehicleClass.values:
        raise ServiceValidationError(f"Invalid vehicle type '{vehicle_class}'")

    estimate = get_fare_estimate(pickup, destination, routing)
    fare = fare_for_class(estimate, vehicle_class)

    coords = parse_coordinates(pickup_coords) if pickup_coords is not None else parse_coordinates(pickup)
    location = {}
    if coords is not None:
        location = {
            "pickup_latitude": round(to_decimal(coords[0]), 6),
            "pickup_longitude": round(to_decimal(coords[1]), 6),
        }

    if wallet_linked:
        from services.ledger import get_or_create_wallet
        get_or_create_wallet(rider)

    with transaction.atomic():
        ride = registry.create(
            rider=rider,
            pickup=pickup,
            destination=destination,
            vehicle_class=vehicle_class,
            fare=fare,
            otp=generate_otp(),
            distance=round(estimate.distance, 2),
            duration=math.ceil(estimate.duration),
            wallet_linked=bool(wallet_linked),
            **location,
        )

        from rides.tasks import enqueue_ride_broadcast
        ride_id = ride.id
        transaction.on_commit(lambda: enqueue_ride_broadcast(ride_id))

    logger.info("Ride %s created by rider %s (%s, fare %s)", ride.id, rider.id, vehicle_class, fare)
    return RideResult(
        success=True,
        ride=ride,
        message="Ride requested. Looking for nearby drivers...",
        extra={"fallback_route": estimate.fallback},
    )


@transaction.atomic
def cancel_ride(user, ride_id, reason: str = "") -> RideResult:
    """
    Cancel a ride by the rider or the assigned driver.

    Outstanding offers are withdrawn and the drivers holding them told.
    """
    ride = registry.get(ride_id)

    is_rider = ride.rider_id == user.id
    is_driver = ride.driver_id is not None and ride.driver_id == user.id
    if not (is_rider or is_driver):
        raise PermissionDeniedError("You are not part of this ride")

    ride = registry.advance_if_status(
        ride.id,
        Ride.ACTIVE_STATUSES,
        Ride.CANCELLED,
        cancelled_at=timezone.now(),
        cancellation_reason=reason or ("Cancelled by rider" if is_rider else "Cancelled by driver"),
    )

    from realtime import notifications

    notified = set()
    message = "Rider cancelled this ride." if is_rider else "Driver cancelled the ride. Please request again."
    if is_rider and ride.driver_id:
        notifications.notify_driver_event(notifications.RIDE_CANCELLED, ride, message=message)
        notified.add(ride.driver_id)
    elif is_driver:
        notifications.notify_rider_event(notifications.RIDE_CANCELLED, ride, message=message)

    pending_offers = ride.offers.filter(status="pending")
    offer_driver_ids = list(pending_offers.values_list("driver_id", flat=True))
    pending_offers.update(status="withdrawn", responded_at=timezone.now())
    for driver_id in offer_driver_ids:
        if driver_id not in notified and driver_id != user.id:
            notifications.notify_account(driver_id, notifications.RIDE_CANCELLED, {
                "ride_id": ride.id,
                "message": "Ride request cancelled.",
            })

    logger.info("Ride %s cancelled by user %s", ride.id, user.id)
    return RideResult(
        success=True,
        ride=ride,
        message="Ride cancelled successfully",
        extra={"was_assigned": ride.driver_id is not None},
    )


@transaction.atomic
def rate_ride(rider, ride_id, rating, review: str = "") -> RideResult:
    """Rate a completed ride once and refresh the driver's average."""
    message = "Rating must be a whole number between 1 and 5"
    if isinstance(rating, bool):
        raise ServiceValidationError(message)
    try:
        value = to_decimal(rating)
    except ValueError:
        raise ServiceValidationError(message)
    # 4.7 is rejected, not truncated to 4
    if not value.is_finite() or value != value.to_integral_value():
        raise ServiceValidationError(message)
    rating = int(value)
    if not 1 <= rating <= 5:
        raise ServiceValidationError(message)

    ride = registry.get(ride_id)
    if ride.rider_id != rider.id:
        raise PermissionDeniedError("You can only rate your own rides")
    if ride.status != Ride.COMPLETED:
        raise InvalidTransitionError("Only completed rides can be rated")

    if not registry.set_rating_once(ride.id, rating, review or None):
        raise InvalidTransitionError("This ride has already been rated")

    from drivers.services import recompute_driver_rating
    driver_rating = recompute_driver_rating(ride.driver) if ride.driver_id else None

    ride.refresh_from_db()
    return RideResult(
        success=True,
        ride=ride,
        message="Thanks for rating your ride",
        extra={"driver_rating": driver_rating},
    )


def confirm_manual_payment(user, ride_id, method: str, payment_details: Optional[dict] = None) -> RideResult:
    """
    Settle a completed ride whose payment is still pending.

    Gateway methods are charged first, outside any transaction; a gateway
    failure raises ProviderError and nothing is written. The wallet method
    debits the discounted fare and fails with InsufficientFundsError, again
    without touching the ride.
    """
    if method not in PaymentMethod.values:
        raise ServiceValidationError(f"Unsupported payment method '{method}'")

    ride = registry.get(ride_id)
    if user.id not in (ride.rider_id, ride.driver_id):
        raise PermissionDeniedError("You are not part of this ride")
    if method == PaymentMethod.WALLET and user.id != ride.rider_id:
        raise PermissionDeniedError("Only the rider can pay from the wallet")
    if ride.status != Ride.COMPLETED or ride.payment_status != "pending":
        raise InvalidTransitionError("Ride is not awaiting payment", details={
            "status": ride.status,
            "payment_status": ride.payment_status,
        })

    transaction_id = None
    if method != PaymentMethod.WALLET:
        # one key per ride so the provider collapses concurrent confirmations
        details = {**(payment_details or {}), "idempotency_key": f"ride-{ride.id}"}
        result = charge(method, ride.total_fare, details)
        transaction_id = result.transaction_id

    with transaction.atomic():
        outcome = settle_manual_payment(ride, method, transaction_id)
        ride = registry.get(ride.id)

        from realtime import notifications
        notifications.notify_rider_event(notifications.PAYMENT_SUCCESS, ride, extra={
            "amount": outcome.amount_paid,
            "wallet_balance": outcome.wallet_balance,
            "payment_method": method,
        })
        notifications.notify_driver_event(notifications.PAYMENT_SUCCESS, ride, extra={
            "earnings": outcome.driver_earnings,
            "payment_method": method,
        })

    logger.info("Ride %s paid via %s (%s)", ride.id, method, outcome.amount_paid)
    return RideResult(
        success=True,
        ride=ride,
        message="Payment processed successfully",
        extra={
            "amount": outcome.amount_paid,
            "driver_earnings": outcome.driver_earnings,
            "wallet_balance": outcome.wallet_balance,
            "transaction_id": transaction_id,
            **outcome.extra,
        },
    )


# ===================== Driver Operations =====================

def accept_ride(driver, ride_id) -> RideResult:
    """
    Accept a pending ride. Many drivers may race here; exactly one wins.

    Raises:
        DriverNotAvailableError: driver is not active
        RideUnavailableError: another driver won, or the ride is not pending
    """
    profile = _require_driver(driver)
    if profile.status != "active":
        raise DriverNotAvailableError()

    from services.matching import resolve_accept
    ride = resolve_accept(ride_id, driver)

    return RideResult(
        success=True,
        ride=ride,
        message="Ride Accepted Successfully! Navigate to pickup location.",
    )


@transaction.atomic
def start_ride(driver, ride_id, otp) -> RideResult:
    """
    Start an accepted ride after checking the rider's OTP.

    A wrong OTP leaves the ride accepted so the driver can try again.
    """
    _require_driver(driver)
    ride = registry.get(ride_id)
    _require_assigned_driver(ride, driver)

    if ride.status != Ride.ACCEPTED:
        raise InvalidTransitionError(f"Ride is {ride.status}, expected accepted", details={"status": ride.status})

    supplied = normalise_otp(otp)
    if supplied is None or supplied != normalise_otp(ride.otp):
        logger.info("Wrong OTP for ride %s from driver %s", ride.id, driver.id)
        raise InvalidOtpError()

    ride = registry.advance_if_status(ride.id, Ride.ACCEPTED, Ride.ONGOING, started_at=timezone.now())

    from realtime import notifications
    notifications.notify_rider_event(notifications.RIDE_STARTED, ride, message="Your ride has started.")

    return RideResult(success=True, ride=ride, message="Ride started")


@transaction.atomic
def end_ride(driver, ride_id, waiting_charges=0) -> RideResult:
    """
    Complete an ongoing ride and settle it.

    Wallet-linked rides are debited now; if the wallet is short the ride is
    demoted to manual payment. Either way both parties are notified.
    """
    _require_driver(driver)
    try:
        waiting = to_decimal(waiting_charges or 0)
    except ValueError:
        raise ServiceValidationError("Waiting charges must be a number")
    if not waiting.is_finite() or waiting < 0:
        raise ServiceValidationError("Waiting charges cannot be negative")

    ride = registry.get(ride_id)
    _require_assigned_driver(ride, driver)

    ended_at = timezone.now()
    started_at = ride.started_at or ended_at
    duration = math.ceil((ended_at - started_at).total_seconds() / 60)

    ride = registry.advance_if_status(
        ride.id,
        Ride.ONGOING,
        Ride.COMPLETED,
        waiting_charges=waiting,
        total_fare=ride.fare + waiting,
        ended_at=ended_at,
        duration=duration,
    )

    outcome = settle_completed_ride(ride)
    ride = registry.get(ride.id)

    from realtime import notifications
    if outcome.settled:
        notifications.notify_rider_event(notifications.PAYMENT_SUCCESS, ride, extra={
            "amount": outcome.amount_paid,
            "wallet_balance": outcome.wallet_balance,
            "payment_method": outcome.method,
        })
        notifications.notify_driver_event(notifications.PAYMENT_SUCCESS, ride, extra={
            "earnings": outcome.driver_earnings,
            "payment_method": outcome.method,
        })
        message = "Ride completed and paid from wallet"
    else:
        extra = {"payment_pending": True, **outcome.extra}
        notifications.notify_rider_event(notifications.RIDE_ENDED, ride, extra=extra)
        notifications.notify_driver_event(notifications.RIDE_ENDED, ride, extra=extra)
        message = "Ride completed, payment pending"

    logger.info("Ride %s completed (settled=%s)", ride.id, outcome.settled)
    return RideResult(
        success=True,
        ride=ride,
        message=message,
        extra={
            "payment_pending": not outcome.settled,
            "driver_earnings": outcome.driver_earnings,
            "wallet_balance": outcome.wallet_balance,
            **outcome.extra,
        },
    )


# ===================== Queries =====================

def get_ride_for_party(user, ride_id) -> Ride:
    ride = registry.get(ride_id)
    if user.id not in (ride.rider_id, ride.driver_id):
        raise PermissionDeniedError("You are not part of this ride")
    return ride


def estimate_fare(pickup: str, destination: str, routing=None) -> Dict[str, Any]:
    return get_fare_estimate(pickup, destination, routing).as_dict()
