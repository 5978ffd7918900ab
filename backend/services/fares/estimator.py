"""
Fare computation.

Pure functions except ``get_fare_estimate``, which asks the routing service
for a distance/duration and degrades to a fixed route when it cannot.
"""

import logging
import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict

from common.conf import ride_setting, wallet_discount_rate
from common.utils.money import round_half_up, to_decimal
from drivers.models import VehicleClass
from services.exceptions import (
    InvalidRouteDataError,
    ProviderError,
    ServiceValidationError,
)

logger = logging.getLogger(__name__)

BASE_FARE = {
    VehicleClass.AUTO: Decimal("30"),
    VehicleClass.CAR: Decimal("50"),
    VehicleClass.MOTO: Decimal("20"),
}

PER_KM_RATE = {
    VehicleClass.AUTO: Decimal("10"),
    VehicleClass.CAR: Decimal("15"),
    VehicleClass.MOTO: Decimal("8"),
}

PER_MINUTE_RATE = {
    VehicleClass.AUTO: Decimal("2"),
    VehicleClass.CAR: Decimal("3"),
    VehicleClass.MOTO: Decimal("1.5"),
}

_NUMBER_RE = re.compile(r"[-+]?\d*\.?\d+(?:[eE][-+]?\d+)?")


@dataclass
class FareEstimate:
    fare: Dict[str, Decimal]
    distance: float  # km
    duration: float  # minutes
    fallback: bool = False

    def as_dict(self):
        return {
            "fare": {k: int(v) for k, v in self.fare.items()},
            "distance": self.distance,
            "duration": self.duration,
            "fallback": self.fallback,
        }


def parse_route_value(value, label: str) -> float:
    """
    Read a distance or duration as a positive finite float.

    Accepts plain numbers and provider strings such as ``"12.50 km"`` or
    ``"18.0 mins"``.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidRouteDataError(details={label: value})

    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        match = _NUMBER_RE.search(str(value))
        if not match:
            raise InvalidRouteDataError(details={label: value})
        number = float(match.group())

    if not math.isfinite(number) or number <= 0:
        raise InvalidRouteDataError(details={label: value})
    return number


def estimate_fares(distance, duration) -> FareEstimate:
    """Fare for every vehicle class: round(base + perKm*km + perMinute*min)."""
    km = parse_route_value(distance, "distance")
    minutes = parse_route_value(duration, "duration")

    km_dec = to_decimal(km)
    min_dec = to_decimal(minutes)

    fares = {}
    for vehicle_class in VehicleClass.values:
        raw = (
            BASE_FARE[vehicle_class]
            + PER_KM_RATE[vehicle_class] * km_dec
            + PER_MINUTE_RATE[vehicle_class] * min_dec
        )
        fares[vehicle_class] = round_half_up(raw)

    return FareEstimate(fare=fares, distance=km, duration=minutes)


def fare_for_class(estimate: FareEstimate, vehicle_class: str) -> Decimal:
    if vehicle_class not in VehicleClass.values:
        raise ServiceValidationError(
            f"Invalid vehicle type '{vehicle_class}'",
            details={"allowed": list(VehicleClass.values)},
        )
    return estimate.fare[vehicle_class]


def calculate_wallet_discount(fare) -> Dict[str, object]:
    """Flat percentage discount for paying from the wallet."""
    original = to_decimal(fare)
    if original < 0:
        raise ServiceValidationError("Fare must not be negative")

    rate = wallet_discount_rate()
    discount = round_half_up(original * rate)
    return {
        "original_fare": original,
        "discount": discount,
        "final_amount": original - discount,
        "discount_percentage": int(rate * 100),
    }


def get_fare_estimate(pickup: str, destination: str, routing=None) -> FareEstimate:
    """
    Estimate fares between two location descriptors.

    The routing call is allowed to fail: ride creation must not block on it,
    so any provider error falls back to the configured default route.
    """
    if not (pickup or "").strip() or not (destination or "").strip():
        raise ServiceValidationError("Pickup and destination are required")

    if routing is None:
        from services.routing import get_routing_service
        routing = get_routing_service()

    try:
        route = routing.get_distance_time(pickup, destination)
        estimate = estimate_fares(route.distance_km, route.duration_min)
    except ProviderError as exc:
        logger.warning(
            "Routing failed for %r -> %r (%s), using fallback route",
            pickup, destination, exc.message,
        )
        estimate = estimate_fares(
            ride_setting("FALLBACK_DISTANCE_KM"),
            ride_setting("FALLBACK_DURATION_MIN"),
        )
        estimate.fallback = True

    return estimate

