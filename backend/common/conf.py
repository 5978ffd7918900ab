"""Access to the ``RIDES`` settings dict with defaults."""

from decimal import Decimal

from django.conf import settings

DEFAULTS = {
    "DISPATCH_RADIUS_KM": 2.0,
    "FALLBACK_DISTANCE_KM": 5,
    "FALLBACK_DURATION_MIN": 15,
    "DRIVER_SHARE": "0.8",
    "WALLET_DISCOUNT": "0.05",
    "ROUTE_CACHE_TTL": 600,
    "SUGGESTION_CACHE_TTL": 300,
    "MIN_PROVIDER_INTERVAL": 1.0,
    "ROUTING_TIMEOUT": 5.0,
}


def ride_setting(name: str):
    overrides = getattr(settings, "RIDES", {}) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]


def driver_share() -> Decimal:
    return Decimal(str(ride_setting("DRIVER_SHARE")))


def wallet_discount_rate() -> Decimal:
    return Decimal(str(ride_setting("WALLET_DISCOUNT")))
