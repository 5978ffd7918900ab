"""
Fare estimation.

This module handles:
    - Per-class fares from a route distance and duration
    - Routing lookups with a fixed fallback route
    - The flat wallet discount
"""

from .estimator import (
    FareEstimate,
    estimate_fares,
    fare_for_class,
    calculate_wallet_discount,
    get_fare_estimate,
    parse_route_value,
)

__all__ = [
    "FareEstimate",
    "estimate_fares",
    "fare_for_class",
    "calculate_wallet_discount",
    "get_fare_estimate",
    "parse_route_value",
]
