"""
Driver matching and offer dispatch service.

This module handles:
    - Finding eligible drivers around a pickup (with fallback)
    - Broadcasting ride requests to connected drivers
    - Resolving concurrent accepts to a single winner
"""

from .driver_search import find_eligible
from .offer_dispatch import broadcast_ride_available, dispatch_ride, resolve_accept

__all__ = [
    "find_eligible",
    "broadcast_ride_available",
    "dispatch_ride",
    "resolve_accept",
]
