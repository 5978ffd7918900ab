"""
Ride management service - Core ride lifecycle operations.

This module handles:
    - The ride registry (guarded status updates)
    - Creating, accepting, starting and ending rides
    - Settlement at completion and manual payment
    - Cancelling and rating rides
"""

from . import registry
from .settlement import settle_completed_ride, settle_manual_payment
from .ride_lifecycle import (
    RideResult,
    create_ride,
    accept_ride,
    start_ride,
    end_ride,
    cancel_ride,
    rate_ride,
    confirm_manual_payment,
    get_ride_for_party,
    estimate_fare,
    generate_otp,
)

__all__ = [
    "registry",
    "settle_completed_ride",
    "settle_manual_payment",
    # Lifecycle operations
    "RideResult",
    "create_ride",
    "accept_ride",
    "start_ride",
    "end_ride",
    "cancel_ride",
    "rate_ride",
    "confirm_manual_payment",
    "get_ride_for_party",
    "estimate_fare",
    "generate_otp",
]
