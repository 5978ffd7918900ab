"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - fares: Fare estimation and wallet discount
    - ledger: Wallet credit/debit
    - routing: Cached, throttled geocoding and route lookups
    - payments: Payment gateways
    - ride_management: Ride registry, lifecycle and settlement
    - matching: Driver search, broadcast and accept resolution
"""

from . import fares, ledger, payments, routing
from .exceptions import (
    ServiceError,
    ServiceValidationError,
    UnauthorizedError,
    PermissionDeniedError,
    NotFoundError,
    RideNotFoundError,
    AccountNotFoundError,
    RideUnavailableError,
    InvalidTransitionError,
    InvalidOtpError,
    InsufficientFundsError,
    DriverNotAvailableError,
    ProviderError,
    InvalidRouteDataError,
    InternalServiceError,
)
from .ride_management import (
    create_ride,
    accept_ride,
    start_ride,
    end_ride,
    cancel_ride,
    rate_ride,
    confirm_manual_payment,
)
from .matching import (
    find_eligible,
    broadcast_ride_available,
    dispatch_ride,
    resolve_accept,
)

__all__ = [
    "fares",
    "ledger",
    "payments",
    "routing",
    # Ride management
    "create_ride",
    "accept_ride",
    "start_ride",
    "end_ride",
    "cancel_ride",
    "rate_ride",
    "confirm_manual_payment",
    # Matching
    "find_eligible",
    "broadcast_ride_available",
    "dispatch_ride",
    "resolve_accept",
    # Exceptions
    "ServiceError",
    "ServiceValidationError",
    "UnauthorizedError",
    "PermissionDeniedError",
    "NotFoundError",
    "RideNotFoundError",
    "AccountNotFoundError",
    "RideUnavailableError",
    "InvalidTransitionError",
    "InvalidOtpError",
    "InsufficientFundsError",
    "DriverNotAvailableError",
    "ProviderError",
    "InvalidRouteDataError",
    "InternalServiceError",
]
