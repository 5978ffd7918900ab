"""
Service-layer exceptions.

Every caller-facing failure carries a stable ``kind`` plus a human-readable
message. The HTTP layer maps them to responses in
``common.exception_handler``; the WebSocket consumers send them back as
``error`` frames.
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base exception for all service errors."""

    kind = "InternalError"
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def as_dict(self) -> Dict[str, Any]:
        payload = {"error": self.kind, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ServiceValidationError(ServiceError):
    """Malformed input, rejected before touching the store."""
    kind = "ValidationError"
    status_code = 400
    default_message = "Invalid input"


class UnauthorizedError(ServiceError):
    """Missing, malformed or expired credentials."""
    kind = "Unauthorized"
    status_code = 401
    default_message = "Invalid or expired token"


class PermissionDeniedError(ServiceError):
    """Caller is not a party allowed to perform the operation."""
    kind = "PermissionDenied"
    status_code = 403
    default_message = "You are not allowed to perform this action"


class NotFoundError(ServiceError):
    kind = "NotFound"
    status_code = 404
    default_message = "Not found"


class RideNotFoundError(NotFoundError):
    """Raised when a ride cannot be found."""
    default_message = "Ride not found"


class AccountNotFoundError(NotFoundError):
    """Raised when a user, wallet or driver profile cannot be found."""
    default_message = "Account not found"


class RideUnavailableError(ServiceError):
    """Raised when the accept race was lost or the ride is no longer pending."""
    kind = "RideUnavailable"
    status_code = 409
    default_message = "This ride was already taken or is no longer available"


class InvalidTransitionError(ServiceError):
    """Raised when a guarded status update's precondition failed."""
    kind = "InvalidTransition"
    status_code = 409
    default_message = "Ride is not in the expected state"


class InvalidOtpError(ServiceError):
    """Wrong OTP on start. The ride is untouched and the caller may retry."""
    kind = "InvalidOtp"
    status_code = 400
    default_message = "Invalid OTP"


class InsufficientFundsError(ServiceError):
    """Debit exceeds the wallet balance."""
    kind = "InsufficientFunds"
    status_code = 402
    default_message = "Insufficient wallet balance"


class DriverNotAvailableError(ServiceError):
    """Raised when driver is not available to accept rides."""
    kind = "DriverNotAvailable"
    status_code = 400
    default_message = "Please set your status to active before accepting rides"


class ProviderError(ServiceError):
    """External routing or payment provider failure."""
    kind = "ProviderError"
    status_code = 502
    default_message = "External provider failed"


class InvalidRouteDataError(ProviderError):
    """Distance or duration could not be parsed as positive numbers."""
    default_message = "Invalid distance or duration data from map service"


class InternalServiceError(ServiceError):
    """Store or unexpected failure."""
    kind = "InternalError"
    status_code = 500
