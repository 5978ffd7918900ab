"""DRF exception handler that renders service errors as ``{error, message}``."""

import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from services.exceptions import ServiceError

logger = logging.getLogger(__name__)


def service_exception_handler(exc, context):
    if isinstance(exc, ServiceError):
        return Response(exc.as_dict(), status=exc.status_code)

    if isinstance(exc, DRFValidationError):
        return Response(
            {
                "error": "ValidationError",
                "message": "Invalid input",
                "details": exc.detail,
            },
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)
    if response is not None:
        return response

    logger.exception("Unhandled error in %s", context.get("view").__class__.__name__)
    return Response(
        {"error": "InternalError", "message": "Something went wrong"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
