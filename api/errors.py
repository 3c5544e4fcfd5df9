"""
Translation of service exceptions into HTTP errors.
"""

import logging

from fastapi import HTTPException

from services.errors import (
    AuthorizationError,
    ConfigurationError,
    GatewayError,
    NotFoundError,
    OrderStateError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def to_http_exception(error: Exception, action: str) -> HTTPException:
    """
    Map a service exception to an HTTPException.

    ValidationError -> 400, OrderStateError -> 409, AuthorizationError -> 403,
    NotFoundError -> 404, anything else -> 500.
    """
    if isinstance(error, OrderStateError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, AuthorizationError):
        return HTTPException(status_code=403, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ConfigurationError):
        logger.error("Configuration error while trying to %s: %s", action, error)
        return HTTPException(status_code=500, detail="Server configuration error")
    if isinstance(error, GatewayError):
        logger.error("Payment gateway error while trying to %s: %s", action, error)
        return HTTPException(status_code=500, detail=f"Failed to {action}: payment gateway error")

    logger.exception("Unexpected error while trying to %s", action, exc_info=error)
    return HTTPException(status_code=500, detail=f"Failed to {action}: {str(error)}")
