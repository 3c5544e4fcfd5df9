"""
Service-layer exception taxonomy.

Routers translate these into HTTP responses; services and repositories raise
them and never return error codes.
"""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when a required secret or setting is missing. Not retried."""
    pass


class RepositoryError(RuntimeError):
    """Raised when the persistent store reports an error."""
    pass


class GatewayError(Exception):
    """Raised when the payment gateway call fails or returns a non-success code."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SignatureMismatch(Exception):
    """Raised when an inbound gateway callback carries an invalid signature."""
    pass


class ValidationError(Exception):
    """Raised when required input is missing or invalid."""
    pass


class OrderStateError(ValidationError):
    """Raised when an operation is not allowed in the order's current state."""
    pass


class AuthorizationError(Exception):
    """Raised when the caller does not own the order or lacks the admin role."""
    pass


class NotFoundError(Exception):
    """Raised when a referenced record does not exist."""
    pass


__all__ = [
    "AuthorizationError",
    "ConfigurationError",
    "GatewayError",
    "NotFoundError",
    "OrderStateError",
    "RepositoryError",
    "SignatureMismatch",
    "ValidationError",
]
