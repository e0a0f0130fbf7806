"""
Base exception classes for application-wide error handling.

This module provides the exception hierarchy shared by every app:
- Consistent error bodies for API responses
- Machine-readable error codes for client handling
- Detailed error information for debugging

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input or business-rule failures (400)
    ├── StateError - Resource is not in a state that allows the operation (400)
    ├── AuthenticationRequiredError - No actor or store context (401)
    ├── PermissionDeniedError - Actor role may not perform the operation (403)
    ├── NotFoundError - Resource not found (404)
    ├── ConflictError - Concurrent or duplicate operations (409)
    └── ExternalServiceError - Third-party service failures (502)

Usage:
    from core.exceptions import ValidationError, NotFoundError

    raise ValidationError("Refund amount cannot exceed order amount")

    raise NotFoundError(
        f"Order {order_id} not found",
        error_code="ORDER_NOT_FOUND",
        details={"order_id": str(order_id)},
    )

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, identifiers, etc.)
        http_status: Status code used when the error reaches a view
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Order not found",
                "error_code": "ORDER_NOT_FOUND",
                "details": {"order_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for malformed input and business rule violations the caller can
    correct (quantity bounds, amount limits, missing fields).

    Example:
        raise ValidationError(
            "Amount and items are required for partial refunds",
            details={"amount": ["This field is required."]},
        )
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class StateError(BaseApplicationError):
    """
    Raised when a resource is not in a state that permits the operation.

    Example:
        if order.status != OrderStatus.PAID:
            raise StateError("Only paid orders can be refunded")
    """

    default_error_code: str = "INVALID_STATE"
    http_status: int = 400


class AuthenticationRequiredError(BaseApplicationError):
    """Raised when an operation needs an actor or store context that is missing."""

    default_error_code: str = "AUTHENTICATION_REQUIRED"
    http_status: int = 401


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the actor lacks permission for an operation.

    Example:
        if not actor_role.can_initiate_refund():
            raise PermissionDeniedError(
                "Role cannot initiate refunds",
                error_code="ROLE_NOT_ALLOWED",
                details={"role": actor_role},
            )
    """

    default_error_code: str = "PERMISSION_DENIED"
    http_status: int = 403


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Use NotFoundError for single-resource lookups where existence is expected.
    List queries return empty results instead.
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with concurrent or earlier work.

    Use for:
    - Duplicate submissions (same idempotency fingerprint)
    - Lock contention on a shared resource
    - Invalid state transitions on versioned records
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Note:
        Log the original error for debugging but don't expose
        internal details to clients in production.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = 502
