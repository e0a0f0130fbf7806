"""
Refund-specific exceptions.

Exception Hierarchy:
    ValidationError
    └── RefundValidationError - Bad request shape or business rule (400)
    StateError
    └── OrderNotPaidError - Order not in a refundable state (400)
    NotFoundError
    ├── OrderNotFoundError / PaymentNotFoundError (404)
    └── RefundNotFoundError (404)
    ConflictError
    ├── RefundImmutableError - Recorded refunds are never edited (409)
    ├── DuplicateRefundError - Same request already refunded (409)
    ├── OrderFullyRefundedError - Nothing left to refund (409)
    └── LockAcquisitionError - Another refund for the order is running (409)
    ExternalServiceError
    └── ProviderError - Provider call failed; nothing persisted (502)
        ├── ProviderTimeoutError - Transport timeout (retryable)
        ├── ProviderUnavailableError - Rate limit, 5xx, connection (retryable)
        ├── ProviderRejectedError - Provider refused the request
        └── ProviderConfigurationError - Credentials/adapter missing
    CompensationFailure - Post-refund step failed (logged, never an HTTP error)
    ├── InventoryRestorationError
    └── SplitReversalError

Propagation policy:
    Validation, state and not-found errors are raised before any provider
    call. Provider errors abort with nothing persisted. Compensation
    failures are recorded on the outbox task and logged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from orders.exceptions import OrderNotFoundError, OrderNotPaidError, PaymentNotFoundError

if TYPE_CHECKING:
    from typing import Any


class RefundValidationError(ValidationError):
    """Refund request failed validation."""

    default_error_code = "REFUND_VALIDATION_ERROR"


class RefundNotFoundError(NotFoundError):
    default_error_code = "REFUND_NOT_FOUND"


class RefundImmutableError(ConflictError):
    """A recorded refund cannot be edited or deleted."""

    default_error_code = "REFUND_IMMUTABLE"


# =============================================================================
# Concurrency
# =============================================================================


class DuplicateRefundError(ConflictError):
    """
    An identical refund request has already been executed.

    Raised before the provider call when a non-failed refund with the same
    request fingerprint exists for the order.
    """

    default_error_code = "DUPLICATE_REFUND"


class OrderFullyRefundedError(ConflictError):
    """The order's payment has already been refunded in full."""

    default_error_code = "ORDER_FULLY_REFUNDED"


class LockAcquisitionError(ConflictError):
    """Could not acquire the distributed lock for an order."""

    default_error_code = "LOCK_ACQUISITION_FAILED"


# =============================================================================
# Provider Errors
# =============================================================================


class ProviderError(ExternalServiceError):
    """
    Base exception for payment provider failures.

    Attributes:
        provider: Provider name ("stripe", "paypal")
        provider_code: Provider's own error code, if any
        is_retryable: Whether resending the same request may succeed

    Note:
        A ProviderError never means money moved. Callers may retry the
        whole refund request; the provider idempotency key deduplicates.
    """

    default_error_code = "PROVIDER_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        provider_code: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if provider:
            details["provider"] = provider
        if provider_code:
            details["provider_code"] = provider_code
        details["retryable"] = self.is_retryable
        super().__init__(message, error_code=error_code, details=details)
        self.provider = provider
        self.provider_code = provider_code


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within the transport timeout."""

    default_error_code = "PROVIDER_TIMEOUT"
    is_retryable = True


class ProviderUnavailableError(ProviderError):
    """Provider rate-limited us, returned 5xx, or could not be reached."""

    default_error_code = "PROVIDER_UNAVAILABLE"
    is_retryable = True


class ProviderRejectedError(ProviderError):
    """Provider refused the refund (invalid request, already refunded, etc.)."""

    default_error_code = "PROVIDER_REJECTED"
    is_retryable = False


class ProviderConfigurationError(ProviderError):
    """Provider credentials are invalid or no adapter is registered."""

    default_error_code = "PROVIDER_CONFIGURATION_ERROR"
    is_retryable = False


# =============================================================================
# Compensation Errors
# =============================================================================


class CompensationFailure(BaseApplicationError):
    """
    A compensation step failed after the provider refunded the customer.

    Never surfaced as an HTTP error; recorded on the CompensationTask and
    retried by the outbox worker.
    """

    default_error_code = "COMPENSATION_FAILED"


class InventoryRestorationError(CompensationFailure):
    default_error_code = "INVENTORY_RESTORATION_FAILED"


class SplitReversalError(CompensationFailure):
    default_error_code = "SPLIT_REVERSAL_FAILED"


__all__ = [
    "RefundValidationError",
    "RefundNotFoundError",
    "RefundImmutableError",
    "OrderNotFoundError",
    "OrderNotPaidError",
    "PaymentNotFoundError",
    "DuplicateRefundError",
    "OrderFullyRefundedError",
    "LockAcquisitionError",
    "ProviderError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "ProviderRejectedError",
    "ProviderConfigurationError",
    "CompensationFailure",
    "InventoryRestorationError",
    "SplitReversalError",
]
