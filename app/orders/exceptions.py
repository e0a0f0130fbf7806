"""
Order lookup exceptions.

Exception Hierarchy:
    NotFoundError
    ├── OrderNotFoundError
    └── PaymentNotFoundError
    StateError
    └── OrderNotPaidError
"""

from __future__ import annotations

from core.exceptions import NotFoundError, StateError


class OrderNotFoundError(NotFoundError):
    """Order does not exist in the requesting store."""

    default_error_code = "ORDER_NOT_FOUND"


class PaymentNotFoundError(NotFoundError):
    """No successful payment exists for the order."""

    default_error_code = "PAYMENT_NOT_FOUND"


class OrderNotPaidError(StateError):
    """Order is not in the paid state."""

    default_error_code = "ORDER_NOT_PAID"


__all__ = [
    "OrderNotFoundError",
    "PaymentNotFoundError",
    "OrderNotPaidError",
]
