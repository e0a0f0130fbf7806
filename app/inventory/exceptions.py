"""
Inventory exceptions.
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError


class InventoryError(BaseApplicationError):
    """Base exception for inventory operations."""

    default_error_code = "INVENTORY_ERROR"


class ReservationNotFoundError(InventoryError):
    """No consumed reservation matches a refunded line."""

    default_error_code = "RESERVATION_NOT_FOUND"


class InventoryRecordNotFoundError(InventoryError):
    """The supplier stock pool for a reservation does not exist."""

    default_error_code = "INVENTORY_RECORD_NOT_FOUND"
