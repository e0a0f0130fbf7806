"""
Split ledger exceptions.

Exception Hierarchy:
    LedgerError (base)
    ├── LedgerImmutableError - Attempt to edit or delete an entry
    └── SplitAmountMismatch - Shares do not sum to the split total
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError


class LedgerError(BaseApplicationError):
    """Base exception for split ledger operations."""

    default_error_code = "LEDGER_ERROR"


class LedgerImmutableError(LedgerError):
    """Ledger entries are append-only."""

    default_error_code = "LEDGER_IMMUTABLE"


class SplitAmountMismatch(LedgerError):
    """Split shares do not add up to the split total."""

    default_error_code = "SPLIT_AMOUNT_MISMATCH"
    http_status = 400
