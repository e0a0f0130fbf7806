"""
State enums for refund models.

State Machines Overview:

Refund (one record per provider call that returned a result):
    validated → provider-requested → succeeded | pending | failed
    The provider outcome is recorded once and never changes. Only
    inventory_restored moves afterwards (false → true).

CompensationTask (durable outbox entry, succeeded refunds only):
    pending → succeeded
    pending → failed → succeeded (retried)
    failed → failed (retried again, attempts incremented)
"""

from django.db import models


class RefundType(models.TextChoices):
    """Full refunds cover the whole payment; partial refunds name items."""

    FULL = "full", "Full"
    PARTIAL = "partial", "Partial"


class ProviderRefundStatus(models.TextChoices):
    """
    Refund outcome as reported by the payment provider.

    Only SUCCEEDED triggers compensations.
    """

    SUCCEEDED = "succeeded", "Succeeded"
    PENDING = "pending", "Pending"
    FAILED = "failed", "Failed"


class CompensationKind(models.TextChoices):
    """Corrective steps run after a successful provider refund."""

    INVENTORY_RESTORE = "inventory_restore", "Inventory restore"
    SPLIT_REVERSAL = "split_reversal", "Split reversal"


class CompensationStatus(models.TextChoices):
    """
    States for the CompensationTask outbox entry.

    State Flow:
        PENDING → SUCCEEDED
        PENDING → FAILED
        FAILED → SUCCEEDED | FAILED (retry)
    """

    PENDING = "pending", "Pending"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
