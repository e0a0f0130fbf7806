"""
Refund domain models.

- Refund / RefundItem: The authoritative refund record and its lines
- CompensationTask: Outbox of post-refund corrective steps
"""

from refunds.models.compensation import CompensationTask
from refunds.models.refund import ACTIVE_REFUND_STATUSES, Refund, RefundItem

__all__ = [
    "ACTIVE_REFUND_STATUSES",
    "Refund",
    "RefundItem",
    "CompensationTask",
]
