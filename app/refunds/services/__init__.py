"""
Refund services.

- RefundService: request orchestration (lock, validate, provider, record)
- RefundRecorder: atomic Refund + items + outbox write
- CompensationService: runs outbox tasks
- InventoryRestorationCoordinator / SplitReversalCoordinator: the
  compensations themselves
"""

from refunds.services.compensation import (
    CompensationService,
    InventoryRestorationCoordinator,
    SplitReversalCoordinator,
)
from refunds.services.recorder import RecordedRefund, RefundRecorder
from refunds.services.refund_service import RefundOutcome, RefundService

__all__ = [
    "RefundService",
    "RefundOutcome",
    "RefundRecorder",
    "RecordedRefund",
    "CompensationService",
    "InventoryRestorationCoordinator",
    "SplitReversalCoordinator",
]
