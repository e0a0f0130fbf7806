"""
State machine enums for refund models.
"""

from refunds.state_machines.states import (
    CompensationKind,
    CompensationStatus,
    ProviderRefundStatus,
    RefundType,
)

__all__ = [
    "CompensationKind",
    "CompensationStatus",
    "ProviderRefundStatus",
    "RefundType",
]
