"""
Provider-neutral refund adapter interface.

Each payment provider gets one adapter that issues refunds. Adapters
translate provider failures to ProviderError subclasses; a raised
ProviderError always means no refund was recorded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from refunds.state_machines import ProviderRefundStatus


@dataclass
class ProviderRefundResult:
    """
    Result of a provider refund call.

    Attributes:
        refund_id: Provider's refund identifier (re_xxx, PayPal refund id)
        amount_cents: Refunded amount in minor units
        currency: Lowercase ISO 4217 code
        status: Normalized status (succeeded, pending, failed)
        raw_response: Provider response body
    """

    refund_id: str
    amount_cents: int
    currency: str
    status: str
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == ProviderRefundStatus.SUCCEEDED


@runtime_checkable
class RefundProviderAdapter(Protocol):
    """Interface every provider adapter implements."""

    provider: str

    def create_refund(
        self,
        payment_reference: str,
        idempotency_key: str,
        currency: str,
        amount_cents: int | None = None,
        reason: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> ProviderRefundResult:
        """
        Issue a refund against a captured payment.

        Args:
            payment_reference: PaymentIntent id (Stripe) or capture id (PayPal)
            idempotency_key: Key the provider uses to deduplicate retries
            currency: Payment currency
            amount_cents: Amount to refund; None refunds the full payment
            reason: Human-readable reason
            metadata: String metadata attached to the refund

        Raises:
            ProviderError: Provider refused, timed out or was unreachable
        """
        ...


__all__ = [
    "ProviderRefundResult",
    "RefundProviderAdapter",
]
