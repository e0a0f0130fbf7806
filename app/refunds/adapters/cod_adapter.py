"""
Cash-on-delivery refund adapter.

COD money is returned by hand (cash or bank transfer by the store), so
there is no provider to call. The adapter reports the refund as
succeeded straight away; the Refund is recorded and compensated exactly
like a card refund.

The reversal id is derived from the idempotency key, so a replayed
request maps onto the Refund that was already recorded.
"""

from __future__ import annotations

import logging

from core.helpers import hash_string
from orders.models import PaymentProvider
from refunds.adapters.base import ProviderRefundResult
from refunds.state_machines import ProviderRefundStatus

logger = logging.getLogger(__name__)


class CashOnDeliveryRefundAdapter:
    """Manual refunds for orders paid in cash on delivery."""

    provider = PaymentProvider.COD

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
        Record a manual COD refund.

        Full refunds carry no amount; the amount computed for the Refund is
        read from metadata["amount_cents"].
        """
        metadata = metadata or {}
        if amount_cents is None:
            amount_cents = int(metadata.get("amount_cents") or 0)

        refund_id = f"cod_{hash_string(idempotency_key)[:24]}"
        logger.info(
            "Manual COD refund issued",
            extra={
                "refund_id": refund_id,
                "payment_reference": payment_reference,
                "order_id": metadata.get("order_id"),
                "amount_cents": amount_cents,
            },
        )
        return ProviderRefundResult(
            refund_id=refund_id,
            amount_cents=amount_cents,
            currency=currency.lower(),
            status=ProviderRefundStatus.SUCCEEDED,
            raw_response={
                "id": refund_id,
                "payment_reference": payment_reference,
                "amount_cents": amount_cents,
                "reason": reason or "",
                "manual": True,
            },
        )


__all__ = ["CashOnDeliveryRefundAdapter"]
