"""
RefundRecorder: persists the outcome of a provider refund call.

One transaction writes the Refund, its ordered RefundItems and, when the
provider reported success, one pending CompensationTask per compensation
kind. Pending and failed provider outcomes are recorded too; they never
get compensation tasks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import IntegrityError

from authentication.models import ActorRole
from core.services import BaseService
from refunds.exceptions import DuplicateRefundError
from refunds.models import CompensationTask, Refund, RefundItem
from refunds.state_machines import CompensationKind, ProviderRefundStatus

if TYPE_CHECKING:
    from orders.services import ResolvedOrderPayment
    from refunds.adapters.base import ProviderRefundResult
    from refunds.calculator import RefundBreakdown
    from refunds.validators import RefundRequest


@dataclass
class RecordedRefund:
    refund: Refund
    created: bool


class RefundRecorder(BaseService):
    """Writes Refund rows exactly once per provider reversal."""

    @classmethod
    def record(
        cls,
        resolved: ResolvedOrderPayment,
        request: RefundRequest,
        breakdown: RefundBreakdown,
        provider_result: ProviderRefundResult,
        fingerprint: str,
        actor=None,
        actor_role: ActorRole | str = ActorRole.SYSTEM,
    ) -> RecordedRefund:
        """
        Persist a provider refund.

        A provider that replays an earlier reversal (same refund id) gets
        the Refund already on record back with created=False.

        Raises:
            DuplicateRefundError: An active refund with the same fingerprint
                exists under a different provider refund id
        """
        order = resolved.order
        payment = resolved.payment
        logger = cls.get_logger()

        try:
            with cls.atomic():
                refund = Refund.objects.create(
                    store_id=order.store_id,
                    order=order,
                    payment=payment,
                    refund_type=request.refund_type,
                    reason=request.reason,
                    request_fingerprint=fingerprint,
                    initiated_by=actor,
                    initiated_by_role=ActorRole(actor_role),
                    amount_cents=breakdown.amount_cents,
                    currency=breakdown.currency,
                    provider=payment.provider,
                    provider_refund_id=provider_result.refund_id,
                    provider_status=provider_result.status,
                    metadata={
                        "provider_amount_cents": provider_result.amount_cents,
                        "provider_currency": provider_result.currency,
                        "idempotency_key": request.idempotency_key or None,
                    },
                )
                RefundItem.objects.bulk_create(
                    [
                        RefundItem(
                            refund=refund,
                            position=position,
                            product_id=line.product_id,
                            variant_id=line.variant_id,
                            quantity=line.quantity,
                            amount_cents=line.amount_cents,
                        )
                        for position, line in enumerate(breakdown.lines)
                    ]
                )
                if provider_result.status == ProviderRefundStatus.SUCCEEDED:
                    CompensationTask.objects.bulk_create(
                        [CompensationTask(refund=refund, kind=kind) for kind in CompensationKind.values]
                    )
        except IntegrityError:
            existing = Refund.objects.filter(provider_refund_id=provider_result.refund_id).first()
            if existing is not None:
                logger.info(
                    "Provider replayed a recorded refund",
                    extra={
                        "refund_id": str(existing.pk),
                        "provider_refund_id": provider_result.refund_id,
                        "order_id": str(order.id),
                    },
                )
                return RecordedRefund(refund=existing, created=False)
            raise DuplicateRefundError(
                "An identical refund has already been recorded for this order",
                details={"order_id": str(order.id)},
            ) from None

        logger.info(
            "Recorded refund",
            extra={
                "refund_id": str(refund.pk),
                "order_id": str(order.id),
                "provider": payment.provider,
                "provider_refund_id": provider_result.refund_id,
                "provider_status": provider_result.status,
                "amount_cents": breakdown.amount_cents,
            },
        )
        return RecordedRefund(refund=refund, created=True)


__all__ = ["RecordedRefund", "RefundRecorder"]
