"""
Split ledger service layer.

All split ledger writes go through SplitLedgerService:
- record_split(): post one positive entry per party when an order is paid
- reverse_split(): append the additive inverse of those entries for a refund

Key features:
- Atomic transactions for multi-entry postings
- Idempotency via unique keys (safe to retry)
- Split row locked while reversing so concurrent reversals serialize
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.db import IntegrityError
from django.db.models import Sum
from django.utils import timezone

from audit.models import AuditAction
from audit.services import AuditService
from authentication.models import ActorRole
from core.services import BaseService, ServiceResult
from settlements.exceptions import SplitAmountMismatch
from settlements.models import (
    LedgerEntryStatus,
    LedgerEntryType,
    PaymentSplit,
    SplitLedgerEntry,
    SplitStatus,
)

if TYPE_CHECKING:
    from orders.models import Order


@dataclass
class SplitReversal:
    """Outcome of a split reversal."""

    split_id: int
    entries: list[SplitLedgerEntry] = field(default_factory=list)
    already_reversed: bool = False

    @property
    def reversed_amounts(self) -> dict[str, int]:
        """Reversed amount per party role (positive numbers)."""
        amounts: dict[str, int] = {}
        for entry in self.entries:
            amounts[entry.party_role] = amounts.get(entry.party_role, 0) - entry.amount_cents
        return amounts


class SplitLedgerService(BaseService):
    """Postings against the split-payment ledger."""

    @classmethod
    def record_split(cls, split: PaymentSplit) -> list[SplitLedgerEntry]:
        """
        Post the positive per-party entries for a paid order.

        Idempotent: entries already posted for the split are returned as-is.

        Raises:
            SplitAmountMismatch: If the shares don't sum to the split total
        """
        shares = split.shares()
        if sum(amount for _, _, amount in shares) != split.total_amount_cents:
            raise SplitAmountMismatch(
                f"Split shares do not sum to {split.total_amount_cents}",
                details={"split_id": split.pk},
            )

        existing = list(split.entries.filter(entry_type=LedgerEntryType.SPLIT))
        if existing:
            return existing

        now = timezone.now()
        entries = []
        try:
            with cls.atomic():
                for party_role, party_reference, amount_cents in shares:
                    entries.append(
                        SplitLedgerEntry.objects.create(
                            store_id=split.store_id,
                            order_id=split.order_id,
                            split=split,
                            party_role=party_role,
                            party_reference=party_reference,
                            entry_type=LedgerEntryType.SPLIT,
                            amount_cents=amount_cents,
                            currency=split.currency,
                            status=LedgerEntryStatus.PENDING,
                            available_at=now,
                            description=f"Split for order {split.order_id}",
                            idempotency_key=f"split:{split.order_id}:{party_role}",
                        )
                    )
        except IntegrityError:
            # Concurrent posting won the race
            return list(split.entries.filter(entry_type=LedgerEntryType.SPLIT))

        cls.get_logger().info(
            f"Recorded split for order {split.order_id}",
            extra={"split_id": split.pk, "order_id": str(split.order_id)},
        )
        return entries

    @classmethod
    def reverse_split(
        cls,
        order: Order,
        reason: str,
        actor=None,
        actor_role: ActorRole | str = ActorRole.SYSTEM,
        refund=None,
    ) -> ServiceResult[SplitReversal]:
        """
        Append entries that cancel every split entry posted for an order.

        Args:
            order: Refunded order
            reason: Human-readable reason stored on each entry
            actor: User initiating the reversal (None for system jobs)
            actor_role: Role the actor acts in
            refund: Refund the reversal is traced back to

        Returns:
            ServiceResult with a SplitReversal. Failure when the order has
            no split or nothing was posted for it.
        """
        actor_role = ActorRole(actor_role)
        logger = cls.get_logger()

        try:
            with cls.atomic():
                split = (
                    PaymentSplit.objects.select_for_update()
                    .filter(order=order)
                    .first()
                )
                if split is None:
                    return ServiceResult.failure(
                        f"Payment split not found for order {order.id}",
                        error_code="SPLIT_NOT_FOUND",
                    )

                existing = list(
                    split.entries.filter(entry_type=LedgerEntryType.REVERSAL)
                )
                if existing:
                    logger.info(
                        f"Split for order {order.id} already reversed",
                        extra={"order_id": str(order.id), "split_id": split.pk},
                    )
                    return ServiceResult.success(
                        SplitReversal(split_id=split.pk, entries=existing, already_reversed=True)
                    )

                originals = list(
                    split.entries.filter(entry_type=LedgerEntryType.SPLIT).order_by("id")
                )
                if not originals:
                    return ServiceResult.failure(
                        f"No split entries to reverse for order {order.id}",
                        error_code="SPLIT_ENTRIES_NOT_FOUND",
                    )

                metadata = {
                    "reason": reason,
                    "reversal": True,
                    "refund_id": str(refund.pk) if refund is not None else None,
                    "actor_id": str(actor.pk) if actor is not None else None,
                    "actor_role": actor_role.value,
                }

                now = timezone.now()
                entries = [
                    SplitLedgerEntry.objects.create(
                        store_id=original.store_id,
                        order_id=original.order_id,
                        split=split,
                        refund=refund,
                        reverses=original,
                        party_role=original.party_role,
                        party_reference=original.party_reference,
                        entry_type=LedgerEntryType.REVERSAL,
                        amount_cents=-original.amount_cents,
                        currency=original.currency,
                        status=LedgerEntryStatus.PENDING,
                        available_at=now,
                        description=reason,
                        metadata=metadata,
                        idempotency_key=f"split-reversal:{order.id}:{original.party_role}",
                    )
                    for original in originals
                ]

                split.status = SplitStatus.SETTLED
                split.save(update_fields=["status", "updated_at"])
        except IntegrityError as e:
            return cls.handle_exception(e, f"Split reversal for order {order.id} conflicted")

        reversal = SplitReversal(split_id=split.pk, entries=entries)

        logger.info(
            f"Reversed split for order {order.id}",
            extra={
                "order_id": str(order.id),
                "split_id": split.pk,
                "refund_id": str(refund.pk) if refund is not None else None,
                "reversed_amounts": reversal.reversed_amounts,
            },
        )

        AuditService.log(
            action=AuditAction.SPLIT_REVERSED,
            entity_type="PaymentSplit",
            entity_id=split.pk,
            actor=actor,
            actor_role=actor_role,
            store=order.store,
            description=f"Payment split reversed for order {order.id}",
            after={"status": split.status, "reversed_amounts": reversal.reversed_amounts},
            metadata={"order_id": str(order.id), "reason": reason},
        )

        return ServiceResult.success(reversal)

    @staticmethod
    def get_net_amount(order: Order, party_role: str | None = None) -> int:
        """Sum of all entries for an order (optionally one party)."""
        entries = SplitLedgerEntry.objects.filter(order=order)
        if party_role:
            entries = entries.filter(party_role=party_role)
        return entries.aggregate(total=Sum("amount_cents"))["total"] or 0


__all__ = [
    "SplitReversal",
    "SplitLedgerService",
]
