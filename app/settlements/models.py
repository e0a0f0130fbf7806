"""
Split ledger models.

This module defines:
- PartyRole: Parties that receive a share of an order's revenue
- SplitStatus / LedgerEntryType / LedgerEntryStatus: Choice enums
- PaymentSplit: How one order's payment was divided between parties
- SplitLedgerEntry: Append-only signed entry for one party

Design Notes:
    - All amounts are integer minor units
    - SplitLedgerEntry rows are immutable once written; corrections are
      new entries with the opposite sign
    - Each entry carries a unique idempotency_key so retried postings
      are detected by the database
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from core.models import BaseModel
from settlements.exceptions import LedgerImmutableError


class PartyRole(models.TextChoices):
    """Parties that share an order's revenue."""

    SUPPLIER = "supplier", "Supplier"
    RESELLER = "reseller", "Reseller"
    PLATFORM = "platform", "Platform"


class SplitStatus(models.TextChoices):
    """
    Split lifecycle.

    State Flow:
        PENDING -> LOCKED (payout scheduled) -> SETTLED
        PENDING/LOCKED -> SETTLED (reversed by refund)
    """

    PENDING = "pending", "Pending"
    LOCKED = "locked", "Locked"
    SETTLED = "settled", "Settled"


class PaymentMethod(models.TextChoices):
    """How the split order was paid."""

    STRIPE = "stripe", "Stripe"
    PAYPAL = "paypal", "PayPal"
    COD = "cod", "Cash on delivery"
    COD_PARTIAL = "cod_partial", "Partial cash on delivery"
    CRYPTO = "crypto", "Crypto"


class LedgerEntryType(models.TextChoices):
    """Category of a split ledger entry."""

    SPLIT = "split", "Split"
    REVERSAL = "reversal", "Reversal"


class LedgerEntryStatus(models.TextChoices):
    """Payout status of a split ledger entry."""

    PENDING = "pending", "Pending"
    AVAILABLE = "available", "Available"
    PAID = "paid", "Paid"


class PaymentSplit(BaseModel):
    """
    Division of one order's payment between supplier, reseller and platform.

    Constraints:
        supplier_amount_cents + reseller_amount_cents + platform_amount_cents
        == total_amount_cents
    """

    store = models.ForeignKey(
        "orders.Store",
        on_delete=models.PROTECT,
        related_name="payment_splits",
        help_text="Store the order belongs to",
    )
    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="payment_split",
        help_text="Order whose payment is split",
    )
    payment = models.ForeignKey(
        "orders.Payment",
        on_delete=models.PROTECT,
        related_name="splits",
        help_text="Payment being split",
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        help_text="How the order was paid",
    )
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )
    total_amount_cents = models.PositiveBigIntegerField(
        help_text="Total amount split, in minor units",
    )

    # ==========================================================================
    # Shares
    # ==========================================================================

    supplier = models.ForeignKey(
        "inventory.Supplier",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payment_splits",
        help_text="Supplier receiving the supplier share",
    )
    supplier_amount_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Supplier share in minor units",
    )
    reseller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payment_splits",
        help_text="Reseller receiving the reseller share",
    )
    reseller_amount_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Reseller share in minor units",
    )
    platform_amount_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Platform share in minor units",
    )

    status = models.CharField(
        max_length=20,
        choices=SplitStatus.choices,
        default=SplitStatus.PENDING,
        db_index=True,
        help_text="Split lifecycle status",
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(
                    total_amount_cents=F("supplier_amount_cents")
                    + F("reseller_amount_cents")
                    + F("platform_amount_cents")
                ),
                name="settlements_split_shares_sum_to_total",
            ),
        ]

    def __str__(self) -> str:
        return f"Split for order {self.order_id} ({self.status})"

    def shares(self) -> list[tuple[str, str, int]]:
        """Return (party_role, party_reference, amount_cents) for non-zero shares."""
        shares = [
            (PartyRole.SUPPLIER, str(self.supplier_id or ""), self.supplier_amount_cents),
            (PartyRole.RESELLER, str(self.reseller_id or ""), self.reseller_amount_cents),
            (PartyRole.PLATFORM, "platform", self.platform_amount_cents),
        ]
        return [share for share in shares if share[2] > 0]


class SplitLedgerEntry(BaseModel):
    """
    Append-only signed ledger entry for one party of an order split.

    Positive entries are written when the order is paid; refunds append
    negative entries tagged with the refund that caused them.
    """

    store = models.ForeignKey(
        "orders.Store",
        on_delete=models.PROTECT,
        related_name="split_ledger_entries",
        help_text="Store the order belongs to",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="split_ledger_entries",
        help_text="Order this entry settles",
    )
    split = models.ForeignKey(
        PaymentSplit,
        on_delete=models.PROTECT,
        related_name="entries",
        help_text="Split this entry belongs to",
    )
    refund = models.ForeignKey(
        "refunds.Refund",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
        help_text="Refund that caused this reversal entry",
    )
    reverses = models.OneToOneField(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reversed_by",
        help_text="Original entry this entry reverses",
    )

    party_role = models.CharField(
        max_length=20,
        choices=PartyRole.choices,
        help_text="Party receiving (or giving back) the amount",
    )
    party_reference = models.CharField(
        max_length=64,
        help_text="Identifier of the party (supplier id, user id, 'platform')",
    )
    entry_type = models.CharField(
        max_length=20,
        choices=LedgerEntryType.choices,
        db_index=True,
        help_text="Split posting or reversal",
    )
    amount_cents = models.BigIntegerField(
        help_text="Signed amount in minor units (negative for reversals)",
    )
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )
    status = models.CharField(
        max_length=20,
        choices=LedgerEntryStatus.choices,
        default=LedgerEntryStatus.PENDING,
        help_text="Payout status",
    )
    available_at = models.DateTimeField(
        help_text="When the amount becomes available for payout",
    )
    description = models.TextField(
        blank=True,
        default="",
        help_text="Human-readable description of this entry",
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON data (reason, actor, reversal flag)",
    )
    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Unique key to prevent duplicate entries",
    )

    class Meta:
        verbose_name_plural = "split ledger entries"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "entry_type"], name="settlements_order_type_idx"),
            models.Index(fields=["party_role", "party_reference"], name="settlements_party_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(amount_cents=0),
                name="settlements_entry_amount_nonzero",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_entry_type_display()} {self.party_role}: {self.amount_cents}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise LedgerImmutableError(
                "Split ledger entries cannot be modified",
                details={"entry_id": self.pk},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise LedgerImmutableError(
            "Split ledger entries cannot be deleted",
            details={"entry_id": self.pk},
        )
