"""
Refund and RefundItem models.

A Refund is the authoritative record that a provider returned money for
an order. It is written once, after the provider responded, and is
never deleted. The only field that changes afterwards is
inventory_restored (false → true).

Usage:
    from refunds.models import Refund

    refunds = Refund.objects.for_order(order)
    refunded = Refund.objects.refunded_amount(order)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q, Sum

from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel
from authentication.models import ActorRole
from refunds.exceptions import RefundImmutableError
from refunds.state_machines import ProviderRefundStatus, RefundType

# Statuses that count against the refundable balance
ACTIVE_REFUND_STATUSES = (ProviderRefundStatus.SUCCEEDED, ProviderRefundStatus.PENDING)


class RefundQuerySet(models.QuerySet):
    def for_order(self, order):
        return self.filter(order=order).order_by("-created_at")

    def active(self):
        """Refunds that returned (or may still return) money."""
        return self.filter(provider_status__in=ACTIVE_REFUND_STATUSES)

    def refunded_amount(self, order) -> int:
        """Sum of active refund amounts for an order, in minor units."""
        return (
            self.active()
            .filter(order=order)
            .aggregate(total=Sum("amount_cents"))["total"]
            or 0
        )


class Refund(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    Money returned to a customer for all or part of an order.

    Fields:
        store / order / payment: What was refunded
        refund_type: full or partial
        reason: Requested reason (sent to the provider)
        amount_cents: Refunded amount in minor units
        currency: ISO 4217 currency code
        provider: Payment network that executed the refund
        provider_refund_id: Provider's reversal identifier
        provider_status: Outcome reported by the provider
        inventory_restored: Whether stock was credited back
        request_fingerprint: Idempotency fingerprint of the request
        initiated_by / initiated_by_role: Actor that requested the refund

    Constraints:
        - amount_cents > 0
        - provider_refund_id unique
        - one active refund per (order, request_fingerprint)
    """

    # Fields that may change after creation
    MUTABLE_FIELDS = frozenset({"inventory_restored", "updated_at"})

    # ==========================================================================
    # Relationships
    # ==========================================================================

    store = models.ForeignKey(
        "orders.Store",
        on_delete=models.PROTECT,
        related_name="refunds",
        help_text="Store the refunded order belongs to",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="refunds",
        help_text="Refunded order",
    )
    payment = models.ForeignKey(
        "orders.Payment",
        on_delete=models.PROTECT,
        related_name="refunds",
        help_text="Payment the money was returned from",
    )

    # ==========================================================================
    # Request
    # ==========================================================================

    refund_type = models.CharField(
        max_length=10,
        choices=RefundType.choices,
        help_text="Full or partial refund",
    )
    reason = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Reason for the refund",
    )
    request_fingerprint = models.CharField(
        max_length=64,
        db_index=True,
        help_text="SHA-256 fingerprint of the refund request (idempotency)",
    )
    initiated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="initiated_refunds",
        help_text="User who requested the refund",
    )
    initiated_by_role = models.CharField(
        max_length=20,
        choices=ActorRole.choices,
        help_text="Role the requesting actor acted in",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Refund amount in smallest currency unit (e.g., cents)",
    )
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # Provider Outcome
    # ==========================================================================

    provider = models.CharField(
        max_length=20,
        help_text="Payment network that executed the refund",
    )
    provider_refund_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Provider reversal identifier (Stripe re_xxx, PayPal refund id)",
    )
    provider_status = models.CharField(
        max_length=20,
        choices=ProviderRefundStatus.choices,
        db_index=True,
        help_text="Refund status reported by the provider",
    )

    # ==========================================================================
    # Compensation
    # ==========================================================================

    inventory_restored = models.BooleanField(
        default=False,
        help_text="Whether refunded units were credited back to stock",
    )

    objects = RefundQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["order", "provider_status"], name="refunds_order_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_cents__gt=0),
                name="refunds_refund_amount_positive",
            ),
            models.UniqueConstraint(
                fields=["order", "request_fingerprint"],
                condition=Q(provider_status__in=["succeeded", "pending"]),
                name="refunds_unique_active_request_per_order",
            ),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency.upper()}"
        return f"Refund({self.id}, {self.provider_status}, {amount_display})"

    def save(self, *args, **kwargs):
        """Refunds are immutable once written except for inventory_restored."""
        if not self._state.adding:
            update_fields = kwargs.get("update_fields")
            if update_fields is None or not set(update_fields) <= self.MUTABLE_FIELDS:
                raise RefundImmutableError(
                    "Refunds cannot be modified after creation",
                    details={"refund_id": str(self.pk)},
                )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RefundImmutableError(
            "Refunds cannot be deleted",
            details={"refund_id": str(self.pk)},
        )

    @property
    def succeeded(self) -> bool:
        return self.provider_status == ProviderRefundStatus.SUCCEEDED

    @property
    def actor_role(self) -> ActorRole:
        return ActorRole(self.initiated_by_role)


class RefundItem(BaseModel):
    """
    One refunded order line (the ordered itemsRefunded list).
    """

    refund = models.ForeignKey(
        Refund,
        on_delete=models.PROTECT,
        related_name="items",
        help_text="Refund this line belongs to",
    )
    position = models.PositiveIntegerField(
        help_text="Zero-based position in the refund's item list",
    )
    product_id = models.CharField(
        max_length=64,
        help_text="Catalog product identifier",
    )
    variant_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Catalog variant identifier",
    )
    quantity = models.PositiveIntegerField(
        help_text="Refunded quantity",
    )
    amount_cents = models.PositiveBigIntegerField(
        help_text="Refunded amount for this line in minor units",
    )

    class Meta:
        ordering = ["refund", "position"]
        constraints = [
            models.UniqueConstraint(
                fields=["refund", "position"],
                name="refunds_item_unique_position",
            ),
            models.CheckConstraint(
                condition=Q(quantity__gte=1),
                name="refunds_item_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity} ({self.amount_cents})"
