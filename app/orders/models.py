"""
Store, Order, OrderItem and Payment models.

Monetary conventions:
    - Order and line prices are Decimal major units, as checkout writes them
    - Payment.amount_cents is the authoritative captured amount in minor units

Usage:
    from orders.models import Order, OrderStatus, Payment, PaymentStatus

    order = Order.objects.get(store=store, pk=order_id)
    payment = order.payments.get(status=PaymentStatus.PAID)
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel


class OrderStatus(models.TextChoices):
    """
    Order lifecycle states.

    State Flow:
        CREATED -> PAID -> FULFILLED
        CREATED -> CANCELLED
    """

    CREATED = "created", "Created"
    PAID = "paid", "Paid"
    FULFILLED = "fulfilled", "Fulfilled"
    CANCELLED = "cancelled", "Cancelled"


class PaymentProvider(models.TextChoices):
    """Payment networks an order can be captured through."""

    STRIPE = "stripe", "Stripe"
    PAYPAL = "paypal", "PayPal"
    COD = "cod", "Cash on delivery"


class PaymentStatus(models.TextChoices):
    """Payment states. PAID payments are immutable."""

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"


class Store(BaseModel):
    """
    A storefront. Orders, inventory and ledger entries are scoped to a store.
    """

    name = models.CharField(
        max_length=200,
        help_text="Display name of the store",
    )
    slug = models.SlugField(
        max_length=100,
        unique=True,
        help_text="Unique store identifier used in URLs and subdomains",
    )
    default_currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    A customer order and its lifecycle status.

    Fields:
        store: Owning store
        reference: Human-facing order number, unique per store
        status: Lifecycle status (managed by checkout)
        currency: ISO 4217 currency code
        total_amount: Order total in major units
    """

    store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name="orders",
        help_text="Store that owns this order",
    )
    reference = models.CharField(
        max_length=64,
        help_text="Human-facing order number",
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.CREATED,
        db_index=True,
        help_text="Order lifecycle status",
    )
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Order total in major currency units",
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["store", "reference"],
                name="orders_order_unique_reference_per_store",
            ),
        ]

    def __str__(self) -> str:
        return f"Order {self.reference} ({self.status})"

    @property
    def is_paid(self) -> bool:
        return self.status == OrderStatus.PAID


class OrderItem(BaseModel):
    """
    A line on an order. Lines keep their insertion order.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
        help_text="Order this line belongs to",
    )
    product_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Catalog product identifier",
    )
    variant_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Catalog variant identifier (empty when the product has none)",
    )
    name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Product name at time of purchase",
    )
    quantity = models.PositiveIntegerField(
        help_text="Ordered quantity",
    )
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Unit price in major currency units",
    )
    total_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="unit_price x quantity in major currency units",
    )

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="orders_orderitem_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity}"


class Payment(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    A captured payment for an order through one provider.

    Fields:
        order: Paid order
        store: Owning store (denormalized for scoping)
        provider: Payment network
        status: Payment status
        amount_cents: Authoritative captured amount in minor units
        currency: ISO 4217 currency code
        provider_payment_id: Provider charge reference (PaymentIntent, PayPal order)
        capture_id: Provider capture reference when it differs from the charge
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Order this payment captures",
    )
    store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Store that received this payment",
    )
    provider = models.CharField(
        max_length=20,
        choices=PaymentProvider.choices,
        help_text="Payment network",
    )
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
        help_text="Payment status",
    )
    amount_cents = models.PositiveBigIntegerField(
        help_text="Captured amount in smallest currency unit (e.g., cents)",
    )
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )
    provider_payment_id = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Provider charge reference (e.g., Stripe PaymentIntent ID)",
    )
    capture_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Provider capture reference (PayPal capture ID)",
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "provider"],
                name="orders_payment_unique_provider_per_order",
            ),
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="orders_payment_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.provider} payment {self.provider_payment_id} ({self.status})"

    @property
    def refund_reference(self) -> str:
        """
        Reference the provider expects when reversing this payment.

        PayPal refunds target the capture; Stripe refunds target the
        PaymentIntent. Cash-on-delivery payments have no provider id and
        fall back to one derived from the order.
        """
        if self.provider == PaymentProvider.PAYPAL:
            return self.capture_id or self.get_meta("capture_id") or self.provider_payment_id
        if self.provider == PaymentProvider.COD:
            return self.provider_payment_id or f"cod_{self.order_id}"
        return self.provider_payment_id
