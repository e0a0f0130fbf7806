"""
Supplier stock models.

- Supplier: A party that fulfils order lines for a store
- SupplierVariantInventory: Stock counters per (store, supplier, variant)
- InventoryReservation: Stock drawn for an order line at checkout

Concurrency:
    SupplierVariantInventory rows are shared by checkout (reserving) and
    refunds (restoring). Writers lock rows with select_for_update() and
    update counters with F() expressions inside a transaction.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel


class ReservationStatus(models.TextChoices):
    """
    Reservation lifecycle.

    State Flow:
        RESERVED -> CONSUMED (order paid)
        RESERVED -> RELEASED (checkout abandoned)
    """

    RESERVED = "reserved", "Reserved"
    CONSUMED = "consumed", "Consumed"
    RELEASED = "released", "Released"


class Supplier(BaseModel):
    """A supplier fulfilling order lines for a store."""

    store = models.ForeignKey(
        "orders.Store",
        on_delete=models.PROTECT,
        related_name="suppliers",
        help_text="Store this supplier fulfils for",
    )
    name = models.CharField(
        max_length=200,
        help_text="Supplier display name",
    )

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class SupplierVariantInventory(BaseModel):
    """
    Stock counters for one variant held by one supplier in one store.

    Fields:
        available_stock: Units that can be reserved
        total_stock: Units on hand including reserved ones
        last_updated_at: When the counters were last changed
    """

    store = models.ForeignKey(
        "orders.Store",
        on_delete=models.PROTECT,
        related_name="inventory",
        help_text="Store this stock pool belongs to",
    )
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name="inventory",
        help_text="Supplier holding the stock",
    )
    variant_id = models.CharField(
        max_length=64,
        help_text="Catalog variant identifier",
    )
    available_stock = models.PositiveIntegerField(
        default=0,
        help_text="Units available for reservation",
    )
    total_stock = models.PositiveIntegerField(
        default=0,
        help_text="Units on hand",
    )
    last_updated_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the stock counters last changed",
    )

    class Meta:
        verbose_name_plural = "supplier variant inventory"
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["store", "supplier", "variant_id"],
                name="inventory_unique_store_supplier_variant",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.supplier_id}/{self.variant_id}: {self.available_stock}/{self.total_stock}"


class InventoryReservation(BaseModel):
    """
    Links an order line to the supplier stock pool that fulfilled it.

    Created by checkout; the refund engine only reads consumed
    reservations to find which pool to credit.
    """

    store = models.ForeignKey(
        "orders.Store",
        on_delete=models.PROTECT,
        related_name="reservations",
        help_text="Store the reservation belongs to",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="reservations",
        help_text="Order the stock was reserved for",
    )
    order_item = models.ForeignKey(
        "orders.OrderItem",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reservations",
        help_text="Order line the stock was reserved for",
    )
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name="reservations",
        help_text="Supplier whose stock was reserved",
    )
    product_id = models.CharField(
        max_length=64,
        help_text="Catalog product identifier",
    )
    variant_id = models.CharField(
        max_length=64,
        help_text="Catalog variant identifier of the reserved stock",
    )
    quantity = models.PositiveIntegerField(
        help_text="Units reserved",
    )
    status = models.CharField(
        max_length=20,
        choices=ReservationStatus.choices,
        default=ReservationStatus.RESERVED,
        db_index=True,
        help_text="Reservation status",
    )

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(
                fields=["store", "order", "status"],
                name="inventory_res_order_status_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Reservation {self.pk} {self.variant_id} x{self.quantity} ({self.status})"
