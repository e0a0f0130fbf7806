"""
Inventory service layer.

InventoryService credits refunded units back to the supplier stock pools
that fulfilled them. It is the only writer of stock counters outside
checkout.

Usage:
    from inventory.services import InventoryService, RestockLine

    with transaction.atomic():
        InventoryService.restock_order_lines(
            store=order.store,
            order=order,
            lines=[RestockLine(product_id="prod_1", variant_id="var_1", quantity=2)],
        )
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.services import BaseService
from inventory.exceptions import InventoryRecordNotFoundError, ReservationNotFoundError
from inventory.models import InventoryReservation, ReservationStatus, SupplierVariantInventory

if TYPE_CHECKING:
    from collections.abc import Iterable

    from orders.models import Order, Store


@dataclass(frozen=True)
class RestockLine:
    """A refunded order line to credit back to stock."""

    product_id: str
    variant_id: str
    quantity: int

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError("quantity must be positive")


@dataclass(frozen=True)
class RestockResult:
    """Units credited to one stock pool."""

    inventory_id: int
    supplier_id: int
    variant_id: str
    quantity: int


class InventoryService(BaseService):
    """Stock restoration for refunded order lines."""

    @classmethod
    def find_consumed_reservation(
        cls,
        store: Store,
        order: Order,
        line: RestockLine,
    ) -> InventoryReservation:
        """
        Locate the consumed reservation that fulfilled an order line.

        Lines with a variant match on variant; lines without one match on
        product.

        Raises:
            ReservationNotFoundError: No consumed reservation for the line
        """
        reservations = InventoryReservation.objects.filter(
            store=store,
            order=order,
            status=ReservationStatus.CONSUMED,
        )
        if line.variant_id:
            reservations = reservations.filter(variant_id=line.variant_id)
        else:
            reservations = reservations.filter(product_id=line.product_id)

        reservation = reservations.order_by("id").first()
        if reservation is None:
            raise ReservationNotFoundError(
                f"No consumed reservation for item {line.product_id} on order {order.id}",
                details={
                    "order_id": str(order.id),
                    "product_id": line.product_id,
                    "variant_id": line.variant_id,
                },
            )
        return reservation

    @classmethod
    def restock_order_lines(
        cls,
        store: Store,
        order: Order,
        lines: Iterable[RestockLine],
    ) -> list[RestockResult]:
        """
        Increment available and total stock for each refunded line.

        All increments happen in one transaction (a savepoint when the
        caller already holds one). Stock rows are locked in id order so
        concurrent restorations and checkouts cannot deadlock.

        Raises:
            ReservationNotFoundError: A line has no consumed reservation
            InventoryRecordNotFoundError: A reservation's stock pool is missing
        """
        lines = list(lines)

        with transaction.atomic():
            # Quantity per (supplier, variant) pool
            credits: dict[tuple[int, str], int] = defaultdict(int)
            for line in lines:
                reservation = cls.find_consumed_reservation(store, order, line)
                credits[(reservation.supplier_id, reservation.variant_id)] += line.quantity

            pools = {
                (row.supplier_id, row.variant_id): row
                for row in SupplierVariantInventory.objects.select_for_update()
                .filter(
                    store=store,
                    supplier_id__in={supplier_id for supplier_id, _ in credits},
                    variant_id__in={variant_id for _, variant_id in credits},
                )
                .order_by("id")
            }

            now = timezone.now()
            results = []
            for (supplier_id, variant_id), quantity in credits.items():
                pool = pools.get((supplier_id, variant_id))
                if pool is None:
                    raise InventoryRecordNotFoundError(
                        f"Inventory not found for supplier {supplier_id} variant {variant_id}",
                        details={"supplier_id": supplier_id, "variant_id": variant_id},
                    )

                SupplierVariantInventory.objects.filter(pk=pool.pk).update(
                    available_stock=F("available_stock") + quantity,
                    total_stock=F("total_stock") + quantity,
                    last_updated_at=now,
                )
                results.append(
                    RestockResult(
                        inventory_id=pool.pk,
                        supplier_id=supplier_id,
                        variant_id=variant_id,
                        quantity=quantity,
                    )
                )

        cls.get_logger().info(
            f"Restocked {sum(r.quantity for r in results)} units for order {order.id}",
            extra={
                "order_id": str(order.id),
                "store_id": store.pk,
                "pools": len(results),
            },
        )
        return results


__all__ = [
    "RestockLine",
    "RestockResult",
    "InventoryService",
]
