"""
Order/payment lookup used by the refund engine.

OrderPaymentLookup resolves a store-scoped order and its successful
payment. It is read-only and takes no locks; callers that need
serialization (the refund orchestrator) hold their own per-order lock
around the lookup.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.services import BaseService
from orders.exceptions import (
    OrderNotFoundError,
    OrderNotPaidError,
    PaymentNotFoundError,
)
from orders.models import Order, OrderStatus, Payment, PaymentStatus

if TYPE_CHECKING:
    from orders.models import OrderItem, Store


@dataclass
class ResolvedOrderPayment:
    """An order in the paid state with its successful payment and lines."""

    order: Order
    payment: Payment
    items: list[OrderItem]


class OrderPaymentLookup(BaseService):
    """
    Resolve (store, order id) to a paid order and its captured payment.

    Usage:
        resolved = OrderPaymentLookup.resolve(store=store, order_id=order_id)
    """

    @staticmethod
    def parse_order_id(order_id) -> uuid.UUID:
        """
        Canonical UUID for an order id in any form uuid.UUID accepts.

        Upper-case, hyphen-less, braced and urn:uuid: spellings of one id
        all map to the same value.

        Raises:
            OrderNotFoundError: If the id is not a UUID
        """
        if isinstance(order_id, uuid.UUID):
            return order_id
        try:
            return uuid.UUID(str(order_id))
        except (TypeError, ValueError):
            raise OrderNotFoundError(
                f"Order {order_id} not found",
                details={"order_id": str(order_id)},
            ) from None

    @classmethod
    def get_order(cls, store: Store, order_id) -> Order:
        """
        Load an order scoped to a store.

        Raises:
            OrderNotFoundError: If the order does not exist in the store
        """
        order_uuid = cls.parse_order_id(order_id)
        order = Order.objects.filter(store=store, pk=order_uuid).first()
        if order is None:
            raise OrderNotFoundError(
                f"Order {order_id} not found",
                details={"order_id": str(order_id)},
            )
        return order

    @classmethod
    def resolve(
        cls,
        store: Store,
        order_id,
        provider: str | None = None,
    ) -> ResolvedOrderPayment:
        """
        Load the order, check it is paid, and load its successful payment.

        Args:
            store: Store the caller operates
            order_id: Order UUID
            provider: Restrict the payment lookup to one provider

        Raises:
            OrderNotFoundError: Order absent from the store
            OrderNotPaidError: Order status is not paid
            PaymentNotFoundError: No paid payment for the order
        """
        order = cls.get_order(store, order_id)

        if order.status != OrderStatus.PAID:
            raise OrderNotPaidError(
                "Only paid orders can be refunded",
                details={"order_id": str(order.id), "status": order.status},
            )

        payments = Payment.objects.filter(order=order, status=PaymentStatus.PAID)
        if provider:
            payments = payments.filter(provider=provider)
        payment = payments.order_by("created_at").first()

        if payment is None:
            raise PaymentNotFoundError(
                f"Payment not found for order {order.id}",
                details={"order_id": str(order.id), "provider": provider},
            )

        cls.get_logger().debug(
            "Resolved order payment",
            extra={
                "order_id": str(order.id),
                "payment_id": str(payment.id),
                "provider": payment.provider,
            },
        )

        return ResolvedOrderPayment(
            order=order,
            payment=payment,
            items=list(order.items.order_by("id")),
        )


__all__ = [
    "ResolvedOrderPayment",
    "OrderPaymentLookup",
]
