"""
Refund request parsing and validation.

RefundRequestValidator works in two steps, neither of which has side
effects:

1. parse(): check the request shape (type, amount, items) and build a
   RefundRequest.
2. validate(): check the request against the paid order, its payment and
   the refunds already recorded for it. The result pairs every requested
   item with the order line it refunds.

Usage:
    request = RefundRequestValidator.parse(data)
    validated = RefundRequestValidator.validate(request, resolved, history)
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from core.helpers import hash_string
from refunds.calculator import to_minor_units
from refunds.exceptions import OrderFullyRefundedError, RefundValidationError
from refunds.state_machines import RefundType

if TYPE_CHECKING:
    from typing import Any

    from orders.models import OrderItem
    from orders.services import ResolvedOrderPayment

MAX_REASON_LENGTH = 500


@dataclass(frozen=True)
class RequestedItem:
    """An item named in a partial refund request."""

    product_id: str
    quantity: int
    variant_id: str = ""


@dataclass(frozen=True)
class RefundRequest:
    """
    A parsed refund request.

    Attributes:
        refund_type: full or partial
        amount: Requested amount in major units (partial only)
        reason: Free-text reason
        items: Requested items (partial only)
        idempotency_key: Client-supplied idempotency key, if any
    """

    refund_type: str
    amount: Decimal | None = None
    reason: str = ""
    items: tuple[RequestedItem, ...] = ()
    idempotency_key: str = ""

    @property
    def is_full(self) -> bool:
        return self.refund_type == RefundType.FULL

    def fingerprint(self, order_id) -> str:
        """
        Idempotency fingerprint for this request against an order.

        A client key, when supplied, defines the identity of the request.
        Otherwise it is the order plus type, amount and sorted itemset.
        """
        if self.idempotency_key:
            return hash_string(f"{order_id}|key|{self.idempotency_key}")

        if self.is_full:
            return hash_string(f"{order_id}|{RefundType.FULL}")

        itemset = ",".join(
            sorted(f"{i.product_id}:{i.variant_id}:{i.quantity}" for i in self.items)
        )
        return hash_string(
            f"{order_id}|{RefundType.PARTIAL}|{to_minor_units(self.amount)}|{itemset}"
        )


@dataclass(frozen=True)
class ValidatedLine:
    """A requested quantity matched to the order line it refunds."""

    order_item: OrderItem
    quantity: int

    @property
    def product_id(self) -> str:
        return self.order_item.product_id

    @property
    def variant_id(self) -> str:
        return self.order_item.variant_id


@dataclass(frozen=True)
class RefundHistory:
    """What earlier active refunds already returned for an order."""

    refunded_cents: int = 0
    refunded_quantities: dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ValidatedRefund:
    """A request that passed business validation."""

    request: RefundRequest
    lines: tuple[ValidatedLine, ...]
    requested_cents: int | None


class RefundRequestValidator:
    """Shape and business-rule validation for refund requests."""

    @staticmethod
    def parse(data: dict[str, Any]) -> RefundRequest:
        """
        Build a RefundRequest from raw input.

        Raises:
            RefundValidationError: Unknown type, bad amount, bad items,
                or partial refund without amount and items
        """
        refund_type = data.get("refund_type")
        if refund_type not in RefundType.values:
            raise RefundValidationError(
                "refund_type must be 'full' or 'partial'",
                details={"refund_type": ["Must be 'full' or 'partial'."]},
            )

        reason = (data.get("reason") or "").strip()
        if len(reason) > MAX_REASON_LENGTH:
            raise RefundValidationError(
                f"Reason cannot exceed {MAX_REASON_LENGTH} characters",
                details={"reason": [f"Ensure this field has no more than {MAX_REASON_LENGTH} characters."]},
            )

        idempotency_key = (data.get("idempotency_key") or "").strip()

        if refund_type == RefundType.FULL:
            # Amount and items are derived for full refunds
            return RefundRequest(
                refund_type=RefundType.FULL,
                reason=reason,
                idempotency_key=idempotency_key,
            )

        raw_amount = data.get("amount")
        raw_items = data.get("items") or []
        if raw_amount in (None, "") or not raw_items:
            raise RefundValidationError(
                "Amount and items are required for partial refunds",
                details={
                    field_name: ["This field is required for partial refunds."]
                    for field_name, value in (("amount", raw_amount), ("items", raw_items))
                    if value in (None, "") or not value
                },
            )

        try:
            amount = Decimal(str(raw_amount))
            if not amount.is_finite():
                raise ValueError(raw_amount)
            # Exponents beyond the decimal context trap here
            amount_cents = to_minor_units(amount)
        except (ArithmeticError, ValueError):
            raise RefundValidationError(
                "Amount must be a decimal number",
                details={"amount": ["A valid number is required."]},
            ) from None
        if amount_cents <= 0:
            raise RefundValidationError(
                "Refund amount must be at least one minor currency unit",
                details={"amount": ["Must be greater than zero."]},
            )

        items = []
        for index, raw in enumerate(raw_items):
            product_id = str(raw.get("product_id") or "").strip()
            if not product_id:
                raise RefundValidationError(
                    f"Item {index} is missing product_id",
                    details={"items": [f"Item {index}: product_id is required."]},
                )
            quantity = raw.get("quantity")
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise RefundValidationError(
                    f"Quantity for item {product_id} must be a positive integer",
                    details={"items": [f"{product_id}: quantity must be >= 1."]},
                )
            items.append(
                RequestedItem(
                    product_id=product_id,
                    quantity=quantity,
                    variant_id=str(raw.get("variant_id") or "").strip(),
                )
            )

        return RefundRequest(
            refund_type=RefundType.PARTIAL,
            amount=amount,
            reason=reason,
            items=tuple(items),
            idempotency_key=idempotency_key,
        )

    @staticmethod
    def _match_line(item: RequestedItem, lines: list[OrderItem]) -> OrderItem:
        for line in lines:
            if line.product_id != item.product_id:
                continue
            if item.variant_id and line.variant_id != item.variant_id:
                continue
            return line
        raise RefundValidationError(
            f"Item {item.product_id} not found in order",
            details={"items": [f"{item.product_id}: not found in order."]},
        )

    @classmethod
    def validate(
        cls,
        request: RefundRequest,
        resolved: ResolvedOrderPayment,
        history: RefundHistory | None = None,
    ) -> ValidatedRefund:
        """
        Check a parsed request against the order, payment and refund history.

        Raises:
            OrderFullyRefundedError: Nothing is left to refund
            RefundValidationError: Unknown item, quantity or amount out of bounds
        """
        history = history or RefundHistory()
        payment = resolved.payment
        remaining_cents = payment.amount_cents - history.refunded_cents

        if remaining_cents <= 0:
            raise OrderFullyRefundedError(
                "Order has already been fully refunded",
                details={"order_id": str(resolved.order.id)},
            )

        if request.is_full:
            if history.refunded_cents:
                raise RefundValidationError(
                    "Full refund is not possible after partial refunds; "
                    f"remaining refundable amount is {remaining_cents} minor units",
                    details={"remaining_cents": remaining_cents},
                )
            lines = tuple(
                ValidatedLine(order_item=line, quantity=line.quantity)
                for line in resolved.items
            )
            return ValidatedRefund(request=request, lines=lines, requested_cents=None)

        requested_cents = to_minor_units(request.amount)
        if requested_cents > payment.amount_cents:
            raise RefundValidationError(
                "Refund amount cannot exceed order amount",
                details={"amount": ["Exceeds the paid amount."]},
            )
        if requested_cents > remaining_cents:
            raise RefundValidationError(
                "Refund amount exceeds remaining refundable amount",
                details={"amount": [f"At most {remaining_cents} minor units can be refunded."]},
            )

        # Requested quantity per order line, merging repeated items
        quantities: dict[int, int] = defaultdict(int)
        matched: dict[int, OrderItem] = {}
        for item in request.items:
            line = cls._match_line(item, resolved.items)
            quantities[line.pk] += item.quantity
            matched[line.pk] = line

        for line_id, quantity in quantities.items():
            line = matched[line_id]
            already = history.refunded_quantities.get(line_id, 0)
            if quantity + already > line.quantity:
                raise RefundValidationError(
                    f"Refund quantity cannot exceed order quantity for item {line.product_id}",
                    details={
                        "items": [
                            f"{line.product_id}: ordered {line.quantity}, "
                            f"already refunded {already}, requested {quantity}."
                        ]
                    },
                )

        lines = tuple(
            ValidatedLine(order_item=matched[line_id], quantity=quantity)
            for line_id, quantity in quantities.items()
        )
        return ValidatedRefund(request=request, lines=lines, requested_cents=requested_cents)


__all__ = [
    "RequestedItem",
    "RefundRequest",
    "RefundHistory",
    "ValidatedLine",
    "ValidatedRefund",
    "RefundRequestValidator",
]
