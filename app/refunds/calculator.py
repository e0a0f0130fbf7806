"""
Refund amount calculation.

Money moves in integer minor units. Decimal major-unit amounts are
converted with round-half-up, so 10.005 becomes 1001 and 10.004 becomes
1000.

Item allocation for partial refunds:
    Each line's subtotal is round-half-up(unit_price * quantity). When the
    subtotals already add up to the requested amount they are used as-is.
    Otherwise the amount is shared pro rata by subtotal, rounding down on
    every line but the last, which takes the remainder. Item amounts always
    sum exactly to the refund amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from orders.models import Payment
    from refunds.validators import ValidatedLine, ValidatedRefund

MINOR_UNITS = Decimal("100")
CENT = Decimal("0.01")


def to_minor_units(amount: Decimal | int | str) -> int:
    """Convert a major-unit amount to integer minor units, rounding half up."""
    return int((Decimal(str(amount)) * MINOR_UNITS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount_cents: int) -> Decimal:
    """Convert integer minor units back to a two-place Decimal."""
    return (Decimal(amount_cents) / MINOR_UNITS).quantize(CENT)


@dataclass(frozen=True)
class RefundLine:
    """One refunded order line with its share of the refund."""

    product_id: str
    variant_id: str
    quantity: int
    amount_cents: int


@dataclass(frozen=True)
class RefundBreakdown:
    amount_cents: int
    currency: str
    lines: tuple[RefundLine, ...]


class RefundAmountCalculator:
    """Turns a validated refund request into amounts in minor units."""

    @staticmethod
    def line_subtotal(line: ValidatedLine) -> int:
        return to_minor_units(line.order_item.unit_price * line.quantity)

    @classmethod
    def allocate(cls, amount_cents: int, subtotals: list[int]) -> list[int]:
        """
        Share amount_cents across lines in proportion to subtotals.

        The result always sums to amount_cents.
        """
        if not subtotals:
            return []
        if sum(subtotals) == amount_cents:
            return list(subtotals)

        weights = subtotals if sum(subtotals) > 0 else [1] * len(subtotals)
        total_weight = sum(weights)

        shares = [amount_cents * weight // total_weight for weight in weights[:-1]]
        shares.append(amount_cents - sum(shares))
        return shares

    @classmethod
    def calculate(cls, validated: ValidatedRefund, payment: Payment) -> RefundBreakdown:
        """
        Compute the refund amount and per-line amounts.

        Full refunds return the entire payment amount and every order line
        at its full quantity and price. Partial refunds return the requested
        amount allocated across the requested lines.
        """
        lines = list(validated.lines)

        if validated.request.is_full:
            return RefundBreakdown(
                amount_cents=payment.amount_cents,
                currency=payment.currency,
                lines=tuple(
                    RefundLine(
                        product_id=line.product_id,
                        variant_id=line.variant_id,
                        quantity=line.quantity,
                        amount_cents=cls.line_subtotal(line),
                    )
                    for line in lines
                ),
            )

        amount_cents = validated.requested_cents
        allocations = cls.allocate(amount_cents, [cls.line_subtotal(line) for line in lines])

        return RefundBreakdown(
            amount_cents=amount_cents,
            currency=payment.currency,
            lines=tuple(
                RefundLine(
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    quantity=line.quantity,
                    amount_cents=share,
                )
                for line, share in zip(lines, allocations)
            ),
        )


__all__ = [
    "to_minor_units",
    "from_minor_units",
    "RefundLine",
    "RefundBreakdown",
    "RefundAmountCalculator",
]
