"""
Serializers for the refund API.

Provides:
- RefundCreateSerializer: Request body for creating a refund
- RefundItemSerializer: Read-only refunded line
- RefundSerializer: Read-only refund for list responses
- RefundResultSerializer: Create response body
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiExample, extend_schema_serializer
from rest_framework import serializers

from refunds.calculator import from_minor_units
from refunds.models import Refund, RefundItem
from refunds.state_machines import RefundType
from refunds.validators import MAX_REASON_LENGTH


class RefundItemInputSerializer(serializers.Serializer):
    product_id = serializers.CharField(max_length=64)
    variant_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(min_value=1)


@extend_schema_serializer(
    examples=[
        OpenApiExample("Full refund", value={"refund_type": "full", "reason": "Damaged in transit"}),
        OpenApiExample(
            "Partial refund",
            value={
                "refund_type": "partial",
                "amount": "25.00",
                "reason": "One item missing",
                "items": [{"product_id": "prod_1", "variant_id": "var_1", "quantity": 1}],
            },
        ),
    ]
)
class RefundCreateSerializer(serializers.Serializer):
    """
    Request body for POST /api/v1/refunds/orders/{order_id}/refunds/.

    Only field types are checked here; business rules (partial refunds
    need amount and items, quantities within the order) are enforced by
    RefundRequestValidator.
    """

    refund_type = serializers.ChoiceField(choices=RefundType.choices)
    amount = serializers.DecimalField(
        max_digits=16,
        decimal_places=4,
        required=False,
        allow_null=True,
        help_text="Amount in major units (partial refunds only)",
    )
    reason = serializers.CharField(
        max_length=MAX_REASON_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )
    items = RefundItemInputSerializer(many=True, required=False)


class RefundItemSerializer(serializers.ModelSerializer):
    amount = serializers.SerializerMethodField()

    class Meta:
        model = RefundItem
        fields = ["position", "product_id", "variant_id", "quantity", "amount_cents", "amount"]
        read_only_fields = fields

    def get_amount(self, obj: RefundItem) -> str:
        return str(from_minor_units(obj.amount_cents))


class RefundSerializer(serializers.ModelSerializer):
    """Read-only refund with its items."""

    refund_id = serializers.UUIDField(source="id", read_only=True)
    amount = serializers.SerializerMethodField()
    status = serializers.CharField(source="provider_status", read_only=True)
    items = RefundItemSerializer(many=True, read_only=True)

    class Meta:
        model = Refund
        fields = [
            "refund_id",
            "order",
            "refund_type",
            "reason",
            "amount_cents",
            "amount",
            "currency",
            "provider",
            "provider_refund_id",
            "status",
            "inventory_restored",
            "initiated_by_role",
            "items",
            "created_at",
        ]
        read_only_fields = fields

    def get_amount(self, obj: Refund) -> str:
        return str(from_minor_units(obj.amount_cents))


class RefundResultSerializer(serializers.ModelSerializer):
    """Create response: {refund_id, provider_refund_id, amount, currency, status, inventory_restored}."""

    refund_id = serializers.UUIDField(source="id", read_only=True)
    amount = serializers.SerializerMethodField()
    status = serializers.CharField(source="provider_status", read_only=True)

    class Meta:
        model = Refund
        fields = [
            "refund_id",
            "provider_refund_id",
            "amount",
            "currency",
            "status",
            "inventory_restored",
        ]
        read_only_fields = fields

    def get_amount(self, obj: Refund) -> str:
        return str(from_minor_units(obj.amount_cents))
