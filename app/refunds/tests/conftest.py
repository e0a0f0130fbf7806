"""
Pytest fixtures for refund tests.

The default scenario is a paid $100 Stripe order with two lines:

    prod_1 / var_1: 2 x $30.00
    prod_2 / var_2: 1 x $40.00

Each line was fulfilled from its own supplier stock pool (available 5,
total 10), and the payment was split 70/20/10 between supplier, reseller
and platform. The provider adapter is a MagicMock registered for Stripe.

Usage:
    def test_full_refund(store, admin_user, paid_order, payment, provider_adapter):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=paid_order.id,
            data={"refund_type": "full"},
        )
"""

import uuid
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from authentication.models import ActorRole
from authentication.tests.factories import UserFactory
from inventory.tests.factories import (
    InventoryReservationFactory,
    SupplierFactory,
    SupplierVariantInventoryFactory,
)
from orders.models import PaymentProvider
from orders.tests.factories import (
    OrderFactory,
    OrderItemFactory,
    PaymentFactory,
    StoreFactory,
)
from refunds.adapters import ProviderRefundResult, RefundProviderAdapter, set_provider_adapter
from refunds.state_machines import ProviderRefundStatus
from settlements.services import SplitLedgerService
from settlements.tests.factories import PaymentSplitFactory


def make_provider_result(
    status=ProviderRefundStatus.SUCCEEDED,
    amount_cents=10000,
    refund_id=None,
    currency="usd",
):
    """Build a ProviderRefundResult as an adapter would return it."""
    return ProviderRefundResult(
        refund_id=refund_id or f"re_test_{uuid.uuid4().hex[:12]}",
        amount_cents=amount_cents,
        currency=currency,
        status=status,
        raw_response={"status": status},
    )


# =============================================================================
# Actor Fixtures
# =============================================================================


@pytest.fixture
def store(db):
    return StoreFactory()


@pytest.fixture
def admin_user(store):
    """Store admin allowed to initiate refunds."""
    return UserFactory(store=store, role=ActorRole.ADMIN)


@pytest.fixture
def supplier_user(store):
    return UserFactory(store=store, role=ActorRole.SUPPLIER)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(api_client, admin_user):
    api_client.force_authenticate(user=admin_user)
    return api_client


# =============================================================================
# Order Fixtures
# =============================================================================


@pytest.fixture
def paid_order(store):
    """Paid order for $100 with two lines."""
    order = OrderFactory(store=store, total_amount=Decimal("100.00"))
    OrderItemFactory(
        order=order,
        product_id="prod_1",
        variant_id="var_1",
        quantity=2,
        unit_price=Decimal("30.00"),
    )
    OrderItemFactory(
        order=order,
        product_id="prod_2",
        variant_id="var_2",
        quantity=1,
        unit_price=Decimal("40.00"),
    )
    return order


@pytest.fixture
def payment(paid_order):
    """Captured Stripe payment of 10,000 cents."""
    return PaymentFactory(
        order=paid_order,
        amount_cents=10000,
        provider_payment_id="pi_test_123",
    )


# =============================================================================
# Inventory Fixtures
# =============================================================================


@pytest.fixture
def supplier(store):
    return SupplierFactory(store=store)


@pytest.fixture
def stock_pools(store, supplier, paid_order):
    """
    One stock pool and consumed reservation per order line.

    Returns:
        Dict of product_id -> SupplierVariantInventory
    """
    pools = {}
    for item in paid_order.items.order_by("id"):
        pools[item.product_id] = SupplierVariantInventoryFactory(
            store=store,
            supplier=supplier,
            variant_id=item.variant_id,
            available_stock=5,
            total_stock=10,
        )
        InventoryReservationFactory(
            store=store,
            order=paid_order,
            supplier=supplier,
            order_item=item,
            product_id=item.product_id,
            variant_id=item.variant_id,
            quantity=item.quantity,
        )
    return pools


# =============================================================================
# Settlement Fixtures
# =============================================================================


@pytest.fixture
def payment_split(payment, supplier):
    """70/20/10 split of the payment with its ledger entries posted."""
    split = PaymentSplitFactory(payment=payment, supplier=supplier)
    SplitLedgerService.record_split(split)
    return split


@pytest.fixture
def refundable_order(paid_order, payment, stock_pools, payment_split):
    """Paid order with payment, stock reservations and posted split."""
    return paid_order


# =============================================================================
# Provider Fixtures
# =============================================================================


@pytest.fixture
def provider_adapter(mocker):
    """
    Mock Stripe adapter that reports every refund as succeeded.

    The refunded amount echoes amount_cents, or the full 10,000 cents when
    amount_cents is None.
    """
    adapter = mocker.MagicMock(spec=RefundProviderAdapter)
    adapter.provider = PaymentProvider.STRIPE

    def create_refund(**kwargs):
        amount_cents = kwargs.get("amount_cents")
        return make_provider_result(amount_cents=10000 if amount_cents is None else amount_cents)

    adapter.create_refund.side_effect = create_refund
    set_provider_adapter(PaymentProvider.STRIPE, adapter)
    yield adapter
    set_provider_adapter(PaymentProvider.STRIPE, None)
