"""
Tests for RefundService.

Covers:
1. Full and partial refunds (amounts, items, provider call)
2. Validation against the order and its refund history
3. Provider failures (nothing persisted, idempotency key reuse)
4. Duplicate and concurrent requests (fingerprint, per-order lock)
5. Compensations (stock restore, split reversal) and their isolation
6. Access control and order lookup errors
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from audit.models import AuditAction, AuditLog
from core.exceptions import AuthenticationRequiredError, PermissionDeniedError
from inventory.models import InventoryReservation, SupplierVariantInventory
from orders.models import OrderStatus, PaymentProvider, PaymentStatus
from orders.tests.factories import OrderFactory, OrderItemFactory, PaymentFactory, StoreFactory
from refunds.adapters import set_provider_adapter
from refunds.exceptions import (
    DuplicateRefundError,
    LockAcquisitionError,
    OrderFullyRefundedError,
    OrderNotFoundError,
    OrderNotPaidError,
    PaymentNotFoundError,
    ProviderRejectedError,
    ProviderTimeoutError,
    RefundValidationError,
)
from refunds.models import CompensationTask, Refund
from refunds.services import InventoryRestorationCoordinator, RefundService
from refunds.state_machines import CompensationStatus, ProviderRefundStatus, RefundType
from refunds.tests.conftest import make_provider_result
from settlements.models import LedgerEntryType, PartyRole, PaymentMethod, SplitLedgerEntry
from settlements.services import SplitLedgerService
from settlements.tests.factories import PaymentSplitFactory


def full_request(**overrides):
    return {"refund_type": "full", "reason": "Damaged in transit", **overrides}


def partial_request(amount, items, **overrides):
    return {"refund_type": "partial", "amount": amount, "items": items, **overrides}


def stock(pool):
    pool.refresh_from_db()
    return pool.available_stock, pool.total_stock


# =============================================================================
# Full Refunds
# =============================================================================


@pytest.mark.django_db
class TestFullRefund:
    def test_full_refund_records_payment_amount(
        self, store, admin_user, refundable_order, payment, provider_adapter
    ):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        refund = outcome.refund
        assert outcome.created is True
        assert refund.refund_type == RefundType.FULL
        assert refund.amount_cents == payment.amount_cents == 10000
        assert refund.currency == "usd"
        assert refund.provider == PaymentProvider.STRIPE
        assert refund.provider_status == ProviderRefundStatus.SUCCEEDED
        assert refund.initiated_by == admin_user
        assert refund.initiated_by_role == "admin"

    def test_full_refund_lists_every_order_line(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        items = list(outcome.refund.items.order_by("position"))
        assert [(i.product_id, i.variant_id, i.quantity, i.amount_cents) for i in items] == [
            ("prod_1", "var_1", 2, 6000),
            ("prod_2", "var_2", 1, 4000),
        ]

    def test_full_refund_omits_amount_at_provider(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        provider_adapter.create_refund.assert_called_once()
        kwargs = provider_adapter.create_refund.call_args.kwargs
        assert kwargs["payment_reference"] == "pi_test_123"
        assert kwargs["amount_cents"] is None
        assert kwargs["currency"] == "usd"
        assert kwargs["reason"] == "Damaged in transit"
        assert kwargs["metadata"]["order_id"] == str(refundable_order.id)
        assert kwargs["idempotency_key"].startswith("refund:")
        assert kwargs["idempotency_key"].endswith(":1")

    def test_full_refund_restores_stock_and_reverses_split(
        self, store, admin_user, refundable_order, stock_pools, provider_adapter, mocker
    ):
        spy = mocker.spy(SplitLedgerService, "reverse_split")

        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        assert outcome.refund.inventory_restored is True
        assert outcome.compensations == {"inventory_restore": True, "split_reversal": True}
        assert stock(stock_pools["prod_1"]) == (7, 12)
        assert stock(stock_pools["prod_2"]) == (6, 11)

        spy.assert_called_once()
        assert spy.call_args.kwargs["reason"] == "Refund: Damaged in transit"
        assert spy.call_args.kwargs["refund"] == outcome.refund
        assert SplitLedgerService.get_net_amount(refundable_order) == 0

    def test_full_refund_marks_compensation_tasks_succeeded(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        tasks = CompensationTask.objects.filter(refund=outcome.refund)
        assert tasks.count() == 2
        assert all(t.status == CompensationStatus.SUCCEEDED and t.attempts == 1 for t in tasks)

    def test_full_refund_writes_audit_entry(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        entry = AuditLog.objects.get(action=AuditAction.REFUND_CREATED)
        assert entry.entity_id == str(outcome.refund.pk)
        assert entry.actor == admin_user
        assert entry.actor_role == "admin"
        assert entry.store == store
        assert entry.after["amount_cents"] == 10000
        assert entry.metadata["provider_refund_id"] == outcome.refund.provider_refund_id

    def test_paypal_refund_uses_capture_and_paypal_audit_action(
        self, store, admin_user, paid_order, mocker
    ):
        PaymentFactory(
            order=paid_order,
            provider=PaymentProvider.PAYPAL,
            amount_cents=10000,
            provider_payment_id="PAYPAL-ORDER-1",
            capture_id="CAP-123",
        )
        adapter = mocker.MagicMock()
        adapter.create_refund.return_value = make_provider_result(refund_id="PP-REFUND-1")
        set_provider_adapter(PaymentProvider.PAYPAL, adapter)

        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=paid_order.id,
            data=full_request(),
        )

        assert adapter.create_refund.call_args.kwargs["payment_reference"] == "CAP-123"
        assert outcome.refund.provider == PaymentProvider.PAYPAL
        assert AuditLog.objects.filter(action=AuditAction.PAYPAL_REFUND_CREATED).count() == 1

    def test_order_and_payment_are_not_modified(
        self, store, admin_user, refundable_order, payment, provider_adapter
    ):
        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        refundable_order.refresh_from_db()
        payment.refresh_from_db()
        assert refundable_order.status == OrderStatus.PAID
        assert payment.status == PaymentStatus.PAID

    def test_lock_released_after_success(
        self, store, admin_user, refundable_order, provider_adapter, fake_redis
    ):
        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        assert fake_redis.store == {}


# =============================================================================
# Partial Refunds
# =============================================================================


@pytest.mark.django_db
class TestPartialRefund:
    def test_single_item_amount_matches_request(
        self, store, admin_user, refundable_order, stock_pools, provider_adapter
    ):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request("25.00", [{"product_id": "prod_1", "quantity": 1}]),
        )

        refund = outcome.refund
        assert refund.amount_cents == 2500
        assert list(refund.items.values_list("product_id", "quantity", "amount_cents")) == [
            ("prod_1", 1, 2500)
        ]
        assert provider_adapter.create_refund.call_args.kwargs["amount_cents"] == 2500
        assert stock(stock_pools["prod_1"]) == (6, 11)
        assert stock(stock_pools["prod_2"]) == (5, 10)

    def test_amount_allocated_pro_rata_across_items(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request(
                "50.00",
                [
                    {"product_id": "prod_1", "quantity": 1},
                    {"product_id": "prod_2", "quantity": 1},
                ],
            ),
        )

        amounts = list(outcome.refund.items.order_by("position").values_list("amount_cents", flat=True))
        assert amounts == [2142, 2858]
        assert sum(amounts) == outcome.refund.amount_cents == 5000

    def test_amount_rounded_half_up(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request(Decimal("10.005"), [{"product_id": "prod_2", "quantity": 1}]),
        )

        assert outcome.refund.amount_cents == 1001

    def test_quantity_exceeding_order_names_item(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        with pytest.raises(RefundValidationError) as exc_info:
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=partial_request("40.00", [{"product_id": "prod_2", "quantity": 2}]),
            )

        assert "prod_2" in exc_info.value.message
        provider_adapter.create_refund.assert_not_called()
        assert Refund.objects.count() == 0

    def test_repeated_item_quantities_are_merged(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        with pytest.raises(RefundValidationError, match="prod_2"):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=partial_request(
                    "40.00",
                    [
                        {"product_id": "prod_2", "quantity": 1},
                        {"product_id": "prod_2", "quantity": 1},
                    ],
                ),
            )

    def test_unknown_item_rejected(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        with pytest.raises(RefundValidationError, match="prod_404 not found in order"):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=partial_request("10.00", [{"product_id": "prod_404", "quantity": 1}]),
            )

        provider_adapter.create_refund.assert_not_called()

    def test_amount_over_payment_rejected(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        with pytest.raises(RefundValidationError, match="cannot exceed order amount"):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=partial_request("100.01", [{"product_id": "prod_1", "quantity": 1}]),
            )

        provider_adapter.create_refund.assert_not_called()

    def test_amount_beyond_decimal_range_rejected(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        with pytest.raises(RefundValidationError) as exc_info:
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=partial_request("1e30", [{"product_id": "prod_1", "quantity": 1}]),
            )

        assert "amount" in exc_info.value.details
        provider_adapter.create_refund.assert_not_called()

    def test_amount_and_items_required(self, store, admin_user, refundable_order, provider_adapter):
        with pytest.raises(RefundValidationError) as exc_info:
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data={"refund_type": "partial", "amount": "10.00"},
            )

        assert "items" in exc_info.value.details
        provider_adapter.create_refund.assert_not_called()

    def test_second_partial_limited_to_remaining_amount(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request("70.00", [{"product_id": "prod_1", "quantity": 2}]),
        )

        with pytest.raises(RefundValidationError, match="remaining refundable amount"):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=partial_request("40.00", [{"product_id": "prod_2", "quantity": 1}]),
            )

        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request("30.00", [{"product_id": "prod_2", "quantity": 1}]),
        )
        assert outcome.refund.amount_cents == 3000
        assert Refund.objects.refunded_amount(refundable_order) == 10000

    def test_full_refund_after_partial_rejected_with_remaining(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request("25.00", [{"product_id": "prod_1", "quantity": 1}]),
        )

        with pytest.raises(RefundValidationError) as exc_info:
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=full_request(),
            )

        assert exc_info.value.details["remaining_cents"] == 7500
        assert provider_adapter.create_refund.call_count == 1

    def test_fully_refunded_order_rejected(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        with pytest.raises(OrderFullyRefundedError):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=partial_request("1.00", [{"product_id": "prod_1", "quantity": 1}]),
            )

        assert provider_adapter.create_refund.call_count == 1


# =============================================================================
# Provider Outcomes
# =============================================================================


@pytest.mark.django_db
class TestProviderOutcomes:
    def test_provider_error_persists_nothing(
        self, store, admin_user, refundable_order, payment, stock_pools, provider_adapter, fake_redis
    ):
        provider_adapter.create_refund.side_effect = ProviderTimeoutError(
            "Stripe request timed out. Please retry.",
            provider="stripe",
        )

        with pytest.raises(ProviderTimeoutError) as exc_info:
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=full_request(),
            )

        assert exc_info.value.is_retryable is True
        assert exc_info.value.http_status == 502
        assert Refund.objects.count() == 0
        assert CompensationTask.objects.count() == 0
        assert stock(stock_pools["prod_1"]) == (5, 10)
        payment.refresh_from_db()
        assert payment.status == PaymentStatus.PAID
        assert fake_redis.store == {}

    def test_retry_after_provider_error_reuses_idempotency_key(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        success = provider_adapter.create_refund.side_effect
        provider_adapter.create_refund.side_effect = ProviderTimeoutError("timed out", provider="stripe")

        with pytest.raises(ProviderTimeoutError):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=full_request(),
            )

        provider_adapter.create_refund.side_effect = success
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        keys = [c.kwargs["idempotency_key"] for c in provider_adapter.create_refund.call_args_list]
        assert keys[0] == keys[1]
        assert outcome.refund.provider_status == ProviderRefundStatus.SUCCEEDED

    def test_rejected_refund_is_not_retryable(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        provider_adapter.create_refund.side_effect = ProviderRejectedError(
            "Charge has already been refunded",
            provider="stripe",
            provider_code="charge_already_refunded",
        )

        with pytest.raises(ProviderRejectedError) as exc_info:
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=full_request(),
            )

        assert exc_info.value.is_retryable is False
        assert exc_info.value.to_dict()["details"]["provider_code"] == "charge_already_refunded"

    def test_failed_status_recorded_without_compensations(
        self, store, admin_user, refundable_order, stock_pools, provider_adapter
    ):
        provider_adapter.create_refund.side_effect = None
        provider_adapter.create_refund.return_value = make_provider_result(
            status=ProviderRefundStatus.FAILED
        )

        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        assert outcome.refund.provider_status == ProviderRefundStatus.FAILED
        assert outcome.compensations == {}
        assert outcome.refund.compensation_tasks.count() == 0
        assert stock(stock_pools["prod_1"]) == (5, 10)
        assert Refund.objects.refunded_amount(refundable_order) == 0

    def test_retry_after_failed_status_uses_fresh_key(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        success = provider_adapter.create_refund.side_effect
        provider_adapter.create_refund.side_effect = None
        provider_adapter.create_refund.return_value = make_provider_result(
            status=ProviderRefundStatus.FAILED
        )
        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        provider_adapter.create_refund.side_effect = success
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        first_key, second_key = [
            c.kwargs["idempotency_key"] for c in provider_adapter.create_refund.call_args_list
        ]
        assert first_key.endswith(":1")
        assert second_key.endswith(":2")
        assert first_key.rsplit(":", 1)[0] == second_key.rsplit(":", 1)[0]
        assert outcome.refund.succeeded

    def test_pending_status_counts_against_balance(
        self, store, admin_user, refundable_order, stock_pools, provider_adapter
    ):
        provider_adapter.create_refund.side_effect = None
        provider_adapter.create_refund.return_value = make_provider_result(
            status=ProviderRefundStatus.PENDING
        )

        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        assert outcome.refund.provider_status == ProviderRefundStatus.PENDING
        assert outcome.refund.inventory_restored is False
        assert stock(stock_pools["prod_1"]) == (5, 10)

        with pytest.raises(OrderFullyRefundedError):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=full_request(idempotency_key="second-attempt"),
            )


# =============================================================================
# Duplicates & Concurrency
# =============================================================================


@pytest.mark.django_db
class TestDuplicateAndConcurrentRequests:
    def test_identical_request_rejected_with_existing_refund(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        first = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request("25.00", [{"product_id": "prod_1", "quantity": 1}]),
        )

        with pytest.raises(DuplicateRefundError) as exc_info:
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=partial_request("25.00", [{"product_id": "prod_1", "quantity": 1}]),
            )

        assert exc_info.value.http_status == 409
        assert exc_info.value.details["refund_id"] == str(first.refund.pk)
        assert provider_adapter.create_refund.call_count == 1
        assert Refund.objects.count() == 1

    def test_item_order_does_not_change_fingerprint(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        items = [
            {"product_id": "prod_1", "quantity": 1},
            {"product_id": "prod_2", "quantity": 1},
        ]
        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request("20.00", items),
        )

        with pytest.raises(DuplicateRefundError):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=partial_request("20.00", list(reversed(items))),
            )

    def test_client_idempotency_key_distinguishes_requests(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        item = [{"product_id": "prod_1", "quantity": 1}]
        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request("30.00", item, idempotency_key="unit-1"),
        )
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request("30.00", item, idempotency_key="unit-2"),
        )

        assert outcome.created is True
        assert Refund.objects.filter(order=refundable_order).count() == 2

        with pytest.raises(DuplicateRefundError):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=partial_request("30.00", item, idempotency_key="unit-2"),
            )

    def test_refunded_quantities_count_against_later_requests(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        item = [{"product_id": "prod_1", "quantity": 1}]
        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request("30.00", item, idempotency_key="unit-1"),
        )
        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request("30.00", item, idempotency_key="unit-2"),
        )

        with pytest.raises(RefundValidationError, match="prod_1"):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=partial_request("1.00", item, idempotency_key="unit-3"),
            )

    def test_lock_held_elsewhere_rejects_request(
        self, store, admin_user, refundable_order, provider_adapter, fake_redis
    ):
        lock_key = f"lock:refund:order:{refundable_order.id}"
        fake_redis.store[lock_key] = "another-worker"

        with pytest.raises(LockAcquisitionError):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=refundable_order.id,
                data=full_request(),
            )

        provider_adapter.create_refund.assert_not_called()
        assert fake_redis.store[lock_key] == "another-worker"

    def test_concurrent_request_blocked_while_provider_call_in_flight(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        """A second request arriving during the provider call never reaches the provider."""
        competing_errors = []

        def create_refund(**kwargs):
            try:
                RefundService.create_refund(
                    store=store,
                    actor=admin_user,
                    order_id=refundable_order.id,
                    data=full_request(),
                )
            except LockAcquisitionError as e:
                competing_errors.append(e)
            return make_provider_result()

        provider_adapter.create_refund.side_effect = create_refund

        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        assert len(competing_errors) == 1
        assert provider_adapter.create_refund.call_count == 1
        assert Refund.objects.filter(order=refundable_order).count() == 1
        assert outcome.refund.amount_cents == 10000

    @pytest.mark.parametrize(
        "spelling",
        [
            lambda order_id: str(order_id).upper(),
            lambda order_id: order_id.hex,
            lambda order_id: f"{{{order_id}}}",
            lambda order_id: order_id.urn,
        ],
        ids=["upper", "hex", "braced", "urn"],
    )
    def test_lock_shared_by_every_spelling_of_order_id(
        self, store, admin_user, refundable_order, provider_adapter, fake_redis, spelling
    ):
        fake_redis.store[f"lock:refund:order:{refundable_order.id}"] = "another-worker"

        with pytest.raises(LockAcquisitionError):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=spelling(refundable_order.id),
                data=full_request(),
            )

        provider_adapter.create_refund.assert_not_called()
        assert not Refund.objects.exists()

    def test_differently_spelled_concurrent_request_blocked(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        item = [{"product_id": "prod_1", "quantity": 2}]
        competing_errors = []

        def create_refund(**kwargs):
            try:
                RefundService.create_refund(
                    store=store,
                    actor=admin_user,
                    order_id=str(refundable_order.id).upper(),
                    data=partial_request("60.00", item, idempotency_key="b"),
                )
            except LockAcquisitionError as e:
                competing_errors.append(e)
            return make_provider_result(amount_cents=kwargs["amount_cents"])

        provider_adapter.create_refund.side_effect = create_refund

        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=str(refundable_order.id),
            data=partial_request("60.00", item, idempotency_key="a"),
        )

        assert len(competing_errors) == 1
        assert provider_adapter.create_refund.call_count == 1
        assert Refund.objects.refunded_amount(refundable_order) == 6000

    def test_different_orders_refund_independently(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        other = OrderFactory(store=store)
        OrderItemFactory(order=other, product_id="prod_9", quantity=1, unit_price=Decimal("100.00"))
        PaymentFactory(order=other, amount_cents=10000)

        RefundService.create_refund(
            store=store, actor=admin_user, order_id=refundable_order.id, data=full_request()
        )
        RefundService.create_refund(
            store=store, actor=admin_user, order_id=other.id, data=full_request()
        )

        assert Refund.objects.count() == 2


# =============================================================================
# Compensations
# =============================================================================


@pytest.mark.django_db
class TestCompensations:
    def test_missing_reservation_does_not_fail_refund(
        self, store, admin_user, paid_order, payment, payment_split, provider_adapter
    ):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=paid_order.id,
            data=full_request(),
        )

        assert outcome.refund.succeeded
        assert outcome.refund.inventory_restored is False
        assert outcome.compensations == {"inventory_restore": False, "split_reversal": True}

        task = outcome.refund.compensation_tasks.get(kind="inventory_restore")
        assert task.status == CompensationStatus.FAILED
        assert task.attempts == 1
        assert "No consumed reservation" in task.last_error

        failure = AuditLog.objects.get(action=AuditAction.COMPENSATION_FAILED)
        assert failure.entity_id == str(outcome.refund.pk)
        assert failure.metadata["kind"] == "inventory_restore"

    def test_missing_split_does_not_block_stock_restore(
        self, store, admin_user, paid_order, payment, stock_pools, provider_adapter
    ):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=paid_order.id,
            data=full_request(),
        )

        assert outcome.compensations == {"inventory_restore": True, "split_reversal": False}
        assert outcome.refund.inventory_restored is True
        assert stock(stock_pools["prod_2"]) == (6, 11)

        task = outcome.refund.compensation_tasks.get(kind="split_reversal")
        assert task.status == CompensationStatus.FAILED
        assert "Payment split not found" in task.last_error

    def test_partial_stock_pool_missing_restores_nothing(
        self, store, admin_user, refundable_order, stock_pools, provider_adapter
    ):
        SupplierVariantInventory.objects.filter(pk=stock_pools["prod_2"].pk).update(variant_id="gone")

        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        assert outcome.refund.inventory_restored is False
        assert stock(stock_pools["prod_1"]) == (5, 10)

    def test_restoring_twice_is_noop(
        self, store, admin_user, refundable_order, stock_pools, provider_adapter
    ):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        assert InventoryRestorationCoordinator.restore(outcome.refund) is False
        assert stock(stock_pools["prod_1"]) == (7, 12)

    def test_split_reversal_posts_negative_entries(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        reversals = SplitLedgerEntry.objects.filter(
            order=refundable_order, entry_type=LedgerEntryType.REVERSAL
        )
        assert {(e.party_role, e.amount_cents) for e in reversals} == {
            (PartyRole.SUPPLIER, -7000),
            (PartyRole.RESELLER, -2000),
            (PartyRole.PLATFORM, -1000),
        }
        assert all(e.refund_id == outcome.refund.pk for e in reversals)

    def test_reservations_are_left_consumed(
        self, store, admin_user, refundable_order, provider_adapter
    ):
        RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        statuses = set(
            InventoryReservation.objects.filter(order=refundable_order).values_list("status", flat=True)
        )
        assert statuses == {"consumed"}


# =============================================================================
# Cash on Delivery
# =============================================================================


@pytest.fixture
def cod_order(paid_order, supplier, stock_pools):
    """Paid order settled in cash, with its split posted."""
    payment = PaymentFactory(
        order=paid_order,
        provider=PaymentProvider.COD,
        amount_cents=10000,
        provider_payment_id="",
    )
    split = PaymentSplitFactory(payment=payment, supplier=supplier, payment_method=PaymentMethod.COD)
    SplitLedgerService.record_split(split)
    return paid_order


@pytest.mark.django_db
class TestCashOnDeliveryRefund:
    def test_full_refund_recorded_without_provider_call(self, store, admin_user, cod_order, stock_pools):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=cod_order.id,
            data=full_request(reason="Customer returned goods"),
        )

        refund = outcome.refund
        assert outcome.created is True
        assert refund.provider == PaymentProvider.COD
        assert refund.provider_refund_id.startswith("cod_")
        assert refund.amount_cents == 10000
        assert refund.succeeded
        assert refund.inventory_restored is True
        assert stock(stock_pools["prod_1"]) == (7, 12)
        assert AuditLog.objects.filter(action=AuditAction.COD_REFUND_CREATED).count() == 1

        reversals = SplitLedgerEntry.objects.filter(refund=refund, entry_type=LedgerEntryType.REVERSAL)
        assert reversals.count() == 3
        assert {entry.description for entry in reversals} == {"COD Refund: Customer returned goods"}

    def test_partial_refund_amount(self, store, admin_user, cod_order, stock_pools):
        outcome = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=cod_order.id,
            data=partial_request("40.00", [{"product_id": "prod_2", "quantity": 1}]),
        )

        assert outcome.refund.amount_cents == 4000
        assert outcome.refund.refund_type == RefundType.PARTIAL

    def test_replayed_request_rejected_as_duplicate(self, store, admin_user, cod_order, stock_pools):
        data = full_request(idempotency_key="cod-1")
        first = RefundService.create_refund(store=store, actor=admin_user, order_id=cod_order.id, data=data)

        with pytest.raises(DuplicateRefundError) as exc_info:
            RefundService.create_refund(store=store, actor=admin_user, order_id=cod_order.id, data=data)

        assert exc_info.value.details["refund_id"] == str(first.refund.pk)
        assert Refund.objects.count() == 1


# =============================================================================
# Access Control & Lookup
# =============================================================================


@pytest.mark.django_db
class TestAccessAndLookup:
    def test_supplier_cannot_refund(self, store, supplier_user, refundable_order, provider_adapter):
        with pytest.raises(PermissionDeniedError) as exc_info:
            RefundService.create_refund(
                store=store,
                actor=supplier_user,
                order_id=refundable_order.id,
                data=full_request(),
            )

        assert exc_info.value.http_status == 403
        provider_adapter.create_refund.assert_not_called()

    def test_system_actor_can_refund(self, store, refundable_order, provider_adapter):
        from authentication.models import ActorRole
        from authentication.tests.factories import UserFactory

        system_user = UserFactory(store=store, role=ActorRole.SYSTEM)

        outcome = RefundService.create_refund(
            store=store,
            actor=system_user,
            order_id=refundable_order.id,
            data=full_request(),
        )

        assert outcome.refund.initiated_by_role == "system"

    @pytest.mark.parametrize("missing", ["actor", "store"])
    def test_missing_context_requires_authentication(
        self, missing, store, admin_user, refundable_order, provider_adapter
    ):
        kwargs = {"store": store, "actor": admin_user}
        kwargs[missing] = None

        with pytest.raises(AuthenticationRequiredError):
            RefundService.create_refund(
                order_id=refundable_order.id,
                data=full_request(),
                **kwargs,
            )

    @pytest.mark.parametrize("order_id", [uuid.uuid4(), "not-a-uuid"])
    def test_unknown_order(self, order_id, store, admin_user, provider_adapter):
        with pytest.raises(OrderNotFoundError):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=order_id,
                data=full_request(),
            )

    def test_order_in_other_store_not_found(self, admin_user, provider_adapter):
        other_order = OrderFactory(store=StoreFactory())
        PaymentFactory(order=other_order)

        with pytest.raises(OrderNotFoundError):
            RefundService.create_refund(
                store=admin_user.store,
                actor=admin_user,
                order_id=other_order.id,
                data=full_request(),
            )

    def test_unpaid_order_rejected(self, store, admin_user, provider_adapter):
        order = OrderFactory(store=store, status=OrderStatus.CREATED)

        with pytest.raises(OrderNotPaidError):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=order.id,
                data=full_request(),
            )

    def test_paid_order_without_payment_rejected(self, store, admin_user, paid_order, provider_adapter):
        with pytest.raises(PaymentNotFoundError):
            RefundService.create_refund(
                store=store,
                actor=admin_user,
                order_id=paid_order.id,
                data=full_request(),
            )

        provider_adapter.create_refund.assert_not_called()


@pytest.mark.django_db
class TestListRefunds:
    def test_lists_newest_first(self, store, admin_user, refundable_order, provider_adapter):
        first = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request("10.00", [{"product_id": "prod_1", "quantity": 1}]),
        )
        second = RefundService.create_refund(
            store=store,
            actor=admin_user,
            order_id=refundable_order.id,
            data=partial_request("10.00", [{"product_id": "prod_2", "quantity": 1}]),
        )

        refunds = RefundService.list_refunds(store, refundable_order.id)

        assert [r.pk for r in refunds] == [second.refund.pk, first.refund.pk]

    def test_requires_store(self, refundable_order):
        with pytest.raises(AuthenticationRequiredError):
            RefundService.list_refunds(None, refundable_order.id)
