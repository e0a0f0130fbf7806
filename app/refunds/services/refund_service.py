"""
Refund service: the critical path for returning money to a customer.

The flow for one request:

1. Authorize the actor (admin and system roles may refund).
2. Parse the request shape.
3. Take the per-order Redis lock. Everything up to the Refund write runs
   under it, so two requests for the same order never both reach the
   provider.
4. Resolve the paid order and payment, reject duplicates by fingerprint,
   validate against the refund history and compute amounts.
5. Call the provider with an idempotency key derived from the fingerprint.
   A provider error propagates and nothing is persisted.
6. Record the Refund, its items and its compensation tasks atomically.
7. Release the lock, run compensations, write the audit entry.

Usage:
    from refunds.services import RefundService

    outcome = RefundService.create_refund(
        store=request.user.store,
        actor=request.user,
        order_id=order_id,
        data={"refund_type": "full", "reason": "Damaged"},
    )
    outcome.refund.inventory_restored
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from audit.models import AuditAction
from audit.services import AuditService
from authentication.models import ActorRole
from core.exceptions import AuthenticationRequiredError, PermissionDeniedError
from core.services import BaseService
from orders.models import PaymentProvider
from orders.services import OrderPaymentLookup
from refunds.adapters import get_provider_adapter
from refunds.calculator import RefundAmountCalculator
from refunds.exceptions import DuplicateRefundError, LockAcquisitionError, ProviderError
from refunds.locks import order_refund_lock
from refunds.models import Refund, RefundItem
from refunds.services.compensation import CompensationService
from refunds.services.recorder import RefundRecorder
from refunds.state_machines import ProviderRefundStatus
from refunds.validators import RefundHistory, RefundRequestValidator

if TYPE_CHECKING:
    from typing import Any

    from django.http import HttpRequest

    from orders.models import Order, Store
    from orders.services import ResolvedOrderPayment


@dataclass
class RefundOutcome:
    """
    Result of a refund request.

    Attributes:
        refund: The recorded Refund (refreshed after compensations)
        created: False when the provider replayed an already-recorded refund
        compensations: Compensation kind -> whether it succeeded
    """

    refund: Refund
    created: bool = True
    compensations: dict[str, bool] = field(default_factory=dict)


class RefundService(BaseService):
    """Refund orchestration."""

    @classmethod
    def authorize(cls, actor, store: Store | None) -> ActorRole:
        """
        Check that an actor in a store context may initiate refunds.

        Raises:
            AuthenticationRequiredError: No actor or no store
            PermissionDeniedError: Actor role may not refund
        """
        if actor is None or not getattr(actor, "is_authenticated", False) or store is None:
            raise AuthenticationRequiredError("Authentication and store context are required")

        try:
            role = ActorRole(actor.role)
        except ValueError:
            raise PermissionDeniedError(
                f"Unknown actor role '{actor.role}'",
                details={"role": actor.role},
            ) from None

        if not role.can_initiate_refund():
            raise PermissionDeniedError(
                f"Role '{role.value}' cannot initiate refunds",
                details={"role": role.value},
            )
        return role

    @staticmethod
    def refund_history(resolved: ResolvedOrderPayment) -> RefundHistory:
        """Amount and per-line quantities already returned by active refunds."""
        order = resolved.order
        refunded_cents = Refund.objects.refunded_amount(order)

        line_ids: dict[tuple[str, str], int] = {}
        for line in resolved.items:
            line_ids.setdefault((line.product_id, line.variant_id), line.pk)

        quantities: dict[int, int] = defaultdict(int)
        for item in RefundItem.objects.filter(refund__in=Refund.objects.active().filter(order=order)):
            line_id = line_ids.get((item.product_id, item.variant_id))
            if line_id is not None:
                quantities[line_id] += item.quantity

        return RefundHistory(refunded_cents=refunded_cents, refunded_quantities=dict(quantities))

    @staticmethod
    def provider_idempotency_key(order: Order, fingerprint: str) -> str:
        """
        Idempotency key sent to the provider.

        Retries of the same request reuse the key. Once the provider has
        reported a refund as failed, the next attempt gets a fresh key.
        """
        attempt = (
            Refund.objects.filter(
                order=order,
                request_fingerprint=fingerprint,
                provider_status=ProviderRefundStatus.FAILED,
            ).count()
            + 1
        )
        return f"refund:{fingerprint}:{attempt}"

    @classmethod
    def create_refund(
        cls,
        store: Store | None,
        actor,
        order_id,
        data: dict[str, Any],
        http_request: HttpRequest | None = None,
    ) -> RefundOutcome:
        """
        Create and execute a refund for an order.

        Args:
            store: Store the actor operates
            actor: User requesting the refund
            order_id: Order UUID
            data: refund_type, amount, reason, items, idempotency_key
            http_request: Originating request, for audit IP and user agent

        Returns:
            RefundOutcome with the recorded Refund

        Raises:
            AuthenticationRequiredError / PermissionDeniedError: Access control
            RefundValidationError: Bad request or business rule
            OrderNotFoundError / PaymentNotFoundError: Nothing to refund
            OrderNotPaidError: Order is not in the paid state
            DuplicateRefundError / OrderFullyRefundedError: Already refunded
            LockAcquisitionError: Another refund for the order is running
            ProviderError: Provider call failed; nothing was persisted
        """
        role = cls.authorize(actor, store)
        request = RefundRequestValidator.parse(data)
        logger = cls.get_logger()

        # Every spelling of the id must map to the same lock key
        order_id = OrderPaymentLookup.parse_order_id(order_id)

        log_context = {
            "order_id": str(order_id),
            "refund_type": request.refund_type,
            "actor_id": str(actor.pk),
            "actor_role": role.value,
        }
        logger.info("Starting refund creation", extra=log_context)

        try:
            with order_refund_lock(order_id):
                resolved, recorded = cls._execute_with_lock(store, actor, role, order_id, request, log_context)
        except LockAcquisitionError:
            logger.warning("Failed to acquire lock for refund execution", extra=log_context)
            raise

        refund = recorded.refund
        outcome = RefundOutcome(refund=refund, created=recorded.created)

        if refund.succeeded:
            outcome.compensations = CompensationService.run_for_refund(refund)

        if recorded.created:
            action = {
                PaymentProvider.PAYPAL: AuditAction.PAYPAL_REFUND_CREATED,
                PaymentProvider.COD: AuditAction.COD_REFUND_CREATED,
            }.get(refund.provider, AuditAction.REFUND_CREATED)
            AuditService.log(
                action=action,
                entity_type="Refund",
                entity_id=refund.pk,
                actor=actor,
                actor_role=role,
                store=resolved.order.store,
                description=f"{refund.get_refund_type_display()} refund for order {resolved.order.id}",
                after={
                    "amount_cents": refund.amount_cents,
                    "currency": refund.currency,
                    "provider_status": refund.provider_status,
                    "inventory_restored": refund.inventory_restored,
                },
                metadata={
                    "order_id": str(resolved.order.id),
                    "provider": refund.provider,
                    "provider_refund_id": refund.provider_refund_id,
                    "reason": refund.reason,
                },
                request=http_request,
            )

        logger.info(
            "Refund request completed",
            extra={
                **log_context,
                "refund_id": str(refund.pk),
                "provider_status": refund.provider_status,
                "inventory_restored": refund.inventory_restored,
                "compensations": outcome.compensations,
            },
        )
        return outcome

    @classmethod
    def _execute_with_lock(cls, store, actor, role, order_id, request, log_context):
        """Lookup, validation, provider call and Refund write (lock held)."""
        logger = cls.get_logger()

        resolved = OrderPaymentLookup.resolve(store=store, order_id=order_id)
        order = resolved.order
        payment = resolved.payment

        fingerprint = request.fingerprint(order.id)
        duplicate = Refund.objects.active().filter(order=order, request_fingerprint=fingerprint).first()
        if duplicate is not None:
            logger.warning(
                "Duplicate refund request rejected",
                extra={**log_context, "existing_refund_id": str(duplicate.pk)},
            )
            raise DuplicateRefundError(
                "An identical refund request has already been processed",
                details={"refund_id": str(duplicate.pk), "order_id": str(order.id)},
            )

        validated = RefundRequestValidator.validate(request, resolved, cls.refund_history(resolved))
        breakdown = RefundAmountCalculator.calculate(validated, payment)

        adapter = get_provider_adapter(payment.provider)
        try:
            provider_result = adapter.create_refund(
                payment_reference=payment.refund_reference,
                idempotency_key=cls.provider_idempotency_key(order, fingerprint),
                currency=payment.currency,
                # Omitted amount refunds the full capture
                amount_cents=None if request.is_full else breakdown.amount_cents,
                reason=request.reason or None,
                metadata={
                    "order_id": str(order.id),
                    "store_id": str(order.store_id),
                    "refund_type": request.refund_type,
                    "amount_cents": str(breakdown.amount_cents),
                },
            )
        except ProviderError as e:
            logger.warning(
                f"Provider refund failed: {e.message}",
                extra={
                    **log_context,
                    "provider": payment.provider,
                    "error_code": e.error_code,
                    "retryable": e.is_retryable,
                },
            )
            raise

        recorded = RefundRecorder.record(
            resolved=resolved,
            request=request,
            breakdown=breakdown,
            provider_result=provider_result,
            fingerprint=fingerprint,
            actor=actor,
            actor_role=role,
        )
        return resolved, recorded

    @classmethod
    def list_refunds(cls, store: Store | None, order_id) -> list[Refund]:
        """
        Refunds recorded for an order, newest first.

        Raises:
            AuthenticationRequiredError: No store context
            OrderNotFoundError: Order absent from the store
        """
        if store is None:
            raise AuthenticationRequiredError("Store context is required")
        order = OrderPaymentLookup.get_order(store, order_id)
        return list(Refund.objects.for_order(order).prefetch_related("items"))


__all__ = ["RefundOutcome", "RefundService"]
