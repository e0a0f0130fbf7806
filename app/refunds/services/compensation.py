"""
Post-refund compensations.

Once a provider refund succeeds, two corrective steps follow:

- InventoryRestorationCoordinator credits the refunded units back to the
  supplier stock pools and flips Refund.inventory_restored.
- SplitReversalCoordinator appends ledger entries cancelling the order's
  payment split.

Both are idempotent. CompensationService runs them from the outbox
(CompensationTask rows): a failure is recorded on the task and logged,
never raised to the refund caller.
"""

from __future__ import annotations

from django.db import transaction

from audit.models import AuditAction
from audit.services import AuditService
from authentication.models import ActorRole
from core.services import BaseService
from inventory.exceptions import InventoryError
from inventory.services import InventoryService, RestockLine
from orders.models import PaymentProvider
from refunds.exceptions import InventoryRestorationError, SplitReversalError
from refunds.models import CompensationTask, Refund
from refunds.state_machines import CompensationKind, CompensationStatus
from settlements.services import SplitLedgerService


class InventoryRestorationCoordinator(BaseService):
    """Credits a refund's items back to stock, exactly once."""

    @classmethod
    def restore(cls, refund: Refund) -> bool:
        """
        Restore stock for every item of a succeeded refund.

        The Refund row is locked for the duration, so two concurrent
        restorations of the same refund serialize and the second is a
        no-op.

        Returns:
            True if stock was credited, False if it already had been

        Raises:
            InventoryRestorationError: A line has no consumed reservation or
                stock pool; nothing was credited
        """
        logger = cls.get_logger()

        try:
            with transaction.atomic():
                locked = Refund.objects.select_for_update().select_related("order", "store").get(pk=refund.pk)
                if locked.inventory_restored:
                    logger.info(
                        "Inventory already restored",
                        extra={"refund_id": str(refund.pk)},
                    )
                    refund.inventory_restored = True
                    return False

                lines = [
                    RestockLine(
                        product_id=item.product_id,
                        variant_id=item.variant_id,
                        quantity=item.quantity,
                    )
                    for item in locked.items.order_by("position")
                ]
                InventoryService.restock_order_lines(
                    store=locked.store,
                    order=locked.order,
                    lines=lines,
                )

                locked.inventory_restored = True
                locked.save(update_fields=["inventory_restored", "updated_at"])
        except InventoryError as e:
            raise InventoryRestorationError(
                f"Inventory restoration failed for refund {refund.pk}: {e.message}",
                details={"refund_id": str(refund.pk), **e.details},
            ) from e

        refund.inventory_restored = True
        logger.info(
            "Inventory restored",
            extra={
                "refund_id": str(refund.pk),
                "order_id": str(refund.order_id),
                "units": sum(line.quantity for line in lines),
            },
        )
        return True


class SplitReversalCoordinator(BaseService):
    """Reverses the order's payment split for a succeeded refund."""

    @staticmethod
    def build_reason(refund: Refund) -> str:
        prefix = "COD Refund" if refund.provider == PaymentProvider.COD else "Refund"
        return f"{prefix}: {refund.reason or 'No reason provided'}"

    @classmethod
    def reverse(cls, refund: Refund):
        """
        Ask the split ledger to cancel the order's split entries.

        Raises:
            SplitReversalError: The ledger reported failure
        """
        result = SplitLedgerService.reverse_split(
            order=refund.order,
            reason=cls.build_reason(refund),
            actor=refund.initiated_by,
            actor_role=refund.initiated_by_role or ActorRole.SYSTEM,
            refund=refund,
        )
        if not result.success:
            raise SplitReversalError(
                result.error or "Split reversal failed",
                error_code=result.error_code,
                details={"refund_id": str(refund.pk), "order_id": str(refund.order_id)},
            )
        return result.data


class CompensationService(BaseService):
    """Runs CompensationTask rows and records their outcome."""

    HANDLERS = {
        CompensationKind.INVENTORY_RESTORE: InventoryRestorationCoordinator.restore,
        CompensationKind.SPLIT_REVERSAL: SplitReversalCoordinator.reverse,
    }

    @classmethod
    def run(cls, task: CompensationTask) -> bool:
        """
        Run one task. Never raises for compensation failures.

        Returns:
            True if the task is (now) succeeded
        """
        if task.is_done:
            return True

        logger = cls.get_logger()
        handler = cls.HANDLERS[task.kind]
        log_context = {
            "task_id": task.pk,
            "kind": task.kind,
            "refund_id": str(task.refund_id),
            "attempt": task.attempts + 1,
        }

        try:
            handler(task.refund)
        except Exception as e:
            task.fail(str(e))
            task.save(update_fields=["status", "attempts", "last_error", "last_attempted_at", "updated_at"])
            logger.error(
                f"Compensation {task.kind} failed for refund {task.refund_id}: {e}",
                extra=log_context,
                exc_info=True,
            )
            AuditService.log(
                action=AuditAction.COMPENSATION_FAILED,
                entity_type="Refund",
                entity_id=task.refund_id,
                actor_role=ActorRole.SYSTEM,
                store=task.refund.store,
                description=f"Compensation {task.kind} failed",
                metadata={
                    "task_id": task.pk,
                    "kind": task.kind,
                    "attempts": task.attempts,
                    "error": task.last_error,
                },
            )
            return False

        task.complete()
        task.save(
            update_fields=["status", "attempts", "last_error", "last_attempted_at", "completed_at", "updated_at"]
        )
        logger.info(f"Compensation {task.kind} succeeded", extra=log_context)
        return True

    @classmethod
    def run_for_refund(cls, refund: Refund) -> dict[str, bool]:
        """
        Run every unfinished task of a refund, each isolated from the others.

        Returns:
            Mapping of task kind to whether it succeeded
        """
        tasks = refund.compensation_tasks.exclude(status=CompensationStatus.SUCCEEDED).order_by("id")
        outcome = {task.kind: cls.run(task) for task in tasks}
        refund.refresh_from_db(fields=["inventory_restored"])
        return outcome


__all__ = [
    "InventoryRestorationCoordinator",
    "SplitReversalCoordinator",
    "CompensationService",
]
