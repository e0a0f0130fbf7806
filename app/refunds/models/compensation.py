"""
CompensationTask: durable outbox of post-refund corrective steps.

When a provider reports a refund as succeeded, one task per compensation
kind is written in the same transaction as the Refund. Tasks are run
inline right after the refund and retried by Celery until they succeed
or exhaust their attempts, so a failed stock restore or ledger reversal
stays visible instead of disappearing into a log line.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from refunds.state_machines import CompensationKind, CompensationStatus


class CompensationTask(BaseModel):
    """
    One compensation step for one refund.

    Fields:
        refund: Refund being compensated
        kind: inventory_restore or split_reversal
        status: FSM status
        attempts: Number of runs so far
        last_error: Error message from the most recent failed run
        last_attempted_at: When the task last ran
        completed_at: When the task succeeded
    """

    refund = models.ForeignKey(
        "refunds.Refund",
        on_delete=models.PROTECT,
        related_name="compensation_tasks",
        help_text="Refund this task compensates",
    )
    kind = models.CharField(
        max_length=32,
        choices=CompensationKind.choices,
        help_text="Compensation step",
    )
    status = FSMField(
        default=CompensationStatus.PENDING,
        choices=CompensationStatus.choices,
        db_index=True,
        help_text="Current state of the task (managed by FSM)",
    )
    attempts = models.PositiveIntegerField(
        default=0,
        help_text="Number of times the task has run",
    )
    last_error = models.TextField(
        blank=True,
        default="",
        help_text="Error from the most recent failed run",
    )
    last_attempted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the task last ran",
    )
    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the task succeeded",
    )

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["refund", "kind"],
                name="refunds_compensation_unique_kind_per_refund",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "last_attempted_at"], name="refunds_comp_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.kind} for refund {self.refund_id} ({self.status})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[CompensationStatus.PENDING, CompensationStatus.FAILED],
        target=CompensationStatus.SUCCEEDED,
    )
    def complete(self):
        """Transition: PENDING/FAILED -> SUCCEEDED"""
        now = timezone.now()
        self.attempts += 1
        self.last_attempted_at = now
        self.completed_at = now
        self.last_error = ""

    @transition(
        field=status,
        source=[CompensationStatus.PENDING, CompensationStatus.FAILED],
        target=CompensationStatus.FAILED,
    )
    def fail(self, error: str):
        """Transition: PENDING/FAILED -> FAILED"""
        self.attempts += 1
        self.last_attempted_at = timezone.now()
        self.last_error = error[:2000]

    @property
    def is_done(self) -> bool:
        return self.status == CompensationStatus.SUCCEEDED
