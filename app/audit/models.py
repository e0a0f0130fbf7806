"""
Audit log model.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from authentication.models import ActorRole
from core.models import BaseModel


class AuditAction(models.TextChoices):
    """Recorded business actions."""

    REFUND_CREATED = "REFUND_CREATED", "Refund created"
    PAYPAL_REFUND_CREATED = "PAYPAL_REFUND_CREATED", "PayPal refund created"
    COD_REFUND_CREATED = "COD_REFUND_CREATED", "COD refund created"
    SPLIT_REVERSED = "SPLIT_REVERSED", "Split reversed"
    COMPENSATION_FAILED = "COMPENSATION_FAILED", "Compensation failed"


class AuditLog(BaseModel):
    """
    Immutable record of who did what to which entity.

    Payloads (before/after/metadata) are masked and size-limited by
    AuditService before they reach this table.
    """

    store = models.ForeignKey(
        "orders.Store",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
        help_text="Store the action happened in",
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
        help_text="User who performed the action (None for system jobs)",
    )
    actor_role = models.CharField(
        max_length=20,
        choices=ActorRole.choices,
        default=ActorRole.SYSTEM,
        help_text="Role the actor acted in",
    )
    action = models.CharField(
        max_length=64,
        choices=AuditAction.choices,
        db_index=True,
        help_text="Action performed",
    )
    entity_type = models.CharField(
        max_length=64,
        help_text="Type of the affected entity (e.g., 'Refund')",
    )
    entity_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        db_index=True,
        help_text="Identifier of the affected entity",
    )
    description = models.TextField(
        help_text="Human-readable description",
    )
    before = models.JSONField(
        null=True,
        blank=True,
        help_text="Snapshot before the change",
    )
    after = models.JSONField(
        null=True,
        blank=True,
        help_text="Snapshot after the change",
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Additional context",
    )
    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="Client IP address",
    )
    user_agent = models.CharField(
        max_length=512,
        blank=True,
        default="",
        help_text="Client user agent",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.action} {self.entity_type}:{self.entity_id}"
