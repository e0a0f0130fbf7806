"""
Audit service.

AuditService.log() appends an AuditLog row. It never raises: a failed
audit write is logged and the caller carries on.

Payload handling:
    - Keys that look like credentials or card data are replaced with
      "[MASKED]" at any depth
    - Payloads are size-limited; once the budget is spent remaining values
      become "[TRUNCATED]"
"""

from __future__ import annotations

import ipaddress
import logging
from datetime import date, datetime
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction

from audit.models import AuditLog
from authentication.models import ActorRole
from core.helpers import get_client_ip, get_user_agent

if TYPE_CHECKING:
    from typing import Any

    from django.http import HttpRequest

logger = logging.getLogger(__name__)

MASKED = "[MASKED]"
TRUNCATED = "[TRUNCATED]"

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "passwordhash",
        "token",
        "accesstoken",
        "refreshtoken",
        "resettoken",
        "otp",
        "otpcode",
        "secret",
        "clientsecret",
        "apikey",
        "apisecret",
        "authorization",
        "cardnumber",
        "pan",
        "primaryaccountnumber",
        "cvv",
        "cvv2",
        "cvc",
        "cvc2",
        "cvn",
        "cardverificationvalue",
        "expiry",
        "expirydate",
        "expiration",
        "expirationdate",
        "trackdata",
        "magneticstripe",
    }
)


def _normalize_key(key: str) -> str:
    return str(key).lower().replace("_", "").replace("-", "")


class _Budget:
    def __init__(self, limit: int):
        self.limit = limit
        self.used = 0

    def spend(self, text: str) -> bool:
        """Consume len(text); return False once the budget is exceeded."""
        self.used += len(text)
        return self.used <= self.limit

    @property
    def exhausted(self) -> bool:
        return self.used > self.limit


def mask_and_truncate(value: Any, max_chars: int | None = None, _budget: _Budget | None = None) -> Any:
    """
    Return a JSON-safe copy of value with sensitive keys masked.

    Args:
        value: Payload (dicts, lists, scalars, dates, decimals, UUIDs)
        max_chars: Character budget for scalar content
    """
    if _budget is None:
        _budget = _Budget(max_chars or settings.AUDIT_MAX_PAYLOAD_CHARS)

    if value is None:
        return None

    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if _budget.exhausted:
                result[str(key)] = TRUNCATED
                continue
            if _normalize_key(key) in SENSITIVE_KEYS:
                result[str(key)] = MASKED
                continue
            result[str(key)] = mask_and_truncate(item, _budget=_budget)
        return result

    if isinstance(value, (list, tuple)):
        items = []
        for item in value:
            if _budget.exhausted:
                items.append(TRUNCATED)
                break
            items.append(mask_and_truncate(item, _budget=_budget))
        return items

    if isinstance(value, (bool, int, float)):
        return value if _budget.spend(str(value)) else TRUNCATED

    text = value.isoformat() if isinstance(value, (datetime, date)) else str(value)
    return text if _budget.spend(text) else TRUNCATED


class AuditService:
    """Append-only audit trail writer."""

    @staticmethod
    def log(
        action: str,
        entity_type: str,
        description: str,
        entity_id: Any = None,
        actor=None,
        actor_role: ActorRole | str | None = None,
        store=None,
        before: dict | None = None,
        after: dict | None = None,
        metadata: dict | None = None,
        request: HttpRequest | None = None,
    ) -> AuditLog | None:
        """
        Append an audit entry.

        Actor, role and store fall back to the request's user when not
        given. Returns the created AuditLog, or None if the write failed.
        """
        try:
            if actor is None and request is not None:
                user = getattr(request, "user", None)
                if user is not None and user.is_authenticated:
                    actor = user

            if actor_role is None:
                actor_role = getattr(actor, "role", None) or ActorRole.SYSTEM

            if store is None and actor is not None:
                store = getattr(actor, "store", None)

            ip_address = None
            user_agent = ""
            if request is not None:
                ip_address = get_client_ip(request) or None
                if ip_address:
                    try:
                        ipaddress.ip_address(ip_address)
                    except ValueError:
                        ip_address = None
                user_agent = get_user_agent(request)[:512]

            # Savepoint so a failed insert doesn't break the caller's transaction
            with transaction.atomic():
                return AuditLog.objects.create(
                    store=store,
                    actor=actor,
                    actor_role=str(actor_role),
                    action=str(action),
                    entity_type=entity_type,
                    entity_id=str(entity_id) if entity_id is not None else "",
                    description=description,
                    before=mask_and_truncate(before),
                    after=mask_and_truncate(after),
                    metadata=mask_and_truncate(metadata or {}),
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
        except Exception as e:
            logger.warning(
                f"Failed to write audit log: {e}",
                extra={
                    "action": str(action),
                    "entity_type": entity_type,
                    "entity_id": str(entity_id) if entity_id is not None else None,
                },
                exc_info=True,
            )
            return None

    @staticmethod
    def get_entries_for_entity(entity_type: str, entity_id) -> list[AuditLog]:
        """Return audit entries for an entity, newest first."""
        return list(
            AuditLog.objects.filter(
                entity_type=entity_type,
                entity_id=str(entity_id),
            ).order_by("-created_at")
        )


__all__ = [
    "AuditService",
    "mask_and_truncate",
    "MASKED",
    "TRUNCATED",
]
