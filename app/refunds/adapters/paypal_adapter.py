"""
PayPal refund adapter.

Refunds a captured PayPal payment through the Payments v2 REST API:

    POST {PAYPAL_API_BASE}/v2/payments/captures/{capture_id}/refund

Authentication uses the client-credentials OAuth flow. Access tokens are
cached in the Django cache until shortly before they expire.

Configuration (via settings):
- PAYPAL_CLIENT_ID / PAYPAL_CLIENT_SECRET: REST app credentials
- PAYPAL_API_BASE: API host (sandbox by default)
- PAYPAL_API_TIMEOUT_SECONDS: Read timeout (default: 10)

The PayPal-Request-Id header carries the idempotency key, so a retried
request returns the refund PayPal already created.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
from django.conf import settings
from django.core.cache import cache

from core.helpers import hash_string
from orders.models import PaymentProvider
from refunds.adapters.base import ProviderRefundResult
from refunds.calculator import from_minor_units, to_minor_units
from refunds.exceptions import (
    ProviderConfigurationError,
    ProviderRejectedError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from refunds.state_machines import ProviderRefundStatus

logger = logging.getLogger(__name__)

TOKEN_CACHE_PREFIX = "paypal:access_token"
# Seconds shaved off expires_in so a cached token is never used at the edge
TOKEN_EXPIRY_MARGIN = 60

# Transient HTTP statuses: the same request may succeed later
TRANSIENT_HTTP_ERRORS = frozenset({429, 500, 502, 503, 504})

STATUS_MAP = {
    "COMPLETED": ProviderRefundStatus.SUCCEEDED,
    "PENDING": ProviderRefundStatus.PENDING,
    "CANCELLED": ProviderRefundStatus.FAILED,
    "FAILED": ProviderRefundStatus.FAILED,
}


class PayPalRefundAdapter:
    """
    Adapter for PayPal capture refunds.

    Args:
        client: Optional httpx.Client (tests pass one with a MockTransport)
    """

    provider = PaymentProvider.PAYPAL

    def __init__(self, client: httpx.Client | None = None):
        self._client = client

    @property
    def base_url(self) -> str:
        return settings.PAYPAL_API_BASE.rstrip("/")

    @staticmethod
    def _timeout() -> httpx.Timeout:
        read = float(getattr(settings, "PAYPAL_API_TIMEOUT_SECONDS", 10))
        return httpx.Timeout(connect=5.0, read=read, write=read, pool=5.0)

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout())
        return self._client

    def _token_cache_key(self) -> str:
        return f"{TOKEN_CACHE_PREFIX}:{hash_string(settings.PAYPAL_CLIENT_ID + self.base_url)[:16]}"

    def _send(self, method: str, url: str, operation: str, **kwargs) -> httpx.Response:
        """Perform a request, translating transport failures."""
        try:
            return self._http().request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(
                "PayPal request timed out",
                extra={"operation": operation, "url": url},
            )
            raise ProviderTimeoutError(
                "PayPal request timed out. Please retry.",
                provider=self.provider,
                provider_code="timeout",
            ) from e
        except httpx.TransportError as e:
            logger.error(
                "Connection error to PayPal",
                extra={"operation": operation, "url": url},
                exc_info=True,
            )
            raise ProviderUnavailableError(
                "Could not connect to PayPal. Please retry.",
                provider=self.provider,
                provider_code="connection_error",
            ) from e

    def get_access_token(self) -> str:
        """
        Return a cached OAuth token, fetching a new one when needed.

        Raises:
            ProviderConfigurationError: Credentials missing or rejected
            ProviderUnavailableError: Token endpoint unavailable
        """
        if not settings.PAYPAL_CLIENT_ID or not settings.PAYPAL_CLIENT_SECRET:
            raise ProviderConfigurationError(
                "PayPal is not configured",
                provider=self.provider,
            )

        cache_key = self._token_cache_key()
        token = cache.get(cache_key)
        if token:
            return token

        response = self._send(
            "POST",
            f"{self.base_url}/v1/oauth2/token",
            operation="get_access_token",
            auth=(settings.PAYPAL_CLIENT_ID, settings.PAYPAL_CLIENT_SECRET),
            data={"grant_type": "client_credentials"},
            headers={"Accept": "application/json"},
        )

        if response.status_code in TRANSIENT_HTTP_ERRORS:
            raise ProviderUnavailableError(
                f"PayPal token endpoint returned {response.status_code}",
                provider=self.provider,
                provider_code=str(response.status_code),
            )
        if response.status_code != 200:
            logger.critical(
                "PayPal authentication failed - check client credentials",
                extra={"status_code": response.status_code},
            )
            raise ProviderConfigurationError(
                "PayPal authentication failed",
                provider=self.provider,
                provider_code=str(response.status_code),
            )

        data = response.json()
        token = data["access_token"]
        ttl = max(int(data.get("expires_in", 3600)) - TOKEN_EXPIRY_MARGIN, 1)
        cache.set(cache_key, token, ttl)
        return token

    def _headers(self, idempotency_key: str | None = None) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.get_access_token()}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Prefer": "return=representation",
        }
        if idempotency_key:
            headers["PayPal-Request-Id"] = idempotency_key
        return headers

    def _raise_for_response(self, response: httpx.Response, log_context: dict[str, Any]) -> None:
        if response.status_code < 400:
            return

        try:
            body = response.json()
        except ValueError:
            body = {}

        error_name = body.get("name") or str(response.status_code)
        issue = ""
        if body.get("details"):
            issue = body["details"][0].get("issue", "")

        log_context = {
            **log_context,
            "status_code": response.status_code,
            "paypal_error": error_name,
            "paypal_issue": issue,
            "debug_id": body.get("debug_id"),
        }

        if response.status_code in TRANSIENT_HTTP_ERRORS:
            logger.warning("PayPal unavailable", extra=log_context)
            raise ProviderUnavailableError(
                f"PayPal returned {response.status_code}. Please retry.",
                provider=self.provider,
                provider_code=error_name,
            )

        if response.status_code == 401:
            # Token revoked or expired early
            cache.delete(self._token_cache_key())
            logger.error("PayPal rejected access token", extra=log_context)
            raise ProviderConfigurationError(
                "PayPal authentication failed",
                provider=self.provider,
                provider_code=error_name,
            )

        logger.error("PayPal rejected refund", extra=log_context)
        raise ProviderRejectedError(
            body.get("message") or f"PayPal rejected the request ({error_name})",
            provider=self.provider,
            provider_code=issue or error_name,
        )

    def _to_result(
        self,
        response: httpx.Response,
        fallback_cents: int | None,
        currency: str,
        log_context: dict[str, Any],
    ) -> ProviderRefundResult:
        """
        Build the result from a 2xx refund response.

        Raises:
            ProviderUnavailableError: Body is not a refund representation
        """
        try:
            body = response.json()
            amount = body.get("amount") or {}
            if amount.get("value") is not None:
                amount_cents = to_minor_units(amount["value"])
            else:
                amount_cents = fallback_cents or 0
            return ProviderRefundResult(
                refund_id=body["id"],
                amount_cents=amount_cents,
                currency=(amount.get("currency_code") or currency).lower(),
                status=STATUS_MAP.get(body.get("status", ""), ProviderRefundStatus.FAILED),
                raw_response=body,
            )
        except (ValueError, KeyError, TypeError, AttributeError, ArithmeticError) as e:
            # Retrying with the same PayPal-Request-Id replays the refund
            logger.error(
                "Unreadable PayPal refund response",
                extra={**log_context, "status_code": response.status_code},
                exc_info=True,
            )
            raise ProviderUnavailableError(
                "PayPal returned an unreadable refund response. Please retry.",
                provider=self.provider,
                provider_code="invalid_response",
            ) from e

    def create_refund(
        self,
        payment_reference: str,
        idempotency_key: str,
        currency: str,
        amount_cents: int | None = None,
        reason: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> ProviderRefundResult:
        """
        Refund a PayPal capture.

        Omitting amount_cents refunds the remaining captured amount.

        Raises:
            ProviderRejectedError: 4xx other than 401/429
            ProviderUnavailableError: 429 or 5xx
            ProviderTimeoutError: Request timed out
        """
        log_context = {
            "operation": "create_refund",
            "capture_id": payment_reference,
            "amount_cents": amount_cents,
            "idempotency_key": idempotency_key,
        }
        start_time = time.time()
        logger.info("Starting PayPal operation", extra=log_context)

        payload: dict[str, Any] = {}
        if amount_cents is not None:
            payload["amount"] = {
                "value": str(from_minor_units(amount_cents)),
                "currency_code": currency.upper(),
            }
        if reason:
            payload["note_to_payer"] = reason[:255]
        if metadata and metadata.get("order_id"):
            payload["custom_id"] = str(metadata["order_id"])[:127]

        response = self._send(
            "POST",
            f"{self.base_url}/v2/payments/captures/{payment_reference}/refund",
            operation="create_refund",
            json=payload,
            headers=self._headers(idempotency_key),
        )
        self._raise_for_response(response, log_context)

        result = self._to_result(response, amount_cents, currency, log_context)
        logger.info(
            "PayPal operation completed",
            extra={
                **log_context,
                "refund_id": result.refund_id,
                "status": result.status,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return result


__all__ = ["PayPalRefundAdapter", "STATUS_MAP"]
