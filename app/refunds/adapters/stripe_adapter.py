"""
Stripe refund adapter.

All Stripe refund calls go through StripeRefundAdapter so that timeouts,
idempotency and error translation are consistent.

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)

Usage:
    adapter = StripeRefundAdapter()
    result = adapter.create_refund(
        payment_reference="pi_xxx",
        idempotency_key=fingerprint,
        currency="usd",
        amount_cents=2500,
    )
"""

from __future__ import annotations

import logging
import time
from typing import Any

import stripe
from django.conf import settings

from orders.models import PaymentProvider
from refunds.adapters.base import ProviderRefundResult
from refunds.exceptions import (
    ProviderConfigurationError,
    ProviderError,
    ProviderRejectedError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from refunds.state_machines import ProviderRefundStatus

# Stripe refund status -> normalized status
STATUS_MAP = {
    "succeeded": ProviderRefundStatus.SUCCEEDED,
    "pending": ProviderRefundStatus.PENDING,
    "requires_action": ProviderRefundStatus.PENDING,
    "failed": ProviderRefundStatus.FAILED,
    "canceled": ProviderRefundStatus.FAILED,
}

# Stripe only accepts these values for Refund.reason
STRIPE_REASONS = frozenset({"duplicate", "fraudulent", "requested_by_customer"})


class StripeRefundAdapter:
    """
    Adapter for Stripe refund operations.

    Stateless; safe to share between threads and Celery workers.
    """

    provider = PaymentProvider.STRIPE

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key and timeout."""
        if not settings.STRIPE_SECRET_KEY:
            raise ProviderConfigurationError(
                "Stripe is not configured",
                provider=PaymentProvider.STRIPE,
            )
        stripe.api_key = settings.STRIPE_SECRET_KEY
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @staticmethod
    def _to_result(refund: Any) -> ProviderRefundResult:
        return ProviderRefundResult(
            refund_id=refund.id,
            amount_cents=refund.amount,
            currency=(refund.currency or "").lower(),
            status=STATUS_MAP.get(refund.status, ProviderRefundStatus.PENDING),
            raw_response=refund.to_dict() if hasattr(refund, "to_dict") else dict(refund),
        )

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
        Create a refund for a PaymentIntent.

        Free-text reasons go into metadata; Stripe's own reason field only
        takes a fixed set of codes.

        Raises:
            ProviderRejectedError: Refund not possible
            ProviderUnavailableError: Rate limit, Stripe outage, network error
            ProviderTimeoutError: Request timed out
        """
        self._configure_stripe()
        logger = self.get_logger()

        log_context = {
            "operation": "create_refund",
            "payment_intent_id": payment_reference,
            "amount_cents": amount_cents,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        refund_params: dict[str, Any] = {
            "payment_intent": payment_reference,
            "metadata": dict(metadata or {}),
        }
        if amount_cents is not None:
            refund_params["amount"] = amount_cents
        if reason in STRIPE_REASONS:
            refund_params["reason"] = reason
        elif reason:
            refund_params["metadata"]["reason"] = reason[:500]

        try:
            refund = stripe.Refund.create(idempotency_key=idempotency_key, **refund_params)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "refund_id": refund.id,
                "status": refund.status,
                "duration_ms": duration_ms,
            },
        )
        return self._to_result(refund)

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to provider exceptions.

        Raises:
            ProviderRejectedError: Invalid request or card error
            ProviderUnavailableError: Rate limit, API error, connection error
            ProviderTimeoutError: Connection timed out
            ProviderConfigurationError: Authentication failed
        """
        if isinstance(error, ProviderError):
            raise error

        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}
        provider = PaymentProvider.STRIPE

        if isinstance(error, (stripe.CardError, stripe.InvalidRequestError)):
            logger.error(
                "Stripe rejected refund",
                extra={**log_context, "stripe_code": error.code},
            )
            raise ProviderRejectedError(
                str(error.user_message or error),
                provider=provider,
                provider_code=error.code,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise ProviderUnavailableError(
                "Stripe rate limit exceeded. Please retry.",
                provider=provider,
                provider_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            if "timed out" in str(error).lower() or "timeout" in str(error).lower():
                raise ProviderTimeoutError(
                    "Stripe request timed out. Please retry.",
                    provider=provider,
                    provider_code="timeout",
                ) from error
            raise ProviderUnavailableError(
                "Could not connect to Stripe. Please retry.",
                provider=provider,
                provider_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise ProviderConfigurationError(
                "Stripe authentication failed",
                provider=provider,
                provider_code="authentication_error",
            ) from error

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise ProviderUnavailableError(
                "Stripe service error. Please retry.",
                provider=provider,
                provider_code="api_error",
            ) from error

        logger.error(
            f"Unexpected error from Stripe: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise ProviderUnavailableError(
            f"Unexpected Stripe error: {error}",
            provider=provider,
            provider_code="unknown_error",
        ) from error


__all__ = ["StripeRefundAdapter", "STATUS_MAP"]
