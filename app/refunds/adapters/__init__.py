"""
Refund adapters for payment providers.

All provider refund calls go through these adapters so that timeouts,
idempotency keys and error translation are consistent.

Usage:
    from refunds.adapters import get_provider_adapter

    adapter = get_provider_adapter(payment.provider)
    result = adapter.create_refund(
        payment_reference=payment.refund_reference,
        idempotency_key=fingerprint,
        currency=payment.currency,
        amount_cents=2500,
    )
"""

from refunds.adapters.base import ProviderRefundResult, RefundProviderAdapter
from refunds.adapters.cod_adapter import CashOnDeliveryRefundAdapter
from refunds.adapters.paypal_adapter import PayPalRefundAdapter
from refunds.adapters.registry import get_provider_adapter, set_provider_adapter
from refunds.adapters.stripe_adapter import StripeRefundAdapter

__all__ = [
    "ProviderRefundResult",
    "RefundProviderAdapter",
    "StripeRefundAdapter",
    "PayPalRefundAdapter",
    "CashOnDeliveryRefundAdapter",
    "get_provider_adapter",
    "set_provider_adapter",
]
