"""
Provider adapter registry.

Maps a PaymentProvider value to the adapter that refunds its payments.
Tests swap adapters in with set_provider_adapter().
"""

from __future__ import annotations

from orders.models import PaymentProvider
from refunds.adapters.base import RefundProviderAdapter
from refunds.adapters.cod_adapter import CashOnDeliveryRefundAdapter
from refunds.adapters.paypal_adapter import PayPalRefundAdapter
from refunds.adapters.stripe_adapter import StripeRefundAdapter
from refunds.exceptions import ProviderConfigurationError

_DEFAULT_FACTORIES = {
    PaymentProvider.STRIPE: StripeRefundAdapter,
    PaymentProvider.PAYPAL: PayPalRefundAdapter,
    PaymentProvider.COD: CashOnDeliveryRefundAdapter,
}

_adapters: dict[str, RefundProviderAdapter] = {}


def get_provider_adapter(provider: str) -> RefundProviderAdapter:
    """
    Return the adapter for a provider, building the default on first use.

    Raises:
        ProviderConfigurationError: Unknown provider
    """
    adapter = _adapters.get(provider)
    if adapter is not None:
        return adapter

    factory = _DEFAULT_FACTORIES.get(provider)
    if factory is None:
        raise ProviderConfigurationError(
            f"No refund adapter registered for provider '{provider}'",
            provider=str(provider),
        )
    adapter = _adapters[provider] = factory()
    return adapter


def set_provider_adapter(provider: str, adapter: RefundProviderAdapter | None) -> None:
    """Register an adapter for a provider; None restores the default."""
    if adapter is None:
        _adapters.pop(provider, None)
    else:
        _adapters[provider] = adapter


__all__ = ["get_provider_adapter", "set_provider_adapter"]
