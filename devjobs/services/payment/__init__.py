from typing import Optional

from devjobs.config import PAYMENT_PROVIDER
from devjobs.models.payment import PaymentProvider
from devjobs.services.payment.base import (
    PaymentProviderBase, PaymentProviderError, CheckoutSession, WebhookResult
)
from devjobs.services.payment.lemon_squeezy import LemonSqueezyProvider
from devjobs.services.payment.position_payment_service import PositionPaymentService


def configured_provider_name() -> PaymentProvider:
    return PaymentProvider(PAYMENT_PROVIDER)


def get_payment_provider() -> Optional[PaymentProviderBase]:
    """The configured checkout provider; None for providers without an implementation"""
    if configured_provider_name() == PaymentProvider.LEMON_SQUEEZY:
        return LemonSqueezyProvider()
    return None


def get_payment_service() -> PositionPaymentService:
    return PositionPaymentService()


__all__ = [
    "PaymentProviderBase", "PaymentProviderError", "CheckoutSession", "WebhookResult",
    "LemonSqueezyProvider", "PositionPaymentService",
    "configured_provider_name", "get_payment_provider", "get_payment_service",
]
