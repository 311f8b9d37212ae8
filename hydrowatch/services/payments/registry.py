"""
Payment gateway registry - picks the gateway named by PAYMENT_PROVIDER.
"""

import logging
from typing import Optional

from hydrowatch.core.settings import settings
from hydrowatch.services.payments.base import PaymentGateway
from hydrowatch.services.payments.mock_gateway import MockGateway
from hydrowatch.services.payments.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)

_GATEWAYS = {
    "stripe": StripeGateway,
    "mock": MockGateway,
}

_gateway: Optional[PaymentGateway] = None


def get_payment_gateway() -> PaymentGateway:
    """
    Get or create the configured gateway singleton.

    Raises:
        ValueError: PAYMENT_PROVIDER names no known gateway
    """
    global _gateway
    if _gateway is None:
        provider = (settings.PAYMENT_PROVIDER or "stripe").lower()
        gateway_cls = _GATEWAYS.get(provider)
        if gateway_cls is None:
            raise ValueError(f"Unknown PAYMENT_PROVIDER '{provider}'. Expected one of: {sorted(_GATEWAYS)}")
        _gateway = gateway_cls()
        logger.info(f"Payment gateway: {gateway_cls.name}")
    return _gateway
