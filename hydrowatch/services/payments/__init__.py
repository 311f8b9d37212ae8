"""
Payment bridge - a narrow façade over the hosted payment provider.
"""

from hydrowatch.services.payments.base import PaymentGateway, PaymentGatewayError, WebhookSignatureError
from hydrowatch.services.payments.mock_gateway import MockGateway, sign_payload
from hydrowatch.services.payments.registry import get_payment_gateway
from hydrowatch.services.payments.stripe_gateway import StripeGateway

__all__ = [
    "PaymentGateway",
    "PaymentGatewayError",
    "WebhookSignatureError",
    "MockGateway",
    "StripeGateway",
    "get_payment_gateway",
    "sign_payload",
]
