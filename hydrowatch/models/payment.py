"""
Request/response models for the payment bridge.
"""

from enum import Enum

from pydantic import Field

from hydrowatch.models.base import CamelModel


class Currency(str, Enum):
    USD = "usd"
    EUR = "eur"
    GBP = "gbp"


class PaymentIntentRequest(CamelModel):
    amount: float = Field(..., ge=0, description="Amount in major units (e.g. dollars)")
    currency: Currency


class PaymentIntentResponse(CamelModel):
    client_secret: str


class AttachPaymentMethodRequest(CamelModel):
    payment_method_id: str = Field(..., min_length=1)


class WebhookAck(CamelModel):
    received: bool = True
