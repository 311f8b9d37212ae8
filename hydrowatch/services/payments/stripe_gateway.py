"""
Stripe gateway - wraps the stripe SDK behind the PaymentGateway interface.
"""

import json
import logging
from typing import Dict, List, Optional

import stripe

from hydrowatch.core.settings import settings
from hydrowatch.services.payments.base import PaymentGateway, PaymentGatewayError, WebhookSignatureError

logger = logging.getLogger(__name__)


def stripe_object_to_dict(obj) -> Dict:
    # StripeObject serializes itself as JSON
    return json.loads(str(obj))


class StripeGateway(PaymentGateway):
    """
    Requires STRIPE_SECRET_KEY; webhooks additionally need STRIPE_WEBHOOK_SECRET.
    The key is passed per call rather than set on the stripe module.
    """

    name = "stripe"

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        if not self.api_key:
            logger.warning("STRIPE_SECRET_KEY is not set; Stripe calls will fail")

    def _call(self, description: str, func, *args, **kwargs):
        try:
            return func(*args, api_key=self.api_key, **kwargs)
        except stripe.StripeError as e:
            logger.error(f"Stripe {description} failed: {e}", exc_info=True)
            raise PaymentGatewayError(f"Payment gateway error: {e.user_message or 'request failed'}")

    def create_customer(self, email: str, metadata: Optional[Dict] = None) -> Dict:
        customer = self._call("customer create", stripe.Customer.create, email=email, metadata=metadata or {})
        return stripe_object_to_dict(customer)

    def create_payment_intent(
        self,
        amount_minor: int,
        currency: str,
        customer_id: str,
        metadata: Optional[Dict] = None,
    ) -> Dict:
        intent = self._call(
            "payment intent create",
            stripe.PaymentIntent.create,
            amount=amount_minor,
            currency=currency,
            customer=customer_id,
            metadata=metadata or {},
        )
        return stripe_object_to_dict(intent)

    def list_payment_intents(self, customer_id: str, limit: int = 10) -> List[Dict]:
        intents = self._call("payment intent list", stripe.PaymentIntent.list, customer=customer_id, limit=limit)
        return stripe_object_to_dict(intents).get("data", [])

    def list_payment_methods(self, customer_id: str) -> List[Dict]:
        methods = self._call(
            "payment method list", stripe.PaymentMethod.list, customer=customer_id, type="card"
        )
        return stripe_object_to_dict(methods).get("data", [])

    def attach_payment_method(self, payment_method_id: str, customer_id: str) -> Dict:
        method = self._call("payment method attach", stripe.PaymentMethod.attach, payment_method_id, customer=customer_id)
        self._call(
            "customer update",
            stripe.Customer.modify,
            customer_id,
            invoice_settings={"default_payment_method": payment_method_id},
        )
        return stripe_object_to_dict(method)

    def detach_payment_method(self, payment_method_id: str) -> Dict:
        method = self._call("payment method detach", stripe.PaymentMethod.detach, payment_method_id)
        return stripe_object_to_dict(method)

    def construct_webhook_event(self, payload: bytes, signature_header: Optional[str]) -> Dict:
        if not self.webhook_secret:
            raise WebhookSignatureError("Webhook Error: STRIPE_WEBHOOK_SECRET is not configured")
        try:
            event = stripe.Webhook.construct_event(payload, signature_header or "", self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookSignatureError(f"Webhook Error: {e}")
        return stripe_object_to_dict(event)
