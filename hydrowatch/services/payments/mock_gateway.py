"""
Mock gateway - in-memory stand-in for the hosted payment provider.

Used in tests and local development (PAYMENT_PROVIDER=mock). Customers,
intents and cards live in memory; webhook signatures are checked by the
stripe SDK against STRIPE_WEBHOOK_SECRET. sign_payload produces headers in
the provider's format:
    header  = "t=<unix seconds>,v1=<hex HMAC-SHA256(secret, "<t>.<payload>")>"
"""

import hashlib
import hmac
import logging
import secrets
import threading
import time
from typing import Dict, List, Optional

import stripe

from hydrowatch.core.settings import settings
from hydrowatch.services.payments.base import PaymentGateway, PaymentGatewayError, WebhookSignatureError
from hydrowatch.services.payments.stripe_gateway import stripe_object_to_dict

logger = logging.getLogger(__name__)


def sign_payload(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """Build a signature header for payload, as the hosted provider would."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def _new_id(prefix: str) -> str:
    return f"{prefix}_mock_{secrets.token_hex(8)}"


class MockGateway(PaymentGateway):
    name = "mock"

    def __init__(self, webhook_secret: Optional[str] = None):
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET or "whsec_mock"
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        self.customers: Dict[str, Dict] = {}
        self.payment_intents: List[Dict] = []
        self.payment_methods: Dict[str, Dict] = {}

    def create_customer(self, email: str, metadata: Optional[Dict] = None) -> Dict:
        customer = {
            "id": _new_id("cus"),
            "object": "customer",
            "email": email,
            "metadata": dict(metadata or {}),
            "invoice_settings": {"default_payment_method": None},
        }
        with self._lock:
            self.customers[customer["id"]] = customer
        logger.info(f"[mock] customer created: {customer['id']}")
        return dict(customer)

    def _require_customer(self, customer_id: str) -> Dict:
        customer = self.customers.get(customer_id)
        if customer is None:
            raise PaymentGatewayError(f"Payment gateway error: No such customer: {customer_id}")
        return customer

    def create_payment_intent(
        self,
        amount_minor: int,
        currency: str,
        customer_id: str,
        metadata: Optional[Dict] = None,
    ) -> Dict:
        self._require_customer(customer_id)
        intent_id = _new_id("pi")
        intent = {
            "id": intent_id,
            "object": "payment_intent",
            "amount": amount_minor,
            "currency": currency,
            "customer": customer_id,
            "status": "requires_payment_method",
            "client_secret": f"{intent_id}_secret_{secrets.token_hex(8)}",
            "created": int(time.time()),
            "metadata": dict(metadata or {}),
        }
        with self._lock:
            self.payment_intents.append(intent)
        return dict(intent)

    def list_payment_intents(self, customer_id: str, limit: int = 10) -> List[Dict]:
        # Newest first, as the hosted provider lists them
        intents = [dict(i) for i in reversed(self.payment_intents) if i["customer"] == customer_id]
        return intents[:limit]

    def list_payment_methods(self, customer_id: str) -> List[Dict]:
        return [dict(m) for m in self.payment_methods.values() if m["customer"] == customer_id]

    def attach_payment_method(self, payment_method_id: str, customer_id: str) -> Dict:
        customer = self._require_customer(customer_id)
        method = {
            "id": payment_method_id,
            "object": "payment_method",
            "type": "card",
            "customer": customer_id,
            "card": {"brand": "visa", "last4": "4242"},
        }
        with self._lock:
            self.payment_methods[payment_method_id] = method
            customer["invoice_settings"]["default_payment_method"] = payment_method_id
        return dict(method)

    def detach_payment_method(self, payment_method_id: str) -> Dict:
        with self._lock:
            method = self.payment_methods.pop(payment_method_id, None)
        if method is None:
            raise PaymentGatewayError(f"Payment gateway error: No such PaymentMethod: '{payment_method_id}'")
        method["customer"] = None
        return method

    def construct_webhook_event(self, payload: bytes, signature_header: Optional[str]) -> Dict:
        # Same offline SDK check as StripeGateway
        try:
            event = stripe.Webhook.construct_event(payload, signature_header or "", self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookSignatureError(f"Webhook Error: {e}")
        return stripe_object_to_dict(event)
