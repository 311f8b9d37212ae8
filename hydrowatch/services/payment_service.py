"""
Payment Service - links users to gateway customers and handles gateway events.

A gateway customer is created the first time a user needs one and its id is
kept on the user document as stripe_customer_id.
"""

import logging
from typing import Dict, List, Optional

from hydrowatch.services.payments import PaymentGateway, get_payment_gateway
from hydrowatch.services.user_service import get_user_service

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10


class PaymentService:

    def __init__(self, gateway: Optional[PaymentGateway] = None):
        self.gateway = gateway or get_payment_gateway()
        self.users = get_user_service()

    def ensure_customer(self, user: Dict) -> str:
        """Return the user's gateway customer id, creating the customer if needed."""
        if user.get("stripe_customer_id"):
            return user["stripe_customer_id"]

        customer = self.gateway.create_customer(email=user["email"], metadata={"userId": user["id"]})
        self.users.update_user(user["id"], {"stripe_customer_id": customer["id"]})
        user["stripe_customer_id"] = customer["id"]
        logger.info(f"Payment customer {customer['id']} linked to user {user['id']}")
        return customer["id"]

    def create_payment_intent(self, user: Dict, amount: float, currency: str) -> str:
        """
        Create an intent for amount (major units) and return its client secret.
        """
        customer_id = self.ensure_customer(user)
        intent = self.gateway.create_payment_intent(
            amount_minor=int(round(amount * 100)),
            currency=currency,
            customer_id=customer_id,
            metadata={"userId": user["id"]},
        )
        logger.info(f"Payment intent {intent['id']} created for user {user['id']}")
        return intent["client_secret"]

    def get_history(self, user: Dict) -> List[Dict]:
        if not user.get("stripe_customer_id"):
            return []
        return self.gateway.list_payment_intents(user["stripe_customer_id"], limit=HISTORY_LIMIT)

    def list_payment_methods(self, user: Dict) -> List[Dict]:
        if not user.get("stripe_customer_id"):
            return []
        return self.gateway.list_payment_methods(user["stripe_customer_id"])

    def add_payment_method(self, user: Dict, payment_method_id: str) -> None:
        customer_id = self.ensure_customer(user)
        self.gateway.attach_payment_method(payment_method_id, customer_id)

    def remove_payment_method(self, payment_method_id: str) -> None:
        self.gateway.detach_payment_method(payment_method_id)

    def handle_webhook(self, payload: bytes, signature_header: Optional[str]) -> str:
        """
        Verify and process a gateway event.

        Returns:
            The event type

        Raises:
            WebhookSignatureError: signature missing or invalid
        """
        event = self.gateway.construct_webhook_event(payload, signature_header)
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}

        if event_type == "payment_intent.succeeded":
            owner = self._find_payer(obj)
            if owner is None:
                logger.warning(
                    f"Payment {obj.get('id')} succeeded but no user owns it (customer={obj.get('customer')})"
                )
            else:
                self.users.append_payment(owner["id"], obj.get("id"))
                logger.info(f"Payment {obj.get('id')} succeeded (user={owner['id']})")
        elif event_type == "payment_intent.payment_failed":
            error = (obj.get("last_payment_error") or {}).get("message")
            logger.warning(f"Payment {obj.get('id')} failed: {error}")
        else:
            logger.info(f"Unhandled event type {event_type}")
        return event_type

    def _find_payer(self, intent: Dict) -> Optional[Dict]:
        """Owner of an intent: by gateway customer, else by the userId we put in its metadata."""
        user = self.users.get_user_by_customer_id(intent.get("customer"))
        if user:
            return user
        user_id = (intent.get("metadata") or {}).get("userId")
        return self.users.get_user_by_id(user_id) if user_id else None


_payment_service: Optional[PaymentService] = None


def get_payment_service() -> PaymentService:
    global _payment_service
    if _payment_service is None:
        _payment_service = PaymentService()
    return _payment_service
