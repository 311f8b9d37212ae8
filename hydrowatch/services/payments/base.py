"""
Payment gateway interface.

Every gateway returns plain dicts shaped like the hosted provider's JSON
objects (id, client_secret, customer, ...), so callers never depend on
SDK object types.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from fastapi import status

from hydrowatch.core.errors import AppError


class PaymentGatewayError(AppError):
    """The hosted gateway rejected or failed a call."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Payment gateway error"


class WebhookSignatureError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Webhook Error: signature verification failed"


class PaymentGateway(ABC):
    """
    Abstract base class for payment gateways.

    Implementations raise PaymentGatewayError for provider failures and
    WebhookSignatureError when an incoming event cannot be authenticated.
    """

    name: str = "base"

    @abstractmethod
    def create_customer(self, email: str, metadata: Optional[Dict] = None) -> Dict:
        pass

    @abstractmethod
    def create_payment_intent(
        self,
        amount_minor: int,
        currency: str,
        customer_id: str,
        metadata: Optional[Dict] = None,
    ) -> Dict:
        """
        Args:
            amount_minor: amount in the currency's minor unit (cents)
        """
        pass

    @abstractmethod
    def list_payment_intents(self, customer_id: str, limit: int = 10) -> List[Dict]:
        pass

    @abstractmethod
    def list_payment_methods(self, customer_id: str) -> List[Dict]:
        pass

    @abstractmethod
    def attach_payment_method(self, payment_method_id: str, customer_id: str) -> Dict:
        """Attach a card to the customer and make it their default."""
        pass

    @abstractmethod
    def detach_payment_method(self, payment_method_id: str) -> Dict:
        pass

    @abstractmethod
    def construct_webhook_event(self, payload: bytes, signature_header: Optional[str]) -> Dict:
        """
        Authenticate a webhook body and return the parsed event.

        Raises:
            WebhookSignatureError: missing or invalid signature
        """
        pass
