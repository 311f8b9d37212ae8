"""
Payment endpoints - bridge to the hosted payment provider.

The webhook endpoint is unauthenticated; it trusts a body only after the
Stripe-Signature header has been verified against STRIPE_WEBHOOK_SECRET.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from hydrowatch.core.errors import AppError
from hydrowatch.models.base import MessageResponse
from hydrowatch.models.payment import (
    AttachPaymentMethodRequest,
    PaymentIntentRequest,
    PaymentIntentResponse,
    WebhookAck,
)
from hydrowatch.services.payment_service import get_payment_service
from hydrowatch.utils.concurrency import run_sync
from hydrowatch.utils.security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])


def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Failed to {action}: {e}", exc_info=True)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")


@router.get("/history", response_model=List[Dict[str, Any]])
async def payment_history(user: Dict = Depends(get_current_user)):
    """Up to 10 most recent payment intents of the caller."""
    try:
        return await run_sync(get_payment_service().get_history, user)
    except AppError:
        raise
    except Exception as e:
        raise _server_error("fetch payment history", e)


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(request: PaymentIntentRequest, user: Dict = Depends(get_current_user)):
    try:
        client_secret = await run_sync(
            get_payment_service().create_payment_intent, user, request.amount, request.currency.value
        )
        return PaymentIntentResponse(client_secret=client_secret)
    except AppError:
        raise
    except Exception as e:
        raise _server_error("create payment intent", e)


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
):
    # Raw bytes: the signature covers the exact body
    payload = await request.body()
    try:
        await run_sync(get_payment_service().handle_webhook, payload, stripe_signature)
        return WebhookAck(received=True)
    except AppError as e:
        logger.warning(f"Webhook rejected: {e.message}")
        raise
    except Exception as e:
        raise _server_error("process payment webhook", e)


@router.get("/payment-methods", response_model=List[Dict[str, Any]])
async def list_payment_methods(user: Dict = Depends(get_current_user)):
    try:
        return await run_sync(get_payment_service().list_payment_methods, user)
    except AppError:
        raise
    except Exception as e:
        raise _server_error("list payment methods", e)


@router.post("/payment-methods", response_model=MessageResponse)
async def add_payment_method(request: AttachPaymentMethodRequest, user: Dict = Depends(get_current_user)):
    """Attach a card to the caller and make it their default."""
    try:
        await run_sync(get_payment_service().add_payment_method, user, request.payment_method_id)
        return MessageResponse(message="Payment method added successfully")
    except AppError:
        raise
    except Exception as e:
        raise _server_error("add payment method", e)


@router.delete("/payment-methods/{payment_method_id}", response_model=MessageResponse)
async def remove_payment_method(payment_method_id: str, user: Dict = Depends(get_current_user)):
    try:
        await run_sync(get_payment_service().remove_payment_method, payment_method_id)
        return MessageResponse(message="Payment method removed successfully")
    except AppError:
        raise
    except Exception as e:
        raise _server_error(f"remove payment method {payment_method_id}", e)
