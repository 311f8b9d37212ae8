import json
import time

from hydrowatch.core.settings import settings
from hydrowatch.services.payments import get_payment_gateway, sign_payload
from hydrowatch.services.user_service import get_user_service


def _webhook(client, event, secret=None):
    payload = json.dumps(event).encode()
    signature = sign_payload(payload, secret or settings.STRIPE_WEBHOOK_SECRET)
    return client.post(
        "/api/payments/webhook",
        content=payload,
        headers={"Stripe-Signature": signature, "Content-Type": "application/json"},
    )


def test_history_empty_without_customer(client, citizen):
    resp = client.get("/api/payments/history", headers=citizen["headers"])
    assert resp.status_code == 200
    assert resp.json() == []
    assert client.get("/api/payments/payment-methods", headers=citizen["headers"]).json() == []


def test_create_payment_intent_provisions_customer(client, citizen):
    resp = client.post(
        "/api/payments/create-payment-intent",
        json={"amount": 12.345, "currency": "usd"},
        headers=citizen["headers"],
    )
    assert resp.status_code == 200
    assert "_secret_" in resp.json()["clientSecret"]

    user = get_user_service().get_user_by_id(citizen["id"])
    assert user["stripe_customer_id"]

    history = client.get("/api/payments/history", headers=citizen["headers"]).json()
    assert len(history) == 1
    assert history[0]["amount"] == 1234
    assert history[0]["customer"] == user["stripe_customer_id"]


def test_customer_reused_across_intents(client, citizen):
    for amount in (1, 2):
        client.post("/api/payments/create-payment-intent", json={"amount": amount, "currency": "eur"}, headers=citizen["headers"])
    assert len(get_payment_gateway().customers) == 1
    history = client.get("/api/payments/history", headers=citizen["headers"]).json()
    assert [p["amount"] for p in history] == [200, 100]


def test_payment_intent_validation(client, citizen):
    bad_currency = client.post(
        "/api/payments/create-payment-intent", json={"amount": 5, "currency": "jpy"}, headers=citizen["headers"]
    )
    negative = client.post(
        "/api/payments/create-payment-intent", json={"amount": -1, "currency": "usd"}, headers=citizen["headers"]
    )
    assert bad_currency.status_code == negative.status_code == 400


def test_payment_methods_attach_and_detach(client, citizen):
    resp = client.post("/api/payments/payment-methods", json={"paymentMethodId": "pm_card_visa"}, headers=citizen["headers"])
    assert resp.json() == {"message": "Payment method added successfully"}

    methods = client.get("/api/payments/payment-methods", headers=citizen["headers"]).json()
    assert [m["id"] for m in methods] == ["pm_card_visa"]
    customer_id = get_user_service().get_user_by_id(citizen["id"])["stripe_customer_id"]
    assert get_payment_gateway().customers[customer_id]["invoice_settings"]["default_payment_method"] == "pm_card_visa"

    resp = client.delete("/api/payments/payment-methods/pm_card_visa", headers=citizen["headers"])
    assert resp.json() == {"message": "Payment method removed successfully"}
    assert client.get("/api/payments/payment-methods", headers=citizen["headers"]).json() == []


def test_webhook_rejects_bad_signature(client):
    resp = _webhook(client, {"type": "payment_intent.succeeded", "data": {"object": {}}}, secret="whsec_wrong")
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Webhook Error:")

    unsigned = client.post("/api/payments/webhook", content=b"{}")
    assert unsigned.status_code == 400


def test_webhook_success_appends_payment_history(client, citizen):
    client.post("/api/payments/create-payment-intent", json={"amount": 10, "currency": "gbp"}, headers=citizen["headers"])
    customer_id = get_user_service().get_user_by_id(citizen["id"])["stripe_customer_id"]

    event = {
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": "pi_123", "customer": customer_id}},
    }
    resp = _webhook(client, event)
    assert resp.status_code == 200
    assert resp.json() == {"received": True}

    # Redelivery does not duplicate the entry
    _webhook(client, event)
    assert get_user_service().get_user_by_id(citizen["id"])["payment_history"] == ["pi_123"]


def test_webhook_other_events_acknowledged(client):
    failed = _webhook(client, {"type": "payment_intent.payment_failed", "data": {"object": {"id": "pi_9"}}})
    other = _webhook(client, {"type": "customer.created", "data": {"object": {}}})
    assert failed.json() == other.json() == {"received": True}


def test_webhook_rejects_stale_signature(client):
    payload = json.dumps({"type": "customer.created", "data": {"object": {}}}).encode()
    signature = sign_payload(payload, settings.STRIPE_WEBHOOK_SECRET, timestamp=int(time.time()) - 3600)
    resp = client.post("/api/payments/webhook", content=payload, headers={"Stripe-Signature": signature})
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Webhook Error:")


def test_webhook_without_customer_credits_nobody(client, citizen):
    event = {
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": "pi_guest", "customer": None}},
    }
    resp = _webhook(client, event)
    assert resp.status_code == 200
    assert get_user_service().get_user_by_id(citizen["id"])["payment_history"] == []


def test_webhook_falls_back_to_metadata_user(client, citizen, register_user):
    bob = register_user(name="Bob", email="bob@example.com")
    event = {
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": "pi_meta", "customer": None, "metadata": {"userId": bob["id"]}}},
    }
    assert _webhook(client, event).status_code == 200
    assert get_user_service().get_user_by_id(bob["id"])["payment_history"] == ["pi_meta"]
    assert get_user_service().get_user_by_id(citizen["id"])["payment_history"] == []
