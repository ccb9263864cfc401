"""Stripe Checkout creation and webhook handling."""

import json
from unittest.mock import patch

import pytest
import stripe

from xo_finance.core.config import get_settings

PAID_EVENT = {
    "id": "evt_1",
    "type": "checkout.session.completed",
    "data": {
        "object": {
            "id": "cs_test_1",
            "payment_status": "paid",
            "payment_intent": "pi_1",
            "client_reference_id": "u1",
            "metadata": {"user_id": "u1", "plan_id": "pro"},
        }
    },
}


@pytest.fixture
def stripe_env(monkeypatch):
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "whsec_123")
    get_settings.cache_clear()


def _seed_plan(api):
    api.seed("subscription_plans", {"name": "Pro", "price": 19.9, "active": True}, doc_id="pro")


def _post_event(api, event, signature="t=1,v1=abc"):
    headers = {"stripe-signature": signature} if signature else {}
    return api.client.post("/api/v1/payments/webhook", content=json.dumps(event), headers=headers)


def test_checkout_without_stripe_key_hides_details(api, monkeypatch):
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    get_settings.cache_clear()
    _seed_plan(api)
    api.login("u1")

    resp = api.client.post("/api/v1/payments/create-preference", json={"plan_id": "pro"})

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Ocorreu um erro inesperado."


def test_checkout_unknown_plan(api, stripe_env):
    api.login("u1")
    resp = api.client.post("/api/v1/payments/create-preference", json={"plan_id": "missing"})
    assert resp.status_code == 404


def test_checkout_returns_session_url(api, stripe_env):
    _seed_plan(api)
    api.login("u1", email="ana@example.com")

    with patch("stripe.checkout.Session.create", return_value={"url": "https://checkout.stripe.test/cs_1"}) as create:
        resp = api.client.post("/api/v1/payments/create-preference", json={"plan_id": "pro"})

    assert resp.status_code == 200
    assert resp.json() == {"checkout_url": "https://checkout.stripe.test/cs_1"}
    kwargs = create.call_args.kwargs
    assert kwargs["metadata"] == {"user_id": "u1", "plan_id": "pro"}
    assert kwargs["customer_email"] == "ana@example.com"
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 1990
    assert kwargs["line_items"][0]["price_data"]["currency"] == "brl"


def test_checkout_uses_stripe_price_when_configured(api, stripe_env):
    api.seed("subscription_plans", {"name": "Pro", "price": 19.9, "payment_gateway_id": "price_123"}, doc_id="pro")
    api.login("u1")

    with patch("stripe.checkout.Session.create", return_value={"url": "https://checkout.stripe.test/cs_2"}) as create:
        api.client.post("/api/v1/payments/create-preference", json={"plan_id": "pro"})

    assert create.call_args.kwargs["line_items"] == [{"price": "price_123", "quantity": 1}]


def test_checkout_gateway_failure(api, stripe_env):
    _seed_plan(api)
    api.login("u1")

    with patch("stripe.checkout.Session.create", side_effect=stripe.APIConnectionError("network down")):
        resp = api.client.post("/api/v1/payments/create-preference", json={"plan_id": "pro"})

    assert resp.status_code == 502
    assert resp.json()["code"] == "payment_gateway_error"
    assert "network down" not in resp.text


def test_webhook_activates_subscription(api, stripe_env):
    _seed_plan(api)
    api.seed("users", {"email": "u1@example.com", "role": "user", "status": "active"}, doc_id="u1")

    with patch("stripe.Webhook.construct_event") as construct:
        resp = _post_event(api, PAID_EVENT)

    assert resp.status_code == 200
    assert resp.json() == {"received": True, "activated": True}
    assert construct.call_args.args[1:] == ("t=1,v1=abc", "whsec_123")
    subscription = api.fetch("users", "u1")["subscription"]
    assert subscription["plan_id"] == "pro"
    assert subscription["status"] == "active"
    assert subscription["payment_gateway_subscription_id"] == "pi_1"


def test_webhook_ignores_unpaid_and_other_events(api, stripe_env):
    unpaid = json.loads(json.dumps(PAID_EVENT))
    unpaid["data"]["object"]["payment_status"] = "unpaid"

    with patch("stripe.Webhook.construct_event"):
        assert _post_event(api, unpaid).json() == {"received": True, "activated": False}
        assert _post_event(api, {"id": "evt_2", "type": "invoice.paid", "data": {}}).json() == {
            "received": True,
            "activated": False,
        }


def test_webhook_rejects_bad_signature(api, stripe_env):
    error = stripe.SignatureVerificationError("No signatures found", "t=1,v1=abc")
    with patch("stripe.Webhook.construct_event", side_effect=error):
        resp = _post_event(api, PAID_EVENT)

    assert resp.status_code == 400
    assert api.fetch_all("users") == []


def test_webhook_acknowledges_processing_errors(api, stripe_env):
    _seed_plan(api)
    # No profile for u1: activation fails after the signature checked out.
    with patch("stripe.Webhook.construct_event"):
        resp = _post_event(api, PAID_EVENT)

    assert resp.status_code == 200
    assert resp.json() == {"received": True, "error": "processing_failed"}
    [entry] = api.fetch_all("logs")
    assert entry["level"] == "error"
    assert entry["created_by"] == "stripe"


def test_webhook_without_secret_is_a_server_error(api, monkeypatch):
    monkeypatch.delenv("STRIPE_WEBHOOK_SECRET", raising=False)
    get_settings.cache_clear()

    resp = _post_event(api, PAID_EVENT)

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Ocorreu um erro inesperado."


def test_webhook_without_signature_in_insecure_mode(api, monkeypatch):
    monkeypatch.setenv("ALLOW_INSECURE_WEBHOOKS", "true")
    get_settings.cache_clear()

    resp = _post_event(api, PAID_EVENT, signature=None)

    assert resp.status_code == 200
    assert resp.json() == {"received": True}
    assert api.fetch_all("logs") == []
