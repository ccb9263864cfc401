"""Stripe Checkout for subscription plans."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

import stripe

from xo_finance.core.config import get_settings
from xo_finance.core.errors import ConfigurationError, NotFound, PaymentGatewayError
from xo_finance.schemas.catalog import SubscriptionPlan
from xo_finance.schemas.users import SubscriptionStatus, UserSubscription
from xo_finance.services.event_log import log_event
from xo_finance.services.users import USERS_COLLECTION
from xo_finance.storage.document_store import DocumentStore

logger = logging.getLogger(__name__)

PLANS_COLLECTION = "subscription_plans"


def get_plan(store: DocumentStore, plan_id: str) -> SubscriptionPlan:
    record = store.get(PLANS_COLLECTION, plan_id)
    if record is None:
        raise NotFound("Plano não encontrado.")
    return SubscriptionPlan.model_validate(record)


def _line_item(plan: SubscriptionPlan, currency: str) -> dict[str, Any]:
    if plan.payment_gateway_id:
        return {"price": plan.payment_gateway_id, "quantity": 1}
    amount = Decimal(str(plan.price)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return {
        "price_data": {
            "currency": currency,
            "unit_amount": int(amount * 100),
            "product_data": {"name": f"Assinatura Xô Planilhas - Plano {plan.name}"},
        },
        "quantity": 1,
    }


def create_checkout(
    store: DocumentStore,
    *,
    plan_id: str,
    user_id: str,
    user_email: Optional[str],
) -> str:
    """Create a Checkout session for *plan_id* and return its URL."""
    settings = get_settings()
    if not settings.stripe_secret_key:
        logger.error("STRIPE_SECRET_KEY is not configured")
        raise ConfigurationError(detail="stripe secret key missing")

    plan = get_plan(store, plan_id)
    base_url = settings.public_base_url.rstrip("/")
    metadata = {"user_id": user_id, "plan_id": plan.id}

    stripe.api_key = settings.stripe_secret_key
    try:
        session = stripe.checkout.Session.create(
            mode="payment",
            success_url=f"{base_url}/dashboard?payment_status=success",
            cancel_url=f"{base_url}/monetization/plans?payment_status=failure",
            customer_email=user_email,
            client_reference_id=user_id,
            line_items=[_line_item(plan, settings.payment_currency.lower())],
            metadata=metadata,
        )
    except stripe.StripeError as exc:
        logger.warning("Stripe checkout creation failed for plan %s: %s", plan.id, exc)
        raise PaymentGatewayError(detail=f"stripe: {type(exc).__name__}") from exc

    checkout_url = session.get("url") if isinstance(session, dict) else getattr(session, "url", None)
    if not checkout_url:
        raise PaymentGatewayError(detail="stripe session without url")
    logger.info("Checkout session created for user %s plan %s", user_id, plan.id)
    return checkout_url


def activate_subscription(store: DocumentStore, *, user_id: str, plan_id: str, gateway_reference: str) -> UserSubscription:
    """Mark the user's subscription active for *plan_id*."""
    get_plan(store, plan_id)
    if store.get(USERS_COLLECTION, user_id) is None:
        raise NotFound("Usuário não encontrado.")

    subscription = UserSubscription(
        plan_id=plan_id,
        status=SubscriptionStatus.ACTIVE,
        start_date=datetime.now(timezone.utc),
        payment_gateway_subscription_id=gateway_reference,
    )
    store.update(USERS_COLLECTION, user_id, {"subscription": subscription.model_dump(mode="json")})
    log_event(
        store,
        level="info",
        message=f"Assinatura do usuário {user_id} para o plano {plan_id} foi ativada.",
        created_by="stripe",
        created_by_name="Stripe",
    )
    return subscription


def handle_checkout_event(store: DocumentStore, event: dict[str, Any]) -> Optional[UserSubscription]:
    """Apply a verified Stripe event; returns the activated subscription, if any."""
    if event.get("type") != "checkout.session.completed":
        return None
    session = (event.get("data") or {}).get("object") or {}
    if session.get("payment_status") != "paid":
        logger.info("Checkout session %s not paid yet (%s)", session.get("id"), session.get("payment_status"))
        return None

    metadata = session.get("metadata") or {}
    user_id = metadata.get("user_id") or session.get("client_reference_id")
    plan_id = metadata.get("plan_id")
    if not user_id or not plan_id:
        raise ValueError("checkout session without user_id/plan_id metadata")

    reference = session.get("subscription") or session.get("payment_intent") or session.get("id") or ""
    return activate_subscription(store, user_id=user_id, plan_id=plan_id, gateway_reference=str(reference))
