"""Stripe Checkout for plan upgrades and the Stripe webhook."""

from __future__ import annotations

import json
import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from xo_finance.core.auth import CurrentUser
from xo_finance.core.config import get_settings
from xo_finance.core.dependencies import get_active_user, get_db, get_store
from xo_finance.services.event_log import log_event
from xo_finance.services.payments import create_checkout, handle_checkout_event
from xo_finance.storage.document_store import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter()


class CheckoutRequest(BaseModel):
    plan_id: str = Field(..., min_length=1)


class CheckoutResponse(BaseModel):
    checkout_url: str


@router.post("/payments/create-preference", response_model=CheckoutResponse)
def create_preference(
    payload: CheckoutRequest,
    current_user: CurrentUser = Depends(get_active_user),
    store: DocumentStore = Depends(get_store),
):
    url = create_checkout(
        store,
        plan_id=payload.plan_id,
        user_id=current_user.id,
        user_email=current_user.email,
    )
    return CheckoutResponse(checkout_url=url)


@router.post("/payments/webhook")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    settings = get_settings()
    sig_header = request.headers.get("stripe-signature")
    if settings.allow_insecure_webhooks and not sig_header:
        return {"received": True}
    if not settings.stripe_webhook_secret:
        raise HTTPException(500, "Erro de configuração do servidor.")

    payload = await request.body()
    try:
        stripe.Webhook.construct_event(payload, sig_header, settings.stripe_webhook_secret)
    except ValueError as exc:
        raise HTTPException(400, "Payload inválido") from exc
    except stripe.SignatureVerificationError as exc:
        raise HTTPException(400, "Assinatura inválida") from exc

    # Signature is verified; work on the plain JSON body.
    event = json.loads(payload)
    try:
        subscription = handle_checkout_event(store, event)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception("Stripe event %s could not be applied", event.get("id"))
        log_event(
            store,
            level="error",
            message=f"Erro no webhook de pagamento ({event.get('type')}): {exc}",
            created_by="stripe",
            created_by_name="Stripe",
        )
        db.commit()
        return {"received": True, "error": "processing_failed"}

    return {"received": True, "activated": subscription is not None}
