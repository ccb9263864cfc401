"""Subscription plans, education tracks and the admin event log."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from xo_finance.core.abilities import AbilitySet
from xo_finance.core.auth import CurrentUser, get_abilities, require_roles
from xo_finance.core.dependencies import get_db, get_store
from xo_finance.core.errors import InvalidInput, NotFound
from xo_finance.schemas.catalog import (
    EducationTrack,
    EducationTrackIn,
    LogEntry,
    SubscriptionPlan,
    SubscriptionPlanIn,
    SubscriptionPlanUpdate,
)
from xo_finance.services.event_log import list_events, log_event
from xo_finance.services.payments import PLANS_COLLECTION, get_plan
from xo_finance.storage.document_store import DocumentStore

router = APIRouter()

EDUCATION_COLLECTION = "education_tracks"


def _actor_name(user: CurrentUser) -> Optional[str]:
    return user.name or user.email


# --- Plans ---


@router.get("/plans", response_model=list[SubscriptionPlan])
def list_plans(store: DocumentStore = Depends(get_store)):
    records = store.read(PLANS_COLLECTION, where={"active": True}, order_by="price")
    return [SubscriptionPlan.model_validate(record) for record in records]


@router.post("/admin/plans", response_model=SubscriptionPlan, status_code=201)
def create_plan(
    payload: SubscriptionPlanIn,
    current_user: CurrentUser = Depends(require_roles("superadmin")),
    abilities: AbilitySet = Depends(get_abilities),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    abilities.ensure("create", "SubscriptionPlan")
    plan_id = store.write(PLANS_COLLECTION, payload.model_dump(mode="json"))
    log_event(
        store,
        level="info",
        message=f"Plano criado: {payload.name}",
        created_by=current_user.id,
        created_by_name=_actor_name(current_user),
    )
    db.commit()
    return SubscriptionPlan(id=plan_id, **payload.model_dump())


@router.patch("/admin/plans/{plan_id}", response_model=SubscriptionPlan)
def update_plan(
    plan_id: str,
    payload: SubscriptionPlanUpdate,
    current_user: CurrentUser = Depends(require_roles("superadmin")),
    abilities: AbilitySet = Depends(get_abilities),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    plan = get_plan(store, plan_id)
    abilities.ensure("update", plan)
    record = store.update(PLANS_COLLECTION, plan_id, payload.model_dump(mode="json", exclude_unset=True))
    db.commit()
    return SubscriptionPlan.model_validate(record)


@router.delete("/admin/plans/{plan_id}", status_code=204)
def delete_plan(
    plan_id: str,
    current_user: CurrentUser = Depends(require_roles("superadmin")),
    abilities: AbilitySet = Depends(get_abilities),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    plan = get_plan(store, plan_id)
    abilities.ensure("delete", plan)
    store.delete(PLANS_COLLECTION, plan_id)
    log_event(
        store,
        level="warn",
        message=f"Plano excluído: {plan.name}",
        created_by=current_user.id,
        created_by_name=_actor_name(current_user),
    )
    db.commit()
    return Response(status_code=204)


# --- Education ---


@router.get("/education", response_model=list[EducationTrack])
def list_education_tracks(store: DocumentStore = Depends(get_store)):
    records = store.read(EDUCATION_COLLECTION, order_by="order")
    return [EducationTrack.model_validate(record) for record in records]


@router.get("/education/{slug}", response_model=EducationTrack)
def read_education_track(slug: str, store: DocumentStore = Depends(get_store)):
    record = store.get(EDUCATION_COLLECTION, slug)
    if record is None:
        raise NotFound("Trilha não encontrada.")
    return EducationTrack.model_validate(record)


@router.post("/admin/education", response_model=EducationTrack, status_code=201)
def save_education_track(
    payload: EducationTrackIn,
    current_user: CurrentUser = Depends(require_roles("superadmin")),
    abilities: AbilitySet = Depends(get_abilities),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    abilities.ensure("create", "EducationTrack")
    slug = payload.normalized_slug()
    if not slug:
        raise InvalidInput("Slug inválido.")
    data = payload.model_dump(mode="json")
    data["slug"] = slug
    store.write(EDUCATION_COLLECTION, data, doc_id=slug)
    log_event(
        store,
        level="info",
        message=f"Trilha educacional salva: {payload.title}",
        created_by=current_user.id,
        created_by_name=_actor_name(current_user),
    )
    db.commit()
    return EducationTrack(id=slug, **data)


@router.delete("/admin/education/{slug}", status_code=204)
def delete_education_track(
    slug: str,
    current_user: CurrentUser = Depends(require_roles("superadmin")),
    abilities: AbilitySet = Depends(get_abilities),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    abilities.ensure("delete", "EducationTrack")
    if not store.delete(EDUCATION_COLLECTION, slug):
        raise NotFound("Trilha não encontrada.")
    db.commit()
    return Response(status_code=204)


# --- Logs ---


@router.get("/admin/logs", response_model=list[LogEntry])
def admin_list_logs(
    level: Optional[str] = Query(None, pattern="^(info|warn|error)$"),
    limit: int = Query(100, ge=1, le=1000),
    current_user: CurrentUser = Depends(require_roles("superadmin")),
    abilities: AbilitySet = Depends(get_abilities),
    store: DocumentStore = Depends(get_store),
):
    abilities.ensure("read", "Log")
    return [LogEntry.model_validate(record) for record in list_events(store, level=level, limit=limit)]
