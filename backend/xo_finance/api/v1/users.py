"""Profile and user administration endpoints."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from xo_finance.core.abilities import AbilitySet, define_abilities_for, subject
from xo_finance.core.auth import CurrentUser, get_abilities, get_current_user, get_optional_user, require_roles
from xo_finance.core.dependencies import get_db, get_store
from xo_finance.core.errors import InvalidInput
from xo_finance.schemas.users import AbilitiesOut, AppUser, UserListResponse, UserStatus, UserUpdate
from xo_finance.services.event_log import log_event
from xo_finance.services.users import (
    delete_profile,
    ensure_profile,
    get_profile,
    list_profiles,
    update_profile,
)
from xo_finance.storage.document_store import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _apply_update(
    store: DocumentStore,
    abilities: AbilitySet,
    target: AppUser,
    payload: UserUpdate,
) -> AppUser:
    changes = payload.model_dump(mode="json", exclude_unset=True)
    record = subject("User", target.model_dump(mode="json"))
    for field in changes:
        abilities.ensure("update", record, field)
    if "role" in changes:
        # Roles live in the auth token claims and are mirrored on every request.
        raise InvalidInput(
            "O papel do usuário é definido pelo provedor de autenticação.",
            detail=f"role change for {target.id} rejected",
        )
    return update_profile(store, target.id, changes)


@router.get("/me", response_model=AppUser)
def read_me(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    profile = ensure_profile(store, current_user)
    db.commit()
    return profile


@router.patch("/me", response_model=AppUser)
def update_me(
    payload: UserUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    abilities: AbilitySet = Depends(get_abilities),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    profile = ensure_profile(store, current_user)
    updated = _apply_update(store, abilities, profile, payload)
    db.commit()
    return updated


@router.get("/me/abilities", response_model=AbilitiesOut)
def read_my_abilities(current_user: Optional[CurrentUser] = Depends(get_optional_user)):
    abilities = define_abilities_for(current_user)
    return AbilitiesOut(role=current_user.role if current_user else None, rules=abilities.to_payload())


@router.get("/admin/users", response_model=UserListResponse)
def admin_list_users(
    status: Optional[UserStatus] = Query(None),
    limit: int = Query(200, ge=1, le=1000),
    current_user: CurrentUser = Depends(require_roles("superadmin")),
    abilities: AbilitySet = Depends(get_abilities),
    store: DocumentStore = Depends(get_store),
):
    abilities.ensure("read", "User")
    items = list_profiles(store, status=status.value if status else None, limit=limit)
    return UserListResponse(items=items, total=len(items))


@router.patch("/admin/users/{uid}", response_model=AppUser)
def admin_update_user(
    uid: str,
    payload: UserUpdate,
    current_user: CurrentUser = Depends(require_roles("superadmin")),
    abilities: AbilitySet = Depends(get_abilities),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    target = get_profile(store, uid)
    updated = _apply_update(store, abilities, target, payload)
    log_event(
        store,
        level="info",
        message=f"Usuário {target.email or uid} atualizado: {', '.join(sorted(payload.model_fields_set))}",
        created_by=current_user.id,
        created_by_name=current_user.name or current_user.email,
    )
    db.commit()
    return updated


@router.delete("/admin/users/{uid}", status_code=204)
def admin_delete_user(
    uid: str,
    current_user: CurrentUser = Depends(require_roles("superadmin")),
    abilities: AbilitySet = Depends(get_abilities),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    target = get_profile(store, uid)
    abilities.ensure("delete", subject("User", target.model_dump(mode="json")))
    delete_profile(store, uid)
    log_event(
        store,
        level="warn",
        message=f"Usuário {target.email or uid} excluído",
        created_by=current_user.id,
        created_by_name=current_user.name or current_user.email,
    )
    db.commit()
    logger.info("User %s deleted by %s", uid, current_user.id)
    return Response(status_code=204)
