"""User profile documents (``users/{uid}``)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from xo_finance.core.auth import CurrentUser
from xo_finance.core.errors import NotFound, PermissionDenied
from xo_finance.schemas.records import RECORD_COLLECTIONS
from xo_finance.schemas.users import AppUser, UserStatus
from xo_finance.services.event_log import log_event
from xo_finance.storage.document_store import DocumentStore, user_collection

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


def _split_name(full_name: str) -> tuple[Optional[str], Optional[str]]:
    parts = full_name.split()
    if not parts:
        return None, None
    return parts[0], " ".join(parts[1:]) or None


def ensure_profile(store: DocumentStore, user: CurrentUser) -> AppUser:
    """Return the profile of *user*, creating it on first sign-in.

    The token is the source of truth for the role; a stored role that
    disagrees is brought back in line.
    """
    record = store.get(USERS_COLLECTION, user.id)
    if record is None:
        display_name = user.name or (user.email.split("@", 1)[0] if user.email else None)
        first_name, last_name = _split_name(user.name or "")
        profile = AppUser(
            id=user.id,
            email=user.email,
            role=user.role,
            display_name=display_name,
            first_name=first_name,
            last_name=last_name,
            registration_date=datetime.now(timezone.utc),
        )
        store.write(USERS_COLLECTION, profile.model_dump(mode="json"), doc_id=user.id)
        log_event(
            store,
            level="info",
            message=f"Novo usuário registrado: {user.email or user.id}",
            created_by=user.id,
            created_by_name=display_name,
        )
        logger.info("Created profile for user %s", user.id)
        return profile

    if record.get("role") != user.role:
        record = store.update(USERS_COLLECTION, user.id, {"role": user.role})
    return AppUser.model_validate(record)


def ensure_active(profile: AppUser) -> AppUser:
    if profile.status == UserStatus.BLOCKED:
        raise PermissionDenied("Sua conta está bloqueada. Fale com o suporte.")
    return profile


def get_profile(store: DocumentStore, uid: str) -> AppUser:
    record = store.get(USERS_COLLECTION, uid)
    if record is None:
        raise NotFound("Usuário não encontrado.")
    return AppUser.model_validate(record)


def list_profiles(store: DocumentStore, *, status: Optional[str] = None, limit: int = 200) -> list[AppUser]:
    where = {"status": status} if status else None
    records = store.read(USERS_COLLECTION, where=where, order_by="registration_date", descending=True, limit=limit)
    return [AppUser.model_validate(record) for record in records]


def update_profile(store: DocumentStore, uid: str, changes: dict[str, Any]) -> AppUser:
    if not changes:
        return get_profile(store, uid)
    record = store.update(USERS_COLLECTION, uid, changes)
    return AppUser.model_validate(record)


def delete_profile(store: DocumentStore, uid: str) -> None:
    """Delete a profile together with its record sub-collections."""
    if not store.delete(USERS_COLLECTION, uid):
        raise NotFound("Usuário não encontrado.")
    for name in RECORD_COLLECTIONS:
        collection = user_collection(uid, name)
        for record in store.read(collection):
            store.delete(collection, record["id"])
