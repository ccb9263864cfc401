"""CRUD over the signed-in user's financial records."""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Response
from pydantic import ValidationError
from sqlalchemy.orm import Session

from xo_finance.core.abilities import AbilitySet, subject
from xo_finance.core.auth import CurrentUser, get_abilities
from xo_finance.core.dependencies import get_active_user, get_db, get_store
from xo_finance.core.errors import InvalidInput, NotFound
from xo_finance.schemas.records import RECORD_COLLECTIONS, RecordCollection, RecordListResponse, TransactionType
from xo_finance.storage.document_store import DocumentStore, user_collection

router = APIRouter()

# Stored alongside the payload but never accepted from the client.
_SERVER_FIELDS = ("id", "user_id")


def _collection(name: str) -> RecordCollection:
    definition = RECORD_COLLECTIONS.get(name)
    if definition is None:
        raise NotFound("Coleção desconhecida.")
    return definition


def _validate(definition: RecordCollection, data: dict[str, Any]) -> dict[str, Any]:
    try:
        model = definition.schema.model_validate(data)
    except ValidationError as exc:
        raise InvalidInput(detail=f"{definition.name}: {exc.error_count()} invalid field(s)") from exc
    return model.model_dump(mode="json", exclude_none=True)


def _owner(user: CurrentUser):
    return subject("User", {"id": user.id})


def _in_range(record: dict, date_from: Optional[dt.date], date_to: Optional[dt.date]) -> bool:
    value = str(record.get("date") or "")
    if date_from and value < date_from.isoformat():
        return False
    if date_to and value > date_to.isoformat():
        return False
    return True


@router.get("/me/{collection}", response_model=RecordListResponse)
def list_records(
    collection: str,
    type: Optional[TransactionType] = Query(None),
    date_from: Optional[dt.date] = Query(None),
    date_to: Optional[dt.date] = Query(None),
    limit: int = Query(500, ge=1, le=5000),
    current_user: CurrentUser = Depends(get_active_user),
    abilities: AbilitySet = Depends(get_abilities),
    store: DocumentStore = Depends(get_store),
):
    definition = _collection(collection)
    abilities.ensure("read", definition.subject_type)

    where = {"type": type.value} if type and definition.name == "transactions" else None
    items = store.read(
        user_collection(current_user.id, definition.name),
        where=where,
        order_by=definition.order_by,
        descending=definition.descending,
    )
    if definition.name == "transactions" and (date_from or date_to):
        items = [item for item in items if _in_range(item, date_from, date_to)]
    items = items[:limit]
    return RecordListResponse(items=items, total=len(items))


@router.get("/me/{collection}/{record_id}")
def read_record(
    collection: str,
    record_id: str,
    current_user: CurrentUser = Depends(get_active_user),
    abilities: AbilitySet = Depends(get_abilities),
    store: DocumentStore = Depends(get_store),
):
    definition = _collection(collection)
    record = store.get(user_collection(current_user.id, definition.name), record_id)
    if record is None:
        raise NotFound()
    abilities.ensure("read", subject(definition.subject_type, record))
    return record


@router.post("/me/{collection}", status_code=201)
def create_record(
    collection: str,
    payload: dict[str, Any] = Body(...),
    current_user: CurrentUser = Depends(get_active_user),
    abilities: AbilitySet = Depends(get_abilities),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    definition = _collection(collection)
    abilities.ensure("update", _owner(current_user))

    data = _validate(definition, payload)
    data["user_id"] = current_user.id
    record_id = store.write(user_collection(current_user.id, definition.name), data)
    db.commit()
    return {**data, "id": record_id}


@router.patch("/me/{collection}/{record_id}")
def update_record(
    collection: str,
    record_id: str,
    payload: dict[str, Any] = Body(...),
    current_user: CurrentUser = Depends(get_active_user),
    abilities: AbilitySet = Depends(get_abilities),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    definition = _collection(collection)
    abilities.ensure("update", _owner(current_user))

    path = user_collection(current_user.id, definition.name)
    existing = store.get(path, record_id)
    if existing is None:
        raise NotFound()

    merged = {k: v for k, v in existing.items() if k not in _SERVER_FIELDS}
    merged.update({k: v for k, v in payload.items() if k not in _SERVER_FIELDS})
    data = _validate(definition, merged)
    data["user_id"] = current_user.id
    store.write(path, data, doc_id=record_id)
    db.commit()
    return {**data, "id": record_id}


@router.delete("/me/{collection}/{record_id}", status_code=204)
def delete_record(
    collection: str,
    record_id: str,
    current_user: CurrentUser = Depends(get_active_user),
    abilities: AbilitySet = Depends(get_abilities),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
):
    definition = _collection(collection)
    abilities.ensure("update", _owner(current_user))
    if not store.delete(user_collection(current_user.id, definition.name), record_id):
        raise NotFound()
    db.commit()
    return Response(status_code=204)
