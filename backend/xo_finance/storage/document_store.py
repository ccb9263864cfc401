"""Document store boundary.

The application only sees collections of JSON-like records addressed by a
slash-separated path (``users``, ``users/{uid}/transactions``...). Filtering
and ordering are the store's job; callers pass simple equality filters and a
sort key.
"""

from __future__ import annotations

import abc
import copy
import logging
import uuid
from collections.abc import Mapping
from typing import Any, Optional

from sqlalchemy.orm import Session

from xo_finance.core.errors import NotFound
from xo_finance.models.documents import Document

logger = logging.getLogger(__name__)

Record = dict[str, Any]


def collection_path(*segments: str) -> str:
    parts = [str(seg).strip("/") for seg in segments if str(seg).strip("/")]
    if not parts:
        raise ValueError("collection path must not be empty")
    return "/".join(parts)


def user_collection(uid: str, name: str) -> str:
    return collection_path("users", uid, name)


class DocumentStore(abc.ABC):
    """Generic read/write interface over collections of records."""

    @abc.abstractmethod
    def read(
        self,
        collection: str,
        *,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Record]:
        """Return records of *collection*, each including its ``id``."""

    @abc.abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Record]:
        """Return one record or ``None``."""

    @abc.abstractmethod
    def write(self, collection: str, record: Mapping[str, Any], *, doc_id: Optional[str] = None) -> str:
        """Create (or replace, when *doc_id* exists) a record and return its id."""

    @abc.abstractmethod
    def update(self, collection: str, doc_id: str, changes: Mapping[str, Any]) -> Record:
        """Merge *changes* into an existing record; raise ``NotFound`` if absent."""

    @abc.abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a record; return whether it existed."""


def _sort_key(value: Any) -> tuple:
    # None sorts first; mixed types sort by type name to stay total.
    if value is None:
        return (0, "", "")
    if isinstance(value, bool):
        return (1, "bool", int(value))
    if isinstance(value, (int, float)):
        return (1, "number", value)
    return (1, type(value).__name__, str(value))


class SqlDocumentStore(DocumentStore):
    """Document store backed by the ``documents`` table.

    Writes are flushed, not committed; the request handler owns the
    transaction.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def read(self, collection, *, where=None, order_by=None, descending=False, limit=None):
        rows = (
            self._db.query(Document)
            .filter(Document.collection == collection)
            .order_by(Document.created_at, Document.id)
            .all()
        )
        records = [self._to_record(row) for row in rows]
        if where:
            records = [rec for rec in records if all(rec.get(key) == val for key, val in where.items())]
        if order_by:
            records.sort(key=lambda rec: _sort_key(rec.get(order_by)), reverse=descending)
        if limit is not None:
            records = records[: max(0, int(limit))]
        return records

    def get(self, collection, doc_id):
        row = self._db.get(Document, (collection, str(doc_id)))
        if row is None:
            return None
        return self._to_record(row)

    def write(self, collection, record, *, doc_id=None):
        data = copy.deepcopy(dict(record))
        data.pop("id", None)
        resolved_id = str(doc_id or record.get("id") or uuid.uuid4().hex)
        row = self._db.get(Document, (collection, resolved_id))
        if row is None:
            row = Document(collection=collection, id=resolved_id, data=data)
            self._db.add(row)
        else:
            row.data = data
        self._db.flush()
        logger.debug("Stored document %s/%s", collection, resolved_id)
        return resolved_id

    def update(self, collection, doc_id, changes):
        row = self._db.get(Document, (collection, str(doc_id)))
        if row is None:
            raise NotFound(detail=f"{collection}/{doc_id} does not exist")
        merged = copy.deepcopy(dict(row.data or {}))
        for key, value in changes.items():
            if key == "id":
                continue
            merged[key] = copy.deepcopy(value)
        # Reassign so SQLAlchemy notices the JSON change.
        row.data = merged
        self._db.flush()
        return self._to_record(row)

    def delete(self, collection, doc_id):
        row = self._db.get(Document, (collection, str(doc_id)))
        if row is None:
            return False
        self._db.delete(row)
        self._db.flush()
        return True

    @staticmethod
    def _to_record(row: Document) -> Record:
        record = copy.deepcopy(dict(row.data or {}))
        record["id"] = row.id
        return record
