"""Application event log kept in the ``logs`` collection (admin-visible)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Literal, Optional

from xo_finance.storage.document_store import DocumentStore

logger = logging.getLogger(__name__)

LOGS_COLLECTION = "logs"

LogLevel = Literal["info", "warn", "error"]


def log_event(
    store: DocumentStore,
    *,
    level: LogLevel,
    message: str,
    created_by: str,
    created_by_name: Optional[str] = None,
) -> Optional[str]:
    """Write an event to the ``logs`` collection.

    Never raises: a failed write is reported to the process log and dropped.
    """
    record = {
        "level": level,
        "message": message,
        "created_by": created_by,
        "created_by_name": created_by_name or created_by,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    try:
        return store.write(LOGS_COLLECTION, record)
    except Exception:
        logger.exception("Failed to write event log entry: %s", message)
        return None


def list_events(store: DocumentStore, *, level: Optional[str] = None, limit: int = 100) -> list[dict]:
    where = {"level": level} if level else None
    return store.read(LOGS_COLLECTION, where=where, order_by="timestamp", descending=True, limit=limit)
