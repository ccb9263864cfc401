"""AI audit: one entry per model call in the ``ai_runs`` collection."""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from xo_finance.core.config import get_settings
from xo_finance.storage.document_store import DocumentStore

from .providers.base import ProviderResult

logger = logging.getLogger(__name__)

AI_RUNS_COLLECTION = "ai_runs"


def log_ai_run(
    store: Optional[DocumentStore],
    *,
    scope: str,
    provider_result: ProviderResult,
    prompt_text: str,
    outcome: str,
    actor_id: Optional[str] = None,
    extra_meta: Optional[dict[str, Any]] = None,
) -> None:
    """Write an AI run audit entry.

    * ``outcome``: ``"accepted"``, ``"empty"`` or the error code that ended the run.
    * PII: prompt and response are always hashed; raw text is only stored when
      ``AI_DEBUG_STORE_RAW=true``.

    Audit failures are logged and never break the calling flow.
    """
    if store is None:
        return

    settings = get_settings()

    entry: dict[str, Any] = {
        "scope": scope,
        "outcome": outcome,
        "provider": provider_result.provider,
        "model": provider_result.model,
        "prompt_tokens": provider_result.prompt_tokens,
        "completion_tokens": provider_result.completion_tokens,
        "latency_ms": provider_result.latency_ms,
        "prompt_hash": hashlib.sha256(prompt_text.encode()).hexdigest(),
        "response_hash": hashlib.sha256(provider_result.raw_text.encode()).hexdigest(),
        "actor_id": actor_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if settings.ai_debug_store_raw:
        entry["prompt_raw"] = prompt_text
        entry["response_raw"] = provider_result.raw_text

    if extra_meta:
        entry.update(extra_meta)

    try:
        store.write(AI_RUNS_COLLECTION, entry)
    except Exception:
        logger.exception("Failed to write AI audit entry for scope=%s", scope)
