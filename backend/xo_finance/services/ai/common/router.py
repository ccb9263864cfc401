"""Per-scope provider routing for the finance AI features.

Each scope (``payslip``, ``statement``, ``budgets``, ``insights``,
``education``) picks its provider and model from the first non-empty source:

  1. runtime override, honoured only when ``ENABLE_AI_OVERRIDES=true``;
  2. the scope entry in ``AI_SCOPE_PROVIDERS`` / ``AI_SCOPE_MODELS``;
  3. ``AI_PROVIDER`` / ``AI_MODEL`` (``mock`` when unset).

Models outside ``AI_ALLOWED_MODELS`` for the chosen provider are replaced by
the first allowed one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from xo_finance.core.config import Settings, get_settings

from .providers import BaseProvider, get_provider

logger = logging.getLogger(__name__)

# Scopes that send a whole document to the model and need the longer timeout.
DOCUMENT_SCOPES = frozenset({"payslip", "statement"})


@dataclass(frozen=True)
class ResolvedConfig:
    scope: str
    provider: BaseProvider
    model: str
    temperature: float
    max_tokens: int
    timeout_seconds: float


def _override(settings: Settings, value: Optional[str]) -> str:
    if not settings.enable_ai_overrides or not value:
        return ""
    return value.strip()


def _pin_model(settings: Settings, provider_name: str, model: str) -> str:
    allowed = settings.ai_allowed_models.get(provider_name) or []
    if not allowed or model in allowed:
        return model
    if model:
        logger.warning("Model %r is not allowed for %r, falling back to %r", model, provider_name, allowed[0])
    return allowed[0]


def resolve(
    scope: str,
    *,
    override_provider: Optional[str] = None,
    override_model: Optional[str] = None,
) -> ResolvedConfig:
    settings = get_settings()

    provider_name = _override(settings, override_provider).lower() or settings.provider_for_scope(scope)
    model = _override(settings, override_model) or settings.model_for_scope(scope)

    return ResolvedConfig(
        scope=scope,
        provider=get_provider(provider_name),
        model=_pin_model(settings, provider_name, model),
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
        timeout_seconds=(
            settings.ai_document_timeout_seconds if scope in DOCUMENT_SCOPES else settings.ai_timeout_seconds
        ),
    )
