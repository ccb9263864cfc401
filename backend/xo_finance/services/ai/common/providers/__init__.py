"""Provider factory. Anything not allow-listed or without a key becomes the mock."""

from __future__ import annotations

import importlib
import logging

from xo_finance.core.config import get_settings

from .base import BaseProvider, MediaPayload, ProviderResult
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = ["get_provider", "BaseProvider", "MediaPayload", "ProviderResult", "MockProvider"]

# provider name -> (module, class, settings attribute holding the key, env var for logs)
_REMOTE_PROVIDERS: dict[str, tuple[str, str, str, str]] = {
    "gemini": (".gemini", "GeminiProvider", "gemini_api_key", "GEMINI_API_KEY"),
    "claude": (".claude", "ClaudeProvider", "anthropic_api_key", "ANTHROPIC_API_KEY"),
    "openai": (".openai", "OpenAIProvider", "openai_api_key", "OPENAI_API_KEY"),
}


def get_provider(provider_name: str) -> BaseProvider:
    settings = get_settings()
    name = provider_name.lower().strip()

    if name not in settings.ai_allowed_providers:
        logger.warning("Provider %r is not allow-listed, using mock", name)
        return MockProvider()
    if name == "mock":
        return MockProvider()

    entry = _REMOTE_PROVIDERS.get(name)
    if entry is None:
        logger.warning("Unknown provider %r, using mock", name)
        return MockProvider()

    module_name, class_name, key_attr, env_name = entry
    api_key = getattr(settings, key_attr)
    if not api_key:
        logger.warning("%s not set, using mock for %r", env_name, name)
        return MockProvider()

    provider_cls = getattr(importlib.import_module(module_name, __name__), class_name)
    return provider_cls(api_key=api_key)
