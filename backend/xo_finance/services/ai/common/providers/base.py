"""Abstract base for all AI providers."""

from __future__ import annotations

import abc
import base64
from dataclasses import dataclass


@dataclass(frozen=True)
class MediaPayload:
    """Binary document handed to the model next to the prompt."""

    data: bytes
    mime_type: str = "application/pdf"
    filename: str = "document.pdf"

    def as_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def as_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.as_base64()}"


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider."""

    raw_text: str
    model: str
    provider: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0


class BaseProvider(abc.ABC):
    """Contract that every AI provider must implement."""

    name: str = "base"
    supports_media: bool = False

    @abc.abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        media: MediaPayload | None = None,
        json_output: bool = True,
        model: str = "",
        temperature: float = 0.2,
        max_tokens: int = 4096,
        timeout_seconds: float = 20.0,
    ) -> ProviderResult:
        """Send *prompt* (and optional *media*) and return a ``ProviderResult``."""
