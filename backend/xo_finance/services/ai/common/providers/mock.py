"""Mock provider with deterministic responses for tests and fallback."""

from __future__ import annotations

import time

from .base import BaseProvider, MediaPayload, ProviderResult

DEFAULT_MOCK_RESPONSE = "{}"


class MockProvider(BaseProvider):
    name = "mock"
    supports_media = True

    def __init__(self, raw_text: str = DEFAULT_MOCK_RESPONSE) -> None:
        self._raw_text = raw_text
        self.calls: list[dict] = []

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
        t0 = time.monotonic()
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "media": media})
        text = self._raw_text
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=text,
            model=model or "mock-v1",
            provider=self.name,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
