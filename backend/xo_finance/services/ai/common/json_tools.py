"""Tolerant JSON extraction from LLM responses."""

from __future__ import annotations

import json
import logging
import re

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_decoder = json.JSONDecoder()


def extract_json(text: str) -> dict | list | None:
    """Return the first JSON object or array found in *text*.

    Models wrap JSON in markdown fences or prose despite instructions, so we
    try, in order: the whole text, the contents of each fenced block, and
    finally a scan that decodes from every ``{`` / ``[`` until one parses.
    Returns ``None`` if nothing parses.
    """
    if not text or not text.strip():
        return None

    stripped = text.strip()
    candidates = [stripped] + [block.strip() for block in _FENCE_RE.findall(stripped)]

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(value, (dict, list)):
            return value

    for idx, ch in enumerate(stripped):
        if ch not in "{[":
            continue
        try:
            value, _end = _decoder.raw_decode(stripped, idx)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(value, (dict, list)):
            return value

    logger.debug("No JSON found in model response (%d chars)", len(stripped))
    return None
