"""Structured extraction pipeline.

One-shot, stateless calls: resolve the provider for a scope, send the prompt
(and document, if any), pull JSON out of the reply and validate it against a
pydantic schema before anything leaves this module.

Failure mapping:
  * empty / oversized / undecodable document  -> ``InvalidInput``
  * provider raised or timed out              -> ``ModelUnavailable``
  * no JSON, anchor missing, required invalid -> ``ModelOutputInvalid``

No retries happen here; retrying is the caller's decision.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel

from xo_finance.core.config import get_settings
from xo_finance.core.errors import InvalidInput, ModelOutputInvalid, ModelUnavailable
from xo_finance.storage.document_store import DocumentStore

from . import router as ai_router
from .audit import log_ai_run
from .json_tools import extract_json
from .providers.base import MediaPayload, ProviderResult
from .validation import validate_items, validate_record

logger = logging.getLogger(__name__)

JSON_ONLY_RULE = "Responda APENAS com um objeto JSON válido, sem markdown ou explicações."

FORMAT_RULES = (
    "Regras de formatação:\n"
    "- Datas sempre no formato YYYY-MM-DD.\n"
    "- Valores monetários como números (ponto como separador decimal, sem símbolo de moeda).\n"
    "- Débitos/despesas são NEGATIVOS; créditos/receitas são POSITIVOS.\n"
    "- Omita campos opcionais que não aparecem no documento; nunca invente valores.\n"
    f"- {JSON_ONLY_RULE}"
)


@dataclass(frozen=True)
class ModelReply:
    parsed: Any
    provider_result: ProviderResult
    prompt: str


def coerce_document(document: bytes | str | None) -> bytes:
    """Accept raw bytes or a base64 string / data URI and return bytes."""
    if document is None:
        raise InvalidInput("Nenhum documento foi enviado.")
    if isinstance(document, str):
        payload = document.strip()
        if payload.startswith("data:") and "," in payload:
            payload = payload.split(",", 1)[1]
        try:
            document = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidInput("O documento enviado não pôde ser lido.") from exc
    if not document:
        raise InvalidInput("O documento enviado está vazio.")
    max_bytes = get_settings().ai_max_document_bytes
    if len(document) > max_bytes:
        raise InvalidInput("O documento excede o tamanho máximo permitido.")
    return document


def schema_instructions(schema: type[BaseModel], *, items_key: Optional[str] = None) -> str:
    """Describe the expected JSON shape using the pydantic JSON schema."""
    json_schema = schema.model_json_schema()
    if items_key:
        shape = {"type": "object", "properties": {items_key: {"type": "array", "items": json_schema}}}
        intro = f'Retorne um objeto JSON com a chave "{items_key}" contendo uma lista de itens neste schema:'
    else:
        shape = json_schema
        intro = "Retorne um objeto JSON neste schema:"
    return f"{intro}\n{json.dumps(shape, ensure_ascii=False)}"


async def _call_model(
    scope: str,
    prompt: str,
    *,
    system_prompt: Optional[str],
    media: Optional[MediaPayload],
    store: Optional[DocumentStore],
    actor_id: Optional[str],
    override_provider: Optional[str],
    override_model: Optional[str],
) -> ModelReply:
    config = ai_router.resolve(scope, override_provider=override_provider, override_model=override_model)

    if media is not None and not config.provider.supports_media:
        raise ModelUnavailable(detail=f"provider {config.provider.name!r} does not accept documents")

    try:
        result = await config.provider.generate(
            prompt,
            system_prompt=system_prompt,
            media=media,
            json_output=True,
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout_seconds=config.timeout_seconds,
        )
    except Exception as exc:
        logger.warning("AI %s call to %s failed: %s", scope, config.provider.name, exc)
        raise ModelUnavailable(detail=f"{config.provider.name} call failed: {type(exc).__name__}") from exc

    parsed = extract_json(result.raw_text)
    if parsed is None:
        logger.warning("AI %s returned no JSON: %s", scope, result.raw_text[:200])
        log_ai_run(
            store,
            scope=scope,
            provider_result=result,
            prompt_text=prompt,
            outcome=ModelOutputInvalid.code,
            actor_id=actor_id,
        )
        raise ModelOutputInvalid(detail=f"{scope}: no JSON in model response")

    return ModelReply(parsed=parsed, provider_result=result, prompt=prompt)


async def generate_record(
    scope: str,
    prompt: str,
    schema: type[BaseModel],
    *,
    anchor: str,
    system_prompt: Optional[str] = None,
    media: Optional[MediaPayload] = None,
    store: Optional[DocumentStore] = None,
    actor_id: Optional[str] = None,
    override_provider: Optional[str] = None,
    override_model: Optional[str] = None,
) -> BaseModel:
    """Ask for one object and validate it; fails atomically on the anchor."""
    reply = await _call_model(
        scope,
        prompt,
        system_prompt=system_prompt,
        media=media,
        store=store,
        actor_id=actor_id,
        override_provider=override_provider,
        override_model=override_model,
    )
    try:
        record = validate_record(reply.parsed, schema, anchor=anchor)
    except ModelOutputInvalid as exc:
        logger.warning("AI %s output rejected: %s", scope, exc.detail)
        log_ai_run(
            store,
            scope=scope,
            provider_result=reply.provider_result,
            prompt_text=reply.prompt,
            outcome=exc.code,
            actor_id=actor_id,
        )
        raise

    log_ai_run(
        store,
        scope=scope,
        provider_result=reply.provider_result,
        prompt_text=reply.prompt,
        outcome="accepted",
        actor_id=actor_id,
    )
    return record


async def generate_items(
    scope: str,
    prompt: str,
    item_schema: type[BaseModel],
    *,
    items_key: str,
    system_prompt: Optional[str] = None,
    media: Optional[MediaPayload] = None,
    store: Optional[DocumentStore] = None,
    actor_id: Optional[str] = None,
    override_provider: Optional[str] = None,
    override_model: Optional[str] = None,
) -> list:
    """Ask for a list of objects; each element is validated on its own."""
    reply = await _call_model(
        scope,
        prompt,
        system_prompt=system_prompt,
        media=media,
        store=store,
        actor_id=actor_id,
        override_provider=override_provider,
        override_model=override_model,
    )

    raw_items = reply.parsed
    if isinstance(raw_items, Mapping):
        raw_items = raw_items.get(items_key)
    if not isinstance(raw_items, list):
        log_ai_run(
            store,
            scope=scope,
            provider_result=reply.provider_result,
            prompt_text=reply.prompt,
            outcome=ModelOutputInvalid.code,
            actor_id=actor_id,
        )
        raise ModelOutputInvalid(detail=f"{scope}: response has no {items_key!r} list")

    items = validate_items(raw_items, item_schema)
    log_ai_run(
        store,
        scope=scope,
        provider_result=reply.provider_result,
        prompt_text=reply.prompt,
        outcome="accepted" if items else "empty",
        actor_id=actor_id,
        extra_meta={"items_received": len(raw_items), "items_accepted": len(items)},
    )
    return items


async def extract(
    document: bytes | str,
    schema: type[BaseModel],
    *,
    anchor: str,
    instructions: str,
    scope: str,
    mime_type: str = "application/pdf",
    filename: str = "document.pdf",
    store: Optional[DocumentStore] = None,
    actor_id: Optional[str] = None,
) -> BaseModel:
    """Extract one structured record from *document*."""
    media = MediaPayload(data=coerce_document(document), mime_type=mime_type, filename=filename)
    prompt = f"{instructions}\n\n{FORMAT_RULES}\n\n{schema_instructions(schema)}"
    return await generate_record(scope, prompt, schema, anchor=anchor, media=media, store=store, actor_id=actor_id)


async def extract_batch(
    document: bytes | str,
    item_schema: type[BaseModel],
    *,
    instructions: str,
    scope: str,
    items_key: str = "items",
    mime_type: str = "application/pdf",
    filename: str = "document.pdf",
    store: Optional[DocumentStore] = None,
    actor_id: Optional[str] = None,
) -> list:
    """Extract a sequence of records from *document*; bad elements are dropped."""
    media = MediaPayload(data=coerce_document(document), mime_type=mime_type, filename=filename)
    prompt = f"{instructions}\n\n{FORMAT_RULES}\n\n{schema_instructions(item_schema, items_key=items_key)}"
    return await generate_items(
        scope,
        prompt,
        item_schema,
        items_key=items_key,
        media=media,
        store=store,
        actor_id=actor_id,
    )
