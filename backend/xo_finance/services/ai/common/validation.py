"""Schema enforcement for untrusted model output.

Model output never crosses into the trusted domain without passing through
``validate_record`` (single object) or ``validate_items`` (sequence):

* each declared field is validated on its own with a pydantic ``TypeAdapter``;
* a malformed optional field is dropped, a malformed required field fails;
* elements of nested model lists are validated one by one and bad elements
  are dropped;
* the anchor field must be present and valid or the whole record fails.
"""

from __future__ import annotations

import logging
import types
from collections.abc import Mapping
from typing import Annotated, Any, Optional, Union, get_args, get_origin

from pydantic import BaseModel, TypeAdapter, ValidationError

from xo_finance.core.errors import ModelOutputInvalid

logger = logging.getLogger(__name__)

_adapters: dict[tuple[type, str], TypeAdapter] = {}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _field_adapter(schema: type[BaseModel], name: str) -> TypeAdapter:
    key = (schema, name)
    adapter = _adapters.get(key)
    if adapter is None:
        info = schema.model_fields[name]
        annotation = info.annotation
        if info.metadata:
            annotation = Annotated[(annotation, *info.metadata)]
        adapter = TypeAdapter(annotation)
        _adapters[key] = adapter
    return adapter


def _nested_model(annotation: Any) -> Optional[type[BaseModel]]:
    """Return the item model of ``list[Model]`` / ``list[Model] | None`` annotations."""
    origin = get_origin(annotation)
    if origin in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        return _nested_model(args[0]) if len(args) == 1 else None
    if origin is list:
        args = get_args(annotation)
        if args and isinstance(args[0], type) and issubclass(args[0], BaseModel):
            return args[0]
    return None


def _lookup(data: Mapping[str, Any], name: str) -> tuple[bool, Any]:
    for key in (name, _camel(name)):
        if key in data:
            return True, data[key]
    return False, None


def validate_record(data: Any, schema: type[BaseModel], *, anchor: Optional[str] = None) -> BaseModel:
    """Validate one model-produced object against *schema*.

    Raises ``ModelOutputInvalid`` when *data* is not an object, when a
    required field is missing or malformed, or when the *anchor* field is.
    """
    if not isinstance(data, Mapping):
        raise ModelOutputInvalid(detail=f"{schema.__name__}: expected a JSON object, got {type(data).__name__}")

    cleaned: dict[str, Any] = {}
    for name, info in schema.model_fields.items():
        found, raw = _lookup(data, name)
        if not found or raw is None:
            continue

        item_model = _nested_model(info.annotation)
        if item_model is not None and isinstance(raw, list):
            raw = validate_items(raw, item_model)

        try:
            cleaned[name] = _field_adapter(schema, name).validate_python(raw)
        except ValidationError as exc:
            if name == anchor or info.is_required():
                raise ModelOutputInvalid(detail=f"{schema.__name__}.{name} is malformed") from exc
            logger.info("Dropping malformed optional field %s.%s", schema.__name__, name)

    if anchor is not None and anchor not in cleaned:
        raise ModelOutputInvalid(detail=f"{schema.__name__}.{anchor} is missing")

    try:
        return schema.model_validate(cleaned)
    except ValidationError as exc:
        raise ModelOutputInvalid(detail=f"{schema.__name__} failed validation: {exc.error_count()} error(s)") from exc


def validate_items(items: Any, schema: type[BaseModel]) -> list:
    """Validate each element independently; malformed elements are dropped."""
    if not isinstance(items, list):
        return []

    accepted = []
    dropped = 0
    for item in items:
        try:
            accepted.append(validate_record(item, schema))
        except ModelOutputInvalid as exc:
            dropped += 1
            logger.debug("Dropped %s element: %s", schema.__name__, exc.detail)

    if dropped:
        logger.info("Dropped %d of %d malformed %s element(s)", dropped, len(items), schema.__name__)
    return accepted
