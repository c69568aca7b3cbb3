"""Conversion between entity objects and stored documents.

Entities are plain value objects chosen by the caller (usually dataclasses).
Attributes are read by the declared ``attribute`` name and written to the
document under the declared ``name``; column groups become sub-documents.
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from functools import cache
from typing import TYPE_CHECKING, Any

from ..errors import DecodeError, TypeMismatchError
from .fields import Field

if TYPE_CHECKING:
    from .schema import Schema, Scope


def read_attribute(entity: Any, attribute: str) -> Any:
    if isinstance(entity, Mapping):
        return entity.get(attribute)
    return getattr(entity, attribute, None)


def encode_scope(scope: Scope, entity: Any) -> dict[str, Any]:
    """Encode ``entity`` against the children of ``scope``."""
    entity_type = scope.entity_type
    if entity_type is not None and not isinstance(entity, (Mapping, entity_type)):
        raise TypeMismatchError(scope.path or scope.name, entity_type.__name__, entity)

    document: dict[str, Any] = {}
    for node in scope:
        value = read_attribute(entity, node.attribute)
        if value is None:
            if isinstance(node, Field) and node.primary_key:
                value = node.generate()
            elif node.required:
                raise TypeMismatchError(node.path, node.type_name, value)
            else:
                continue
        document[node.name] = node.encode(value)
    return document


def decode_scope(scope: Scope, raw: Any) -> Any:
    """Rebuild an entity (or a dict when no entity type is declared) from ``raw``."""
    if not isinstance(raw, Mapping):
        raise DecodeError(f"Expected a document at '{scope.path}', got {type(raw).__name__}")

    values: dict[str, Any] = {}
    for node in scope:
        if node.name in raw and raw[node.name] is not None:
            values[node.attribute] = node.decode(raw[node.name])

    if scope.entity_type is None:
        return values
    return construct(scope.entity_type, values)


def construct(entity_type: type[Any], values: dict[str, Any]) -> Any:
    """Call ``entity_type`` with the subset of ``values`` its constructor accepts."""
    accepted = _accepted_parameters(entity_type)
    if accepted is not None:
        values = {key: value for key, value in values.items() if key in accepted}
    try:
        return entity_type(**values)
    except TypeError as exc:
        raise DecodeError(f"Cannot build {entity_type.__name__}: {exc}") from exc


@cache
def _accepted_parameters(entity_type: type[Any]) -> frozenset[str] | None:
    """Keyword names accepted by the constructor, or None if it takes **kwargs."""
    try:
        signature = inspect.signature(entity_type)
    except (TypeError, ValueError):
        return None
    names = set()
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_KEYWORD:
            return None
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.KEYWORD_ONLY,
        ):
            names.add(parameter.name)
    return frozenset(names)


def encode_entity(schema: Schema, entity: Any) -> dict[str, Any]:
    return encode_scope(schema, entity)


def decode_document(schema: Schema, document: Mapping[str, Any]) -> Any:
    return decode_scope(schema, document)
