"""JSON record codec.

This module stores element types and elements as indented JSON
objects, with a ``.type.json`` document per element type folder.
"""

from __future__ import annotations

import json
from typing import Any

from core.constants import JSON_EXTENSION, TYPE_DOCUMENT_STEM
from core.errors import DecodeError
from core.types import Attribute, Record, RecordKind

_SCALAR_TYPES = (str, int, float, bool, type(None))


class JsonRecordCodec:
    """Codec for ``.json`` documents with a ``.type.json`` type document."""

    @property
    def extension(self) -> str:
        return JSON_EXTENSION

    @property
    def type_document_name(self) -> str:
        return f"{TYPE_DOCUMENT_STEM}.{JSON_EXTENSION}"

    def parse(self, data: bytes, kind: RecordKind) -> Record:
        try:
            payload = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as error:
            raise DecodeError(f"Malformed JSON {kind.value} document: {error}") from error
        if not isinstance(payload, dict):
            raise DecodeError(
                f"Invalid JSON {kind.value} document: expected object at top level."
            )
        stored_kind = payload.get("kind", kind.value)
        if stored_kind != kind.value:
            raise DecodeError(
                f"Unexpected JSON document kind '{stored_kind}': expected '{kind.value}'."
            )
        if kind is RecordKind.ELEMENT_TYPE:
            return Record(
                kind=kind,
                name=_optional_str(payload, "name"),
                description=_optional_str(payload, "description"),
            )
        return Record(
            kind=kind,
            name=_optional_str(payload, "name"),
            value=_scalar(payload.get("value")),
            children=[_attribute_from_dict(item) for item in _list(payload, "children")],
        )

    def serialize(self, record: Record) -> bytes:
        payload: dict[str, Any] = {"kind": record.kind.value, "name": record.name}
        if record.kind is RecordKind.ELEMENT_TYPE:
            payload["description"] = record.description
        else:
            payload["value"] = _scalar(record.value)
            payload["children"] = [_attribute_to_dict(child) for child in record.children]
        return (json.dumps(payload, indent=2, sort_keys=True) + "\n").encode("utf-8")


def _attribute_to_dict(attribute: Attribute) -> dict[str, Any]:
    return {
        "id": attribute.id,
        "value": _scalar(attribute.value),
        "children": [_attribute_to_dict(child) for child in attribute.children],
    }


def _attribute_from_dict(payload: Any) -> Attribute:
    if not isinstance(payload, dict) or not isinstance(payload.get("id"), str):
        raise DecodeError("Invalid JSON child attribute: expected object with string id.")
    return Attribute(
        id=payload["id"],
        value=_scalar(payload.get("value")),
        children=[_attribute_from_dict(item) for item in _list(payload, "children")],
    )


def _optional_str(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None or isinstance(value, str):
        return value
    raise DecodeError(f"Invalid JSON field '{key}': expected string.")


def _list(payload: dict[str, Any], key: str) -> list[Any]:
    value = payload.get(key, [])
    if not isinstance(value, list):
        raise DecodeError(f"Invalid JSON field '{key}': expected list.")
    return value


def _scalar(value: Any) -> Any:
    if not isinstance(value, _SCALAR_TYPES):
        raise DecodeError(
            f"Unsupported attribute value type {type(value).__name__}. "
            "Use str, int, float, bool or None."
        )
    return value
