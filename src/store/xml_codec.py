"""XML record codec.

This module reads and writes the XML document layout used by
file-backed metastores: one ``data-type`` document per element type
folder and one ``element`` document per element.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET

from core.constants import (
    TYPE_DOCUMENT_STEM,
    XML_CHILD_TAG,
    XML_ELEMENT_TAG,
    XML_ELEMENT_TYPE_TAG,
    XML_EXTENSION,
)
from core.errors import DecodeError
from core.types import Attribute, AttributeValue, Record, RecordKind

_ROOT_TAGS = {
    RecordKind.ELEMENT_TYPE: XML_ELEMENT_TYPE_TAG,
    RecordKind.ELEMENT: XML_ELEMENT_TAG,
}
_ILLEGAL_XML_CHARACTERS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


class XmlRecordCodec:
    """Codec for ``.xml`` documents with a ``.type.xml`` type document."""

    @property
    def extension(self) -> str:
        return XML_EXTENSION

    @property
    def type_document_name(self) -> str:
        return f"{TYPE_DOCUMENT_STEM}.{XML_EXTENSION}"

    def parse(self, data: bytes, kind: RecordKind) -> Record:
        try:
            root = ET.fromstring(data)
        except ET.ParseError as error:
            raise DecodeError(f"Malformed XML {kind.value} document: {error}") from error
        expected_tag = _ROOT_TAGS[kind]
        if root.tag != expected_tag:
            raise DecodeError(
                f"Unexpected XML root tag '{root.tag}': expected '{expected_tag}' "
                f"for a {kind.value} document."
            )
        if kind is RecordKind.ELEMENT_TYPE:
            return Record(
                kind=kind,
                name=root.findtext("name"),
                description=root.findtext("description"),
            )
        value = _decode_value(root)
        return Record(
            kind=kind,
            name=root.findtext("name"),
            value=value,
            children=_decode_children(root),
        )

    def serialize(self, record: Record) -> bytes:
        root = ET.Element(_ROOT_TAGS[record.kind])
        _text_node(root, "name", record.name)
        if record.kind is RecordKind.ELEMENT_TYPE:
            _text_node(root, "description", record.description)
        else:
            _encode_value(root, record.value)
            _encode_children(root, record.children)
        ET.indent(root, space="  ")
        return ET.tostring(root, encoding="utf-8", xml_declaration=True) + b"\n"


def _text_node(parent: ET.Element, tag: str, text: str | None) -> ET.Element:
    if text is not None and _ILLEGAL_XML_CHARACTERS.search(text):
        raise DecodeError(
            f"Cannot store {tag} {text!r} as XML: it contains characters XML 1.0 forbids. "
            "Remove control characters or use the json format."
        )
    node = ET.SubElement(parent, tag)
    node.text = text
    return node


def _encode_value(parent: ET.Element, value: AttributeValue) -> None:
    if value is None:
        type_name, text = "Null", None
    elif isinstance(value, bool):
        type_name, text = "Boolean", "Y" if value else "N"
    elif isinstance(value, int):
        type_name, text = "Long", str(value)
    elif isinstance(value, float):
        type_name, text = "Double", repr(value)
    elif isinstance(value, str):
        type_name, text = "String", value
    else:
        raise DecodeError(
            f"Unsupported attribute value type {type(value).__name__}. "
            "Use str, int, float, bool or None."
        )
    _text_node(parent, "value", text)
    _text_node(parent, "type", type_name)


def _encode_children(parent: ET.Element, children: list[Attribute]) -> None:
    if not children:
        return
    container = ET.SubElement(parent, "children")
    for child in children:
        node = ET.SubElement(container, XML_CHILD_TAG)
        _text_node(node, "id", child.id)
        _encode_value(node, child.value)
        _encode_children(node, child.children)


def _decode_value(node: ET.Element) -> AttributeValue:
    type_name = node.findtext("type", default="String")
    text = node.findtext("value")
    if type_name == "Null":
        return None
    if type_name == "String":
        return text if text is not None else ""
    if text is None:
        return None
    try:
        if type_name == "Long":
            return int(text)
        if type_name == "Double":
            return float(text)
    except ValueError as error:
        raise DecodeError(f"Invalid {type_name} attribute value '{text}'") from error
    if type_name == "Boolean":
        return text.strip().upper() in {"Y", "TRUE"}
    raise DecodeError(f"Unknown attribute value type '{type_name}'")


def _decode_children(node: ET.Element) -> list[Attribute]:
    container = node.find("children")
    if container is None:
        return []
    children: list[Attribute] = []
    for child_node in container.findall(XML_CHILD_TAG):
        child_id = child_node.findtext("id")
        if not child_id:
            raise DecodeError("XML child attribute is missing its id")
        children.append(
            Attribute(
                id=child_id,
                value=_decode_value(child_node),
                children=_decode_children(child_node),
            )
        )
    return children
