"""Record codec contract and format selection.

This module defines how element types and elements cross the
document boundary and maps a configured format name to a codec.
"""

from __future__ import annotations

from typing import Protocol

from core.errors import MetastoreConfigError
from core.types import Record, RecordKind


class RecordCodec(Protocol):
    """Encodes and decodes one stored record document."""

    @property
    def extension(self) -> str:
        """Document file extension without the leading dot."""
        ...

    @property
    def type_document_name(self) -> str:
        """Reserved file name of the element type document."""
        ...

    def parse(self, data: bytes, kind: RecordKind) -> Record:
        """Decode a document; raises ``DecodeError`` on failure."""
        ...

    def serialize(self, record: Record) -> bytes:
        """Encode a record; raises ``DecodeError`` on failure."""
        ...


def codec_for_format(document_format: str) -> RecordCodec:
    """Return the codec for a document format name.

    Args:
        document_format: ``xml`` or ``json``.

    Returns:
        Codec instance.

    Raises:
        MetastoreConfigError: If the format is unsupported.
    """
    if document_format == "xml":
        from store.xml_codec import XmlRecordCodec

        return XmlRecordCodec()
    if document_format == "json":
        from store.json_codec import JsonRecordCodec

        return JsonRecordCodec()
    raise MetastoreConfigError(
        f"Unsupported document format '{document_format}'. Use 'xml' or 'json'."
    )
