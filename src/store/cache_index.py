"""Advisory in-memory cache for the storage engine.

This module remembers name to id associations and the timestamps of
documents already decoded, so unchanged documents are not parsed twice.
Nothing here is authoritative: the engine stays correct when the cache
is empty, and a timestamp mismatch always means re-read.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
import hashlib

from core.types import Record

_TypeKey = tuple[str, str]


@dataclass(frozen=True)
class _ProcessedFile:
    timestamp: int
    record: Record | None
    digest: str | None


class CacheIndex:
    """Process-local cache of ids and processed documents."""

    def __init__(self) -> None:
        self._type_ids: dict[str, dict[str, str]] = {}
        self._element_ids: dict[_TypeKey, dict[str, str]] = {}
        self._element_names: dict[_TypeKey, dict[str, str]] = {}
        self._processed: dict[str, _ProcessedFile] = {}

    def register_type_id(self, namespace: str, type_name: str, type_id: str) -> None:
        self._type_ids.setdefault(namespace, {})[_fold(type_name)] = type_id

    def unregister_type_id(self, namespace: str, type_id: str) -> None:
        names = self._type_ids.get(namespace, {})
        for name_key in [key for key, value in names.items() if value == type_id]:
            del names[name_key]
        self._element_ids.pop((namespace, type_id), None)
        self._element_names.pop((namespace, type_id), None)

    def lookup_type_id(self, namespace: str, type_name: str) -> str | None:
        return self._type_ids.get(namespace, {}).get(_fold(type_name))

    def register_element_id(
        self, namespace: str, element_type: str, name: str, element_id: str
    ) -> None:
        """Associate an element name with its id, replacing older links."""
        type_key = (namespace, element_type)
        ids = self._element_ids.setdefault(type_key, {})
        names = self._element_names.setdefault(type_key, {})
        previous_name = names.get(element_id)
        if previous_name is not None and ids.get(previous_name) == element_id:
            del ids[previous_name]
        name_key = _fold(name)
        ids[name_key] = element_id
        names[element_id] = name_key

    def unregister_element_id(self, namespace: str, element_type: str, element_id: str) -> None:
        type_key = (namespace, element_type)
        name_key = self._element_names.get(type_key, {}).pop(element_id, None)
        ids = self._element_ids.get(type_key, {})
        if name_key is not None and ids.get(name_key) == element_id:
            del ids[name_key]

    def lookup_element_id(self, namespace: str, element_type: str, name: str) -> str | None:
        return self._element_ids.get((namespace, element_type), {}).get(_fold(name))

    def mark_processed(
        self,
        path: str,
        timestamp: int,
        record: Record | None = None,
        content: bytes | None = None,
    ) -> None:
        """Record that a document was read or written at a timestamp.

        Args:
            path: Store-relative document or folder path.
            timestamp: Modification timestamp observed for the path.
            record: Decoded record for that timestamp, when available.
            content: Raw document bytes the record was decoded from.
        """
        stored = copy.deepcopy(record) if record is not None and content is not None else None
        self._processed[path] = _ProcessedFile(
            timestamp=timestamp,
            record=stored,
            digest=_digest(content) if content is not None else None,
        )

    def unmark_processed(self, path: str) -> None:
        self._processed.pop(path, None)

    def is_processed(self, path: str, timestamp: int) -> bool:
        entry = self._processed.get(path)
        return entry is not None and entry.timestamp == timestamp

    def cached_record(self, path: str, timestamp: int, content: bytes) -> Record | None:
        """Return a private copy of the record decoded from these bytes.

        Timestamps can repeat within one filesystem clock tick, so the
        content digest must match as well.
        """
        entry = self._processed.get(path)
        if entry is None or entry.record is None or entry.timestamp != timestamp:
            return None
        if entry.digest != _digest(content):
            return None
        return copy.deepcopy(entry.record)

    def clear(self) -> None:
        self._type_ids.clear()
        self._element_ids.clear()
        self._element_names.clear()
        self._processed.clear()


def _fold(name: str) -> str:
    return name.casefold()


def _digest(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()
