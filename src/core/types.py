"""Shared typed models.

This module defines the record models exchanged between the storage
engine, the record codecs, and callers, plus filesystem listing entries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Union

AttributeValue = Union[str, int, float, bool, None]


class RecordKind(str, Enum):
    """Discriminator for the two stored record kinds."""

    ELEMENT_TYPE = "element_type"
    ELEMENT = "element"


class Describable(Protocol):
    """Capability set shared by element types and elements."""

    id: str | None
    name: str | None
    description: str | None


@dataclass
class Attribute:
    """One node of an element payload tree.

    Attributes:
        id: Attribute key, unique among its siblings.
        value: Scalar attribute value.
        children: Nested child attributes.
    """

    id: str
    value: AttributeValue = None
    children: list[Attribute] = field(default_factory=list)

    def get_child(self, child_id: str) -> Attribute | None:
        """Return the direct child with the given id, if present."""
        for child in self.children:
            if child.id == child_id:
                return child
        return None


@dataclass
class Record:
    """Element type or element handed between store and callers.

    Records are plain values. ``metastore_name`` is a tag naming the store
    a record was created in or retrieved from, never a live reference.

    Attributes:
        kind: Whether this record is an element type or an element.
        id: File-backed identifier; defaults to the name on create.
        name: Human readable name used for lookups.
        description: Free-form description (element types).
        namespace: Owning namespace, when known.
        value: Root scalar payload value (elements).
        children: Payload attribute tree (elements).
        metastore_name: Name of the store that stamped this record.
    """

    kind: RecordKind
    id: str | None = None
    name: str | None = None
    description: str | None = None
    namespace: str | None = None
    value: AttributeValue = None
    children: list[Attribute] = field(default_factory=list)
    metastore_name: str | None = None

    def get_child(self, child_id: str) -> Attribute | None:
        """Return the top-level payload attribute with the given id."""
        for child in self.children:
            if child.id == child_id:
                return child
        return None

    def add_child(self, attribute: Attribute) -> None:
        """Add or replace a top-level payload attribute."""
        self.children = [child for child in self.children if child.id != attribute.id]
        self.children.append(attribute)


@dataclass(frozen=True)
class FileEntry:
    """One child returned by a filesystem folder listing.

    Attributes:
        name: Base name of the entry.
        path: Store-relative path of the entry.
        is_folder: Whether the entry is a folder.
        is_hidden: Whether the backend reports the entry as hidden.
    """

    name: str
    path: str
    is_folder: bool
    is_hidden: bool

    @property
    def is_file(self) -> bool:
        """Return whether the entry is a regular document."""
        return not self.is_folder


def new_element_type(
    namespace: str | None = None,
    name: str | None = None,
    description: str | None = None,
) -> Record:
    """Build an unsaved element type record."""
    return Record(
        kind=RecordKind.ELEMENT_TYPE,
        name=name,
        description=description,
        namespace=namespace,
    )


def new_element(
    name: str | None = None,
    value: AttributeValue = None,
    children: list[Attribute] | None = None,
    element_id: str | None = None,
) -> Record:
    """Build an unsaved element record."""
    return Record(
        kind=RecordKind.ELEMENT,
        id=element_id,
        name=name,
        value=value,
        children=list(children or []),
    )


def new_attribute(
    attribute_id: str,
    value: AttributeValue = None,
    children: list[Attribute] | None = None,
) -> Attribute:
    """Build a payload attribute node."""
    return Attribute(id=attribute_id, value=value, children=list(children or []))
