"""Store path convention.

This module maps namespace, element type, and element identifiers onto
store-relative document paths. It performs no I/O; invalid names are
rejected before any filesystem call is attempted.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.constants import DEFAULT_META_FOLDER_NAME, LOCK_MARKER_SUFFIX, TYPE_DOCUMENT_STEM
from core.errors import InvalidNameError

_FORBIDDEN_CHARACTERS = ("/", "\\")


@dataclass(frozen=True)
class PathConvention:
    """Deterministic layout of the metastore directory tree.

    Attributes:
        extension: Document extension without the leading dot.
        type_document_name: Reserved file name of element type documents.
        meta_folder_name: Folder under the store root holding namespaces.
    """

    extension: str
    type_document_name: str
    meta_folder_name: str = DEFAULT_META_FOLDER_NAME

    @property
    def meta_folder(self) -> str:
        return self.meta_folder_name

    @property
    def lock_marker(self) -> str:
        return f"{self.meta_folder_name}{LOCK_MARKER_SUFFIX}"

    def namespace_folder(self, namespace: str) -> str:
        validate_name(namespace, "namespace")
        return f"{self.meta_folder}/{namespace}"

    def element_type_folder(self, namespace: str, element_type_name: str) -> str:
        validate_name(element_type_name, "element type")
        return f"{self.namespace_folder(namespace)}/{element_type_name}"

    def element_type_document(self, namespace: str, element_type_name: str) -> str:
        folder = self.element_type_folder(namespace, element_type_name)
        return f"{folder}/{self.type_document_name}"

    def element_document(self, namespace: str, element_type_name: str, element_id: str) -> str:
        validate_name(element_id, "element id")
        folder = self.element_type_folder(namespace, element_type_name)
        return f"{folder}/{element_id}.{self.extension}"

    def element_id_from_filename(self, filename: str) -> str | None:
        """Return the element id encoded in a document file name.

        Args:
            filename: Base name of a file inside an element type folder.

        Returns:
            Element id, or None for the type document and foreign files.
        """
        if filename == self.type_document_name:
            return None
        suffix = f".{self.extension}"
        if not filename.endswith(suffix) or len(filename) == len(suffix):
            return None
        return filename[: -len(suffix)]


def validate_name(name: object, label: str) -> str:
    """Reject names that would break the one-to-one path mapping.

    Args:
        name: Candidate namespace, element type, or element name.
        label: Human readable role of the name for error messages.

    Returns:
        The validated name.

    Raises:
        InvalidNameError: If the name cannot be stored as a path segment.
    """
    if not isinstance(name, str) or not name:
        raise InvalidNameError(f"Invalid {label} name {name!r}: expected a non-empty string.")
    if any(character in name for character in _FORBIDDEN_CHARACTERS):
        raise InvalidNameError(
            f"Invalid {label} name '{name}': path separators are not allowed."
        )
    if any(_is_control(character) for character in name):
        raise InvalidNameError(
            f"Invalid {label} name {name!r}: control characters are not allowed."
        )
    if name in (".", ".."):
        raise InvalidNameError(f"Invalid {label} name '{name}': relative path markers.")
    if name == TYPE_DOCUMENT_STEM:
        raise InvalidNameError(
            f"Invalid {label} name '{name}': reserved for element type documents."
        )
    if name.startswith("."):
        raise InvalidNameError(
            f"Invalid {label} name '{name}': dot-prefixed entries are hidden from listings."
        )
    return name


def _is_control(character: str) -> bool:
    return ord(character) < 0x20 or 0x7F <= ord(character) <= 0x9F
