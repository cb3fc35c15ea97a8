"""Filesystem contract used by the storage engine.

This module defines the backend-agnostic operations the engine needs
and selects a concrete backend from the configured root URI.
"""

from __future__ import annotations

from typing import Protocol

from core.config import MetastoreConfig
from core.types import FileEntry


class FileSystem(Protocol):
    """Minimal filesystem surface over ``/``-separated relative paths.

    Implementations wrap every native failure in ``StorageError``.
    """

    @property
    def uri(self) -> str:
        """Friendly URI of the backend root."""
        ...

    def join(self, *parts: str) -> str:
        """Join path segments with the backend separator."""
        ...

    def exists(self, path: str) -> bool:
        """Return whether a file or folder exists at path."""
        ...

    def is_folder(self, path: str) -> bool:
        """Return whether path is an existing folder."""
        ...

    def create_folder(self, path: str) -> None:
        """Create a folder, including missing parents."""
        ...

    def delete(self, path: str) -> bool:
        """Delete a file, or a folder only when empty.

        Returns:
            False when the backend refuses the deletion.
        """
        ...

    def list_children(self, path: str) -> list[FileEntry]:
        """List direct children; empty when the folder is absent."""
        ...

    def read_bytes(self, path: str) -> bytes:
        """Read a whole document."""
        ...

    def write_bytes(self, path: str, data: bytes) -> None:
        """Replace a whole document."""
        ...

    def create_exclusive(self, path: str, data: bytes) -> bool:
        """Atomically create a document only if absent.

        Returns:
            True when this call created the document.
        """
        ...

    def last_modified(self, path: str) -> int:
        """Return the document modification timestamp."""
        ...


def open_filesystem(config: MetastoreConfig) -> FileSystem:
    """Create the backend matching the configured root URI.

    Args:
        config: Runtime configuration.

    Returns:
        Local or S3 filesystem backend.

    Raises:
        MetastoreDependencyError: If an S3 root is used without boto3.
        MetastoreConfigError: If the S3 URI is malformed.
    """
    if config.is_s3:
        from store.s3_filesystem import S3FileSystem

        return S3FileSystem.from_config(config)
    from store.local_filesystem import LocalFileSystem

    return LocalFileSystem(config.root_uri)
