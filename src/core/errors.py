"""Metastore exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each storage failure mode raises a specific error type for debuggability.
"""

from __future__ import annotations

from typing import Any, Sequence


class MetastoreError(Exception):
    """Base exception for all metastore failures."""


class MetastoreConfigError(MetastoreError):
    """Raised for invalid runtime configuration."""


class MetastoreDependencyError(MetastoreError):
    """Raised when an optional runtime dependency is missing."""


class InvalidNameError(MetastoreError):
    """Raised when a name violates the on-disk naming convention."""


class StorageError(MetastoreError):
    """Raised for underlying filesystem failures."""


class DecodeError(MetastoreError):
    """Raised when a stored document cannot be decoded or encoded."""


class NotFoundError(MetastoreError):
    """Raised when an update targets a record that does not exist."""


class ForeignElementTypeError(MetastoreError):
    """Raised when an element type handle belongs to another store."""


class LockTimeoutError(MetastoreError):
    """Raised when the store lock cannot be acquired in time."""


class _ExistingRecordsError(MetastoreError):
    """Creation conflict that carries the records already present."""

    def __init__(self, message: str, existing: Sequence[Any]) -> None:
        super().__init__(message)
        self.existing = list(existing)


class NamespaceExistsError(_ExistingRecordsError):
    """Raised when creating a namespace that already exists."""


class ElementTypeExistsError(_ExistingRecordsError):
    """Raised when creating an element type that already exists."""


class ElementExistsError(_ExistingRecordsError):
    """Raised when creating an element whose document already exists."""


class DependencyExistsError(MetastoreError):
    """Raised when a deletion is blocked by remaining child records."""

    def __init__(self, message: str, dependencies: Sequence[str]) -> None:
        super().__init__(message)
        self.dependencies = list(dependencies)
