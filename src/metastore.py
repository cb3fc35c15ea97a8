"""Public SDK surface for the metastore.

This module provides a stable import path for host applications.
It re-exports the client, engine, record models, and error types.
"""

from __future__ import annotations

from core.config import MetastoreConfig
from core.errors import (
    DecodeError,
    DependencyExistsError,
    ElementExistsError,
    ElementTypeExistsError,
    ForeignElementTypeError,
    InvalidNameError,
    LockTimeoutError,
    MetastoreError,
    NamespaceExistsError,
    NotFoundError,
    StorageError,
)
from core.types import Attribute, Record, RecordKind, new_attribute, new_element, new_element_type
from store.local_filesystem import LocalFileSystem
from store.metastore_sdk import MetastoreClient
from store.storage_engine import StorageEngine

__all__ = [
    "Attribute",
    "DecodeError",
    "DependencyExistsError",
    "ElementExistsError",
    "ElementTypeExistsError",
    "ForeignElementTypeError",
    "InvalidNameError",
    "LocalFileSystem",
    "LockTimeoutError",
    "MetastoreClient",
    "MetastoreConfig",
    "MetastoreError",
    "NamespaceExistsError",
    "NotFoundError",
    "Record",
    "RecordKind",
    "StorageEngine",
    "StorageError",
    "new_attribute",
    "new_element",
    "new_element_type",
]
