"""Python SDK entry point for the metastore.

This module wires configuration, filesystem backend, record codec,
and storage engine together behind one client object.
"""

from __future__ import annotations

from dataclasses import replace

from core.config import MetastoreConfig, normalize_root_uri
from store.filesystem import FileSystem
from store.storage_engine import StorageEngine


class MetastoreClient:
    """Primary SDK entry point for metastore workflows."""

    def __init__(
        self,
        config: MetastoreConfig | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            filesystem: Optional backend overriding the configured root.
        """
        self._config = config or MetastoreConfig.from_env()
        self._engine = StorageEngine.from_config(self._config, filesystem)

    @property
    def config(self) -> MetastoreConfig:
        return self._config

    @property
    def engine(self) -> StorageEngine:
        return self._engine

    def with_root(self, root_uri: str) -> "MetastoreClient":
        """Clone the client with a different store root.

        Args:
            root_uri: Local path or ``s3://bucket/prefix`` root.

        Returns:
            New SDK client instance.
        """
        updated_config = replace(self._config, root_uri=normalize_root_uri(root_uri))
        return MetastoreClient(updated_config)
