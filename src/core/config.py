"""Runtime configuration model for the metastore.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_DOCUMENT_FORMAT,
    DEFAULT_LOCK_POLL_SECONDS,
    DEFAULT_LOCK_TIMEOUT_SECONDS,
    DEFAULT_META_FOLDER_NAME,
    DEFAULT_ROOT_URI,
    S3_URI_SCHEME,
    SUPPORTED_DOCUMENT_FORMATS,
)
from core.errors import MetastoreConfigError


@dataclass(frozen=True)
class MetastoreConfig:
    """Validated runtime configuration.

    Attributes:
        root_uri: Local directory path or ``s3://bucket/prefix`` store root.
        meta_folder_name: Folder under the root that holds namespaces.
        store_name: Optional explicit store name used to stamp handles.
        document_format: Record document format, ``xml`` or ``json``.
        lock_poll_seconds: Interval between lock acquisition attempts.
        lock_timeout_seconds: Upper bound on total lock wait.
        s3_region: Optional default AWS region for S3 roots.
        s3_profile: Optional AWS profile for boto3 session initialization.
    """

    root_uri: str
    meta_folder_name: str = DEFAULT_META_FOLDER_NAME
    store_name: str | None = None
    document_format: str = DEFAULT_DOCUMENT_FORMAT
    lock_poll_seconds: float = DEFAULT_LOCK_POLL_SECONDS
    lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS
    s3_region: str | None = None
    s3_profile: str | None = None

    @classmethod
    def from_env(cls) -> "MetastoreConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            MetastoreConfigError: If environment values are invalid.
        """
        root_value = os.getenv("METASTORE_ROOT", DEFAULT_ROOT_URI)
        meta_folder_name = os.getenv("METASTORE_FOLDER_NAME", DEFAULT_META_FOLDER_NAME)
        document_format = _parse_document_format(
            os.getenv("METASTORE_FORMAT", DEFAULT_DOCUMENT_FORMAT)
        )
        lock_poll_seconds = _parse_positive_seconds(
            "METASTORE_LOCK_POLL_SECONDS",
            os.getenv("METASTORE_LOCK_POLL_SECONDS", str(DEFAULT_LOCK_POLL_SECONDS)),
        )
        lock_timeout_seconds = _parse_positive_seconds(
            "METASTORE_LOCK_TIMEOUT_SECONDS",
            os.getenv("METASTORE_LOCK_TIMEOUT_SECONDS", str(DEFAULT_LOCK_TIMEOUT_SECONDS)),
        )
        if not meta_folder_name or "/" in meta_folder_name:
            raise MetastoreConfigError(
                f"Invalid METASTORE_FOLDER_NAME value '{meta_folder_name}': "
                "expected a single non-empty folder name."
            )
        return cls(
            root_uri=normalize_root_uri(root_value),
            meta_folder_name=meta_folder_name,
            store_name=os.getenv("METASTORE_NAME") or None,
            document_format=document_format,
            lock_poll_seconds=lock_poll_seconds,
            lock_timeout_seconds=lock_timeout_seconds,
            s3_region=os.getenv("METASTORE_S3_REGION"),
            s3_profile=os.getenv("METASTORE_S3_PROFILE"),
        )

    @property
    def is_s3(self) -> bool:
        """Return whether the store root lives in S3."""
        return self.root_uri.startswith(S3_URI_SCHEME)


def normalize_root_uri(raw_value: str) -> str:
    """Resolve local roots to absolute paths and keep S3 URIs verbatim.

    Args:
        raw_value: Raw root value from environment or CLI.

    Returns:
        Normalized root URI.
    """
    if raw_value.startswith(S3_URI_SCHEME):
        return raw_value
    return str(Path(raw_value).expanduser().resolve())


def _parse_document_format(raw_value: str) -> str:
    """Validate the document format name.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Lower-cased format name.

    Raises:
        MetastoreConfigError: If the format is unsupported.
    """
    value = raw_value.strip().lower()
    if value not in SUPPORTED_DOCUMENT_FORMATS:
        supported = ", ".join(SUPPORTED_DOCUMENT_FORMATS)
        raise MetastoreConfigError(
            f"Invalid METASTORE_FORMAT value '{raw_value}': expected one of {supported}."
        )
    return value


def _parse_positive_seconds(variable: str, raw_value: str) -> float:
    """Parse a strictly positive duration in seconds.

    Args:
        variable: Environment variable name for error messages.
        raw_value: Raw string from environment.

    Returns:
        Parsed duration.

    Raises:
        MetastoreConfigError: If value is not a positive number.
    """
    try:
        seconds = float(raw_value)
    except ValueError as error:
        raise MetastoreConfigError(
            f"Invalid {variable} value: expected number, got '{raw_value}'. "
            f"Set {variable} to a positive number of seconds."
        ) from error
    if seconds <= 0:
        raise MetastoreConfigError(
            f"Invalid {variable} value: expected a positive number, got '{raw_value}'."
        )
    return seconds
