"""S3 URI parsing helpers.

This module centralizes S3 root URI parsing for the store layer.
It keeps URI validation behavior consistent across backends.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.constants import S3_URI_SCHEME
from core.errors import MetastoreConfigError


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 location model."""

    bucket: str
    prefix: str


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an S3 store root URI.

    Args:
        uri: URI in format ``s3://bucket`` or ``s3://bucket/prefix``.

    Returns:
        Parsed bucket and prefix pair; prefix has no surrounding slashes.

    Raises:
        MetastoreConfigError: If the URI has no bucket.
    """
    if not uri.startswith(S3_URI_SCHEME):
        raise MetastoreConfigError(
            f"Invalid S3 URI '{uri}': expected s3://bucket/prefix. "
            "Prefix the store root with s3:// to use object storage."
        )
    stripped_uri = uri.removeprefix(S3_URI_SCHEME)
    bucket, _, prefix = stripped_uri.partition("/")
    if not bucket:
        raise MetastoreConfigError(
            f"Invalid S3 URI '{uri}': expected s3://bucket/prefix. Provide a bucket name."
        )
    return S3Location(bucket=bucket, prefix=prefix.strip("/"))
