"""Unit tests for S3 URI parsing."""

from __future__ import annotations

import pytest

from core.errors import MetastoreConfigError
from core.s3_uri import parse_s3_uri


def test_parse_s3_uri_splits_bucket_and_prefix() -> None:
    """Bucket and prefix should be separated without surrounding slashes."""
    location = parse_s3_uri("s3://bucket/stores/demo/")

    assert (location.bucket, location.prefix) == ("bucket", "stores/demo")


def test_parse_s3_uri_allows_bucket_root() -> None:
    """A bare bucket URI should yield an empty prefix."""
    location = parse_s3_uri("s3://bucket")

    assert (location.bucket, location.prefix) == ("bucket", "")


@pytest.mark.parametrize("uri", ["s3:///prefix", "/local/path"])
def test_parse_s3_uri_rejects_invalid_uris(uri: str) -> None:
    """URIs without a bucket or scheme should fail."""
    with pytest.raises(MetastoreConfigError):
        parse_s3_uri(uri)
