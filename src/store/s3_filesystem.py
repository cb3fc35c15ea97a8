"""S3 object storage filesystem backend.

This module emulates folders on S3 with zero-byte ``key/`` marker
objects so the engine can keep its directory-tree layout on a bucket.
"""

from __future__ import annotations

from typing import Any

from core.config import MetastoreConfig
from core.constants import S3_FOLDER_MARKER
from core.errors import MetastoreDependencyError, StorageError
from core.s3_uri import parse_s3_uri
from core.types import FileEntry

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}
_PRECONDITION_CODES = {"PreconditionFailed", "412", "ConditionalRequestConflict", "409"}


class S3FileSystem:
    """Filesystem backend rooted at an S3 bucket prefix."""

    def __init__(self, bucket: str, prefix: str, client: Any) -> None:
        """Initialize backend with an S3 client.

        Args:
            bucket: Bucket name.
            prefix: Key prefix acting as the store root.
            client: Boto3 S3 client or a compatible object.
        """
        self._bucket = bucket
        self._prefix = prefix.strip("/")
        self._client = client

    @classmethod
    def from_config(cls, config: MetastoreConfig) -> "S3FileSystem":
        """Build an S3 backend from runtime config.

        Args:
            config: Runtime config with an ``s3://`` root.

        Returns:
            Configured backend.

        Raises:
            MetastoreDependencyError: If boto3 is missing.
        """
        location = parse_s3_uri(config.root_uri)
        return cls(location.bucket, location.prefix, _create_s3_client(config))

    @property
    def uri(self) -> str:
        if self._prefix:
            return f"s3://{self._bucket}/{self._prefix}"
        return f"s3://{self._bucket}"

    def join(self, *parts: str) -> str:
        return "/".join(part.strip("/") for part in parts if part)

    def exists(self, path: str) -> bool:
        if self._head(self._key(path)) is not None:
            return True
        return self.is_folder(path)

    def is_folder(self, path: str) -> bool:
        if not path:
            return True
        response = self._call(
            "list",
            path,
            self._client.list_objects_v2,
            Bucket=self._bucket,
            Prefix=self._folder_key(path),
            MaxKeys=1,
        )
        return bool(response.get("Contents") or response.get("CommonPrefixes"))

    def create_folder(self, path: str) -> None:
        self._call(
            "create folder",
            path,
            self._client.put_object,
            Bucket=self._bucket,
            Key=self._folder_key(path),
            Body=b"",
        )

    def delete(self, path: str) -> bool:
        if self.is_folder(path):
            if self.list_children(path):
                return False
            target_key = self._folder_key(path)
        else:
            target_key = self._key(path)
        self._call(
            "delete",
            path,
            self._client.delete_object,
            Bucket=self._bucket,
            Key=target_key,
        )
        return True

    def list_children(self, path: str) -> list[FileEntry]:
        folder_key = self._folder_key(path) if path or self._prefix else ""
        entries: list[FileEntry] = []
        request: dict[str, Any] = {
            "Bucket": self._bucket,
            "Prefix": folder_key,
            "Delimiter": S3_FOLDER_MARKER,
        }
        while True:
            response = self._call("list", path, self._client.list_objects_v2, **request)
            for common_prefix in response.get("CommonPrefixes", []):
                name = common_prefix["Prefix"][len(folder_key) :].rstrip(S3_FOLDER_MARKER)
                entries.append(_entry(self.join(path, name), name, is_folder=True))
            for item in response.get("Contents", []):
                name = item["Key"][len(folder_key) :]
                if not name:
                    continue
                entries.append(_entry(self.join(path, name), name, is_folder=False))
            if not response.get("IsTruncated"):
                return entries
            request["ContinuationToken"] = response["NextContinuationToken"]

    def read_bytes(self, path: str) -> bytes:
        response = self._call(
            "read",
            path,
            self._client.get_object,
            Bucket=self._bucket,
            Key=self._key(path),
        )
        return response["Body"].read()

    def write_bytes(self, path: str, data: bytes) -> None:
        self._call(
            "write",
            path,
            self._client.put_object,
            Bucket=self._bucket,
            Key=self._key(path),
            Body=data,
        )

    def create_exclusive(self, path: str, data: bytes) -> bool:
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=self._key(path),
                Body=data,
                IfNoneMatch="*",
            )
        except Exception as error:
            if _error_code(error) in _PRECONDITION_CODES:
                return False
            raise StorageError(
                f"Unable to create {self._describe(path)}: {error}. "
                "The endpoint must support conditional writes for store locking."
            ) from error
        return True

    def last_modified(self, path: str) -> int:
        response = self._head(self._key(path))
        if response is None:
            response = self._head(self._folder_key(path))
        if response is None:
            raise StorageError(f"Unable to stat {self._describe(path)}: object does not exist")
        return int(response["LastModified"].timestamp() * 1_000_000_000)

    def _head(self, key: str) -> dict[str, Any] | None:
        try:
            return self._client.head_object(Bucket=self._bucket, Key=key)
        except Exception as error:
            if _error_code(error) in _NOT_FOUND_CODES:
                return None
            raise StorageError(f"Unable to stat s3://{self._bucket}/{key}: {error}") from error

    def _call(self, action: str, path: str, operation: Any, **kwargs: Any) -> dict[str, Any]:
        try:
            return operation(**kwargs)
        except Exception as error:
            raise StorageError(
                f"Unable to {action} {self._describe(path)}: {error}. "
                "Check AWS credentials and bucket permissions."
            ) from error

    def _key(self, path: str) -> str:
        return self.join(self._prefix, path)

    def _folder_key(self, path: str) -> str:
        return self._key(path) + S3_FOLDER_MARKER

    def _describe(self, path: str) -> str:
        return f"s3://{self._bucket}/{self._key(path)}"


def _entry(path: str, name: str, is_folder: bool) -> FileEntry:
    return FileEntry(name=name, path=path, is_folder=is_folder, is_hidden=name.startswith("."))


def _error_code(error: Exception) -> str:
    """Extract the service error code from a botocore-style exception."""
    response = getattr(error, "response", None)
    if not isinstance(response, dict):
        return ""
    return str(response.get("Error", {}).get("Code", ""))


def _create_s3_client(config: MetastoreConfig) -> Any:
    """Create boto3 S3 client for the store root.

    Args:
        config: Runtime config with optional session settings.

    Returns:
        Boto3 S3 client.

    Raises:
        MetastoreDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise MetastoreDependencyError(
            "S3 store roots require boto3, but it is not installed. "
            "Install the 's3' extra to use s3:// roots."
        ) from error
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")
