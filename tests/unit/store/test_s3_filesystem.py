"""Unit tests for the S3 filesystem backend."""

from __future__ import annotations

import pytest

from core.errors import DecodeError, ElementExistsError, StorageError
from core.types import new_attribute, new_element, new_element_type
from store.s3_filesystem import S3FileSystem
from store.storage_engine import StorageEngine
from store.xml_codec import XmlRecordCodec
from tests.s3_stub import FakeS3Client


def test_create_folder_writes_marker_object() -> None:
    """Folders should be emulated with trailing-slash marker keys."""
    client = FakeS3Client()
    filesystem = S3FileSystem("bucket", "stores/demo", client)

    filesystem.create_folder("metastore/ns")

    assert "stores/demo/metastore/ns/" in client.objects and filesystem.is_folder("metastore/ns")


def test_list_children_follows_continuation_tokens() -> None:
    """Listings should collect every page of a truncated response."""
    client = FakeS3Client(page_size=2)
    filesystem = S3FileSystem("bucket", "root", client)
    for name in ("a", "b", "c"):
        filesystem.create_folder(f"meta/{name}")
    filesystem.write_bytes("meta/d.xml", b"<element/>")

    entries = filesystem.list_children("meta")

    assert sorted((entry.name, entry.is_folder) for entry in entries) == [
        ("a", True),
        ("b", True),
        ("c", True),
        ("d.xml", False),
    ]


def test_delete_refuses_non_empty_folder() -> None:
    """Folder markers should only be removed once the folder is empty."""
    filesystem = S3FileSystem("bucket", "root", FakeS3Client())
    filesystem.create_folder("meta/ns")
    filesystem.write_bytes("meta/ns/file.xml", b"x")

    results = [filesystem.delete("meta/ns"), filesystem.delete("meta/ns/file.xml")]

    assert results == [False, True] and filesystem.delete("meta/ns")


def test_create_exclusive_uses_conditional_put() -> None:
    """A second exclusive create should report the existing object."""
    filesystem = S3FileSystem("bucket", "root", FakeS3Client())

    results = [filesystem.create_exclusive("lock", b"a"), filesystem.create_exclusive("lock", b"b")]

    assert results == [True, False] and filesystem.read_bytes("lock") == b"a"


def test_create_exclusive_requires_conditional_writes() -> None:
    """Endpoints without conditional puts cannot host a store lock."""
    filesystem = S3FileSystem("bucket", "root", FakeS3Client(conditional_writes=False))

    with pytest.raises(StorageError, match="conditional writes"):
        filesystem.create_exclusive("lock", b"a")


def test_last_modified_falls_back_to_folder_marker() -> None:
    """Folder timestamps should come from their marker objects."""
    filesystem = S3FileSystem("bucket", "root", FakeS3Client())
    filesystem.create_folder("meta/ns")

    assert filesystem.last_modified("meta/ns") > 0


def test_read_missing_object_raises_storage_error() -> None:
    """Missing objects should surface as storage errors."""
    filesystem = S3FileSystem("bucket", "root", FakeS3Client())

    with pytest.raises(StorageError):
        filesystem.read_bytes("absent.xml")


def test_storage_engine_round_trips_on_s3() -> None:
    """The engine should run unchanged on the S3 backend."""
    client = FakeS3Client()
    engine = StorageEngine(S3FileSystem("bucket", "stores", client), XmlRecordCodec())
    engine.create_namespace("ns")
    element_type = new_element_type("ns", "Connections", "Database connections")
    engine.create_element_type("ns", element_type)
    engine.create_element(
        "ns", element_type, new_element("warehouse", children=[new_attribute("port", 5432)])
    )

    loaded = engine.get_element("ns", element_type, "warehouse")

    assert loaded is not None and loaded.get_child("port").value == 5432
    assert engine.name == "VFS Metastore: s3://bucket/stores"
    assert "stores/metastore.lock" not in client.objects


def test_storage_engine_rejects_duplicate_element_on_s3() -> None:
    """Duplicate creates should fail on object storage too."""
    engine = StorageEngine(S3FileSystem("bucket", "", FakeS3Client()), XmlRecordCodec())
    engine.create_namespace("ns")
    element_type = new_element_type("ns", "Connections")
    engine.create_element_type("ns", element_type)
    engine.create_element("ns", element_type, new_element("warehouse"))

    with pytest.raises(ElementExistsError):
        engine.create_element("ns", element_type, new_element("warehouse"))


def test_storage_engine_reports_corrupt_object_on_s3() -> None:
    """Corrupt element objects should raise decode errors in strict mode."""
    client = FakeS3Client()
    engine = StorageEngine(S3FileSystem("bucket", "root", client), XmlRecordCodec())
    engine.create_namespace("ns")
    element_type = new_element_type("ns", "Connections")
    engine.create_element_type("ns", element_type)
    client.put_object(Bucket="bucket", Key="root/metastore/ns/Connections/bad.xml", Body=b"<")

    with pytest.raises(DecodeError):
        engine.list_elements("ns", element_type)
