"""Unit tests for storage engine element operations."""

from __future__ import annotations

import pytest

from core.errors import (
    DecodeError,
    ElementExistsError,
    ForeignElementTypeError,
    NotFoundError,
    StorageError,
)
from core.types import new_attribute, new_element, new_element_type
from store.local_filesystem import LocalFileSystem
from store.storage_engine import StorageEngine
from store.xml_codec import XmlRecordCodec
from tests.engine_factory import build_engine
from tests.fixture_paths import fixture_path


def _engine_with_type(tmp_path):
    engine = build_engine(tmp_path)
    engine.create_namespace("ns")
    element_type = new_element_type("ns", "Connections", "Database connections")
    engine.create_element_type("ns", element_type)
    return engine, element_type


def _type_folder(tmp_path):
    return tmp_path / "metastore" / "ns" / "Connections"


def _write_document(tmp_path, element_id: str, name: str, value: str = "") -> None:
    data = XmlRecordCodec().serialize(new_element(name, value=value))
    (_type_folder(tmp_path) / f"{element_id}.xml").write_bytes(data)


def test_create_element_round_trips_payload(tmp_path) -> None:
    """Stored elements should load with their nested attributes."""
    engine, element_type = _engine_with_type(tmp_path)
    element = new_element(
        "warehouse",
        children=[
            new_attribute("host", "db.example.com"),
            new_attribute("pool", children=[new_attribute("size", 8)]),
        ],
    )

    engine.create_element("ns", element_type, element)
    loaded = engine.get_element("ns", element_type, "warehouse")

    assert element.id == "warehouse" and loaded is not None
    assert loaded.get_child("pool").get_child("size").value == 8
    assert loaded.metastore_name == engine.name


def test_create_element_with_explicit_id_uses_id_for_document(tmp_path) -> None:
    """The document is named after the id, then the handle takes its name."""
    engine, element_type = _engine_with_type(tmp_path)
    element = new_element("Warehouse", element_id="wh-01")

    engine.create_element("ns", element_type, element)

    assert (_type_folder(tmp_path) / "wh-01.xml").is_file() and element.id == "Warehouse"


def test_create_duplicate_element_reports_existing(tmp_path) -> None:
    """A second create with the same id should fail and list the current elements."""
    engine, element_type = _engine_with_type(tmp_path)
    engine.create_element("ns", element_type, new_element("warehouse", value="first"))

    with pytest.raises(ElementExistsError) as error:
        engine.create_element("ns", element_type, new_element("warehouse", value="second"))

    assert [item.value for item in error.value.existing] == ["first"]


def test_list_elements_excludes_type_document(tmp_path) -> None:
    """Only element documents should be listed."""
    engine, element_type = _engine_with_type(tmp_path)
    engine.create_element("ns", element_type, new_element("warehouse"))
    (_type_folder(tmp_path) / "notes.txt").write_text("ignored", encoding="utf-8")

    element_ids = engine.list_element_ids("ns", element_type)

    assert element_ids == ["warehouse"]


def test_list_elements_collects_decode_errors(tmp_path) -> None:
    """Collecting mode should skip corrupt documents and report them."""
    engine, element_type = _engine_with_type(tmp_path)
    engine.create_element("ns", element_type, new_element("warehouse"))
    (_type_folder(tmp_path) / "broken.xml").write_bytes(
        fixture_path("documents/truncated_element.xml").read_bytes()
    )
    errors: list[DecodeError] = []

    elements = engine.list_elements("ns", element_type, errors)

    assert [item.id for item in elements] == ["warehouse"]
    assert len(errors) == 1 and "broken.xml" in str(errors[0])


def test_list_elements_strict_mode_raises(tmp_path) -> None:
    """Without an error list the first decode failure should propagate."""
    engine, element_type = _engine_with_type(tmp_path)
    (_type_folder(tmp_path) / "broken.xml").write_bytes(b"<element>")

    with pytest.raises(DecodeError):
        engine.list_elements("ns", element_type)


def test_get_missing_element_returns_none(tmp_path) -> None:
    """Absent elements should load as None."""
    engine, element_type = _engine_with_type(tmp_path)

    assert engine.get_element("ns", element_type, "ghost") is None


def test_get_element_reads_legacy_document(tmp_path) -> None:
    """Documents written by other tools should decode."""
    engine, element_type = _engine_with_type(tmp_path)
    (_type_folder(tmp_path) / "warehouse.xml").write_bytes(
        fixture_path("documents/connection_element.xml").read_bytes()
    )

    loaded = engine.get_element("ns", element_type, "warehouse")

    assert loaded is not None and loaded.get_child("port").value == 5432


def test_get_element_by_name_ignores_case(tmp_path) -> None:
    """Name lookups should match regardless of case."""
    engine, element_type = _engine_with_type(tmp_path)
    engine.create_element("ns", element_type, new_element("Warehouse"))

    loaded = engine.get_element_by_name("ns", element_type, "WAREHOUSE")

    assert loaded is not None and loaded.id == "Warehouse"


def test_get_element_by_name_confirms_cached_id(tmp_path) -> None:
    """A stale cached id should not hide an element moved on disk."""
    engine, element_type = _engine_with_type(tmp_path)
    engine.create_element("ns", element_type, new_element("alpha"))
    assert engine.get_element_by_name("ns", element_type, "alpha").id == "alpha"
    (_type_folder(tmp_path) / "alpha.xml").unlink()
    _write_document(tmp_path, "other-id", "alpha")

    loaded = engine.get_element_by_name("ns", element_type, "alpha")

    assert loaded is not None and loaded.id == "other-id"


def test_get_element_by_name_rejects_renamed_cached_document(tmp_path) -> None:
    """A cached id whose document now holds another name should not match."""
    engine, element_type = _engine_with_type(tmp_path)
    engine.create_element("ns", element_type, new_element("alpha"))
    engine.get_element_by_name("ns", element_type, "alpha")
    _write_document(tmp_path, "alpha", "beta")

    assert engine.get_element_by_name("ns", element_type, "alpha") is None


def test_get_element_sees_external_rewrite(tmp_path) -> None:
    """Rewritten documents should never be served from the cache."""
    engine, element_type = _engine_with_type(tmp_path)
    engine.create_element("ns", element_type, new_element("alpha", value="one"))
    engine.get_element("ns", element_type, "alpha")
    _write_document(tmp_path, "alpha", "alpha", value="two")

    loaded = engine.get_element("ns", element_type, "alpha")

    assert loaded is not None and loaded.value == "two"


def test_returned_elements_are_independent_copies(tmp_path) -> None:
    """Mutating a loaded element should not affect later loads."""
    engine, element_type = _engine_with_type(tmp_path)
    engine.create_element("ns", element_type, new_element("alpha", value="one"))
    first = engine.get_element("ns", element_type, "alpha")
    first.value = "mutated"

    second = engine.get_element("ns", element_type, "alpha")

    assert second.value == "one"


def test_update_element_rewrites_in_place(tmp_path) -> None:
    """Updates without a name change should keep the document."""
    engine, element_type = _engine_with_type(tmp_path)
    engine.create_element("ns", element_type, new_element("alpha", value="one"))
    element = engine.get_element("ns", element_type, "alpha")
    element.value = "two"

    engine.update_element("ns", element_type, "alpha", element)

    assert engine.get_element("ns", element_type, "alpha").value == "two"


def test_update_element_rename_moves_document(tmp_path) -> None:
    """Changing the name should move the document to the new id."""
    engine, element_type = _engine_with_type(tmp_path)
    engine.create_element("ns", element_type, new_element("alpha"))
    element = engine.get_element("ns", element_type, "alpha")
    element.name = "beta"

    engine.update_element("ns", element_type, "alpha", element)

    assert element.id == "beta" and engine.list_element_ids("ns", element_type) == ["beta"]
    assert engine.get_element_by_name("ns", element_type, "beta").id == "beta"


def test_update_element_rename_onto_existing_raises(tmp_path) -> None:
    """A rename should not overwrite another element."""
    engine, element_type = _engine_with_type(tmp_path)
    engine.create_element("ns", element_type, new_element("alpha"))
    engine.create_element("ns", element_type, new_element("beta"))
    element = engine.get_element("ns", element_type, "alpha")
    element.name = "beta"

    with pytest.raises(ElementExistsError):
        engine.update_element("ns", element_type, "alpha", element)

    assert sorted(engine.list_element_ids("ns", element_type)) == ["alpha", "beta"]


def test_update_missing_element_raises(tmp_path) -> None:
    """Updating an unknown element should fail."""
    engine, element_type = _engine_with_type(tmp_path)

    with pytest.raises(NotFoundError):
        engine.update_element("ns", element_type, "ghost", new_element("ghost"))


def test_update_with_foreign_element_type_raises(tmp_path) -> None:
    """Type handles from another store should be rejected untouched."""
    engine, element_type = _engine_with_type(tmp_path / "first")
    engine.create_element("ns", element_type, new_element("alpha", value="one"))
    other, foreign_type = _engine_with_type(tmp_path / "second")

    with pytest.raises(ForeignElementTypeError):
        engine.update_element("ns", foreign_type, "alpha", new_element("alpha", value="two"))

    assert engine.get_element("ns", element_type, "alpha").value == "one"
    assert other.name != engine.name


def test_update_with_unstamped_element_type_raises(tmp_path) -> None:
    """Freshly built type handles must be retrieved from the store first."""
    engine, _ = _engine_with_type(tmp_path)
    engine.create_element("ns", new_element_type("ns", "Connections"), new_element("alpha"))

    with pytest.raises(ForeignElementTypeError):
        engine.update_element(
            "ns", new_element_type("ns", "Connections"), "alpha", new_element("alpha")
        )


def test_delete_element_removes_document(tmp_path) -> None:
    """Deleted elements should no longer load."""
    engine, element_type = _engine_with_type(tmp_path)
    engine.create_element("ns", element_type, new_element("alpha"))

    engine.delete_element("ns", element_type, "alpha")

    assert engine.get_element("ns", element_type, "alpha") is None
    assert engine.get_element_by_name("ns", element_type, "alpha") is None


def test_delete_missing_element_is_noop(tmp_path) -> None:
    """Deleting an absent element should succeed quietly."""
    engine, element_type = _engine_with_type(tmp_path)

    engine.delete_element("ns", element_type, "ghost")

    assert engine.list_element_ids("ns", element_type) == []


def test_elements_round_trip_in_json_format(tmp_path) -> None:
    """JSON stores should persist typed attribute values."""
    engine = build_engine(tmp_path, document_format="json")
    engine.create_namespace("ns")
    element_type = new_element_type("ns", "Connections")
    engine.create_element_type("ns", element_type)
    engine.create_element(
        "ns", element_type, new_element("alpha", children=[new_attribute("ratio", 0.5)])
    )

    loaded = engine.get_element("ns", element_type, "alpha")

    assert (_type_folder(tmp_path) / "alpha.json").is_file()
    assert loaded is not None and loaded.get_child("ratio").value == 0.5


def test_create_element_with_xml_illegal_value_writes_nothing(tmp_path) -> None:
    """Payload text that XML cannot hold should fail before any write."""
    engine, element_type = _engine_with_type(tmp_path)

    with pytest.raises(DecodeError):
        engine.create_element("ns", element_type, new_element("alpha", value="bell\x07"))

    assert engine.list_element_ids("ns", element_type) == []


class _PinnedDocumentFileSystem(LocalFileSystem):
    """Local backend that refuses to delete one document."""

    def __init__(self, root, pinned_suffix: str) -> None:
        super().__init__(root)
        self._pinned_suffix = pinned_suffix

    def delete(self, path: str) -> bool:
        if path.endswith(self._pinned_suffix):
            return False
        return super().delete(path)


def test_update_element_rename_rolls_back_when_old_document_stays(tmp_path) -> None:
    """A refused removal of the old document should not leave two copies."""
    engine = StorageEngine(_PinnedDocumentFileSystem(tmp_path, "/alpha.xml"), XmlRecordCodec())
    engine.create_namespace("ns")
    element_type = new_element_type("ns", "Connections")
    engine.create_element_type("ns", element_type)
    engine.create_element("ns", element_type, new_element("alpha"))
    element = engine.get_element("ns", element_type, "alpha")
    element.name = "beta"

    with pytest.raises(StorageError):
        engine.update_element("ns", element_type, "alpha", element)

    assert engine.list_element_ids("ns", element_type) == ["alpha"]
    assert engine.get_element_by_name("ns", element_type, "beta") is None
