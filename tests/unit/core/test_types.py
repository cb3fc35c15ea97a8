"""Unit tests for record models."""

from __future__ import annotations

from core.types import RecordKind, new_attribute, new_element, new_element_type


def test_new_element_type_has_no_id() -> None:
    """Unsaved element types should leave the id to the store."""
    element_type = new_element_type("ns", "Connections", "Database connections")

    assert element_type.kind is RecordKind.ELEMENT_TYPE and element_type.id is None


def test_add_child_replaces_same_id() -> None:
    """Adding an attribute with an existing id should replace it."""
    element = new_element("db", children=[new_attribute("host", "a")])

    element.add_child(new_attribute("host", "b"))

    assert [child.value for child in element.children] == ["b"]


def test_get_child_walks_nested_attributes() -> None:
    """Attributes should resolve direct children by id."""
    attribute = new_attribute("pool", children=[new_attribute("size", 4)])

    child = attribute.get_child("size")

    assert child is not None and child.value == 4 and attribute.get_child("other") is None
