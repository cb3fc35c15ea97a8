"""Element command wiring for the metastore CLI."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from core.errors import DecodeError, NotFoundError
from core.types import Attribute, Record
from store.metastore_sdk import MetastoreClient


def add_element_commands(subparsers: Any) -> None:
    """Register element subcommands."""
    list_parser = subparsers.add_parser("elements", help="List elements of an element type")
    list_parser.add_argument("namespace", help="Namespace name")
    list_parser.add_argument("element_type", help="Element type name")
    show_parser = subparsers.add_parser("show", help="Print one element as JSON")
    show_parser.add_argument("namespace", help="Namespace name")
    show_parser.add_argument("element_type", help="Element type name")
    show_parser.add_argument("element_id", help="Element id")
    delete_parser = subparsers.add_parser("delete-element", help="Delete an element")
    delete_parser.add_argument("namespace", help="Namespace name")
    delete_parser.add_argument("element_type", help="Element type name")
    delete_parser.add_argument("element_id", help="Element id")


def run_element_command(client: MetastoreClient, args: argparse.Namespace) -> int | None:
    """Execute an element command; None when the command is not one."""
    if args.command not in ("elements", "show", "delete-element"):
        return None
    engine = client.engine
    element_type = engine.get_element_type_by_name(args.namespace, args.element_type)
    if element_type is None:
        raise NotFoundError(
            f"Element type '{args.element_type}' not found in namespace '{args.namespace}'."
        )
    if args.command == "elements":
        errors: list[DecodeError] = []
        for element in engine.list_elements(args.namespace, element_type, errors):
            print(f"{element.id}\t{element.name}")
        for error in errors:
            print(f"skipped={error}", file=sys.stderr)
        return 0
    if args.command == "show":
        element = engine.get_element(args.namespace, element_type, args.element_id)
        if element is None:
            raise NotFoundError(f"Element '{args.element_id}' not found.")
        print(json.dumps(_element_to_dict(element), indent=2, sort_keys=True))
        return 0
    engine.delete_element(args.namespace, element_type, args.element_id)
    return 0


def _element_to_dict(element: Record) -> dict[str, Any]:
    return {
        "id": element.id,
        "name": element.name,
        "value": element.value,
        "children": [_attribute_to_dict(child) for child in element.children],
    }


def _attribute_to_dict(attribute: Attribute) -> dict[str, Any]:
    return {
        "id": attribute.id,
        "value": attribute.value,
        "children": [_attribute_to_dict(child) for child in attribute.children],
    }
