"""Element type command wiring for the metastore CLI."""

from __future__ import annotations

import argparse
from typing import Any

from core.errors import NotFoundError
from core.types import new_element_type
from store.metastore_sdk import MetastoreClient


def add_type_commands(subparsers: Any) -> None:
    """Register element type subcommands."""
    list_parser = subparsers.add_parser("types", help="List element types of a namespace")
    list_parser.add_argument("namespace", help="Namespace name")
    create_parser = subparsers.add_parser("create-type", help="Create an element type")
    create_parser.add_argument("namespace", help="Namespace name")
    create_parser.add_argument("name", help="Element type name")
    create_parser.add_argument("--description", default="", help="Element type description")
    delete_parser = subparsers.add_parser("delete-type", help="Delete an empty element type")
    delete_parser.add_argument("namespace", help="Namespace name")
    delete_parser.add_argument("name", help="Element type name")


def run_type_command(client: MetastoreClient, args: argparse.Namespace) -> int | None:
    """Execute an element type command; None when the command is not one."""
    engine = client.engine
    if args.command == "types":
        for element_type in engine.list_element_types(args.namespace):
            print(f"{element_type.id}\t{element_type.description or '-'}")
        return 0
    if args.command == "create-type":
        element_type = new_element_type(args.namespace, args.name, args.description)
        engine.create_element_type(args.namespace, element_type)
        print(element_type.id)
        return 0
    if args.command == "delete-type":
        element_type = engine.get_element_type_by_name(args.namespace, args.name)
        if element_type is None:
            raise NotFoundError(
                f"Element type '{args.name}' not found in namespace '{args.namespace}'."
            )
        engine.delete_element_type(args.namespace, element_type)
        return 0
    return None
