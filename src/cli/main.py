"""Metastore CLI entry points.
This module exposes namespace, element type, and element commands.
It maps argparse commands onto storage engine calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import sys
from typing import Any, Sequence

from cli.element_command import add_element_commands, run_element_command
from cli.type_command import add_type_commands, run_type_command
from core.config import MetastoreConfig, normalize_root_uri
from core.constants import SUPPORTED_DOCUMENT_FORMATS
from core.errors import MetastoreError
from store.metastore_sdk import MetastoreClient

_NAMESPACE_COMMANDS = ("namespaces", "create-namespace", "delete-namespace")


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="metastore", description="File-backed metastore CLI")
    parser.add_argument("--root", help="Override METASTORE_ROOT for this command")
    parser.add_argument(
        "--format",
        choices=SUPPORTED_DOCUMENT_FORMATS,
        help="Override METASTORE_FORMAT for this command",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_namespace_commands(subparsers)
    add_type_commands(subparsers)
    add_element_commands(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the metastore CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args.root, args.format)
        if args.command in _NAMESPACE_COMMANDS:
            return _run_namespace_command(client, args)
        exit_code = run_type_command(client, args)
        if exit_code is None:
            exit_code = run_element_command(client, args)
    except MetastoreError as error:
        print(f"error={error}", file=sys.stderr)
        return 1
    if exit_code is None:
        parser.error(f"Unsupported command: {args.command}")
        return 2
    return exit_code


def _build_client(root: str | None, document_format: str | None) -> MetastoreClient:
    """Build SDK client with optional root and format overrides.

    Args:
        root: Optional store root override.
        document_format: Optional document format override.

    Returns:
        Configured SDK client.
    """
    config = MetastoreConfig.from_env()
    if root:
        config = replace(config, root_uri=normalize_root_uri(root))
    if document_format:
        config = replace(config, document_format=document_format)
    return MetastoreClient(config)


def _add_namespace_commands(subparsers: Any) -> None:
    """Register namespace subcommands."""
    subparsers.add_parser("namespaces", help="List namespaces")
    create_parser = subparsers.add_parser("create-namespace", help="Create a namespace")
    create_parser.add_argument("namespace", help="Namespace name")
    delete_parser = subparsers.add_parser("delete-namespace", help="Delete an empty namespace")
    delete_parser.add_argument("namespace", help="Namespace name")


def _run_namespace_command(client: MetastoreClient, args: argparse.Namespace) -> int:
    """Handle namespace commands.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    engine = client.engine
    if args.command == "namespaces":
        for namespace in engine.list_namespaces():
            print(namespace)
    elif args.command == "create-namespace":
        engine.create_namespace(args.namespace)
        print(args.namespace)
    else:
        engine.delete_namespace(args.namespace)
    return 0
