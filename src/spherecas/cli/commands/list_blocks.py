"""`spherecas list` command implementation."""

from __future__ import annotations

import argparse

from spherecas.cli.commands.common import add_common_arguments, execute


def add_subparser(subparsers: argparse._SubParsersAction) -> None:
    """Register the `list` command."""
    parser = subparsers.add_parser("list", help="Only list the blocks found in the input.")
    add_common_arguments(parser)
    parser.set_defaults(command="list")


def run(args: argparse.Namespace) -> int:
    """Execute the `list` command."""
    return execute(args, list_only=True)
