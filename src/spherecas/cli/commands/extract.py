"""`spherecas extract` command implementation."""

from __future__ import annotations

import argparse

from spherecas.cli.commands.common import add_common_arguments, execute


def add_subparser(subparsers: argparse._SubParsersAction) -> None:
    """Register the `extract` command."""
    parser = subparsers.add_parser("extract", help="List blocks and write each one to a .bin file.")
    add_common_arguments(parser)
    parser.add_argument("--out-dir", default=None, help="Output directory (default: next to each input).")
    parser.add_argument("-l", "--list", dest="list_only", action="store_true", help="Only list the blocks found in input.")
    parser.add_argument("--manifest", action="store_true", help="Also write <input>_blocks.json describing every block.")
    parser.set_defaults(command="extract")


def run(args: argparse.Namespace) -> int:
    """Execute the `extract` command."""
    return execute(args, list_only=bool(getattr(args, "list_only", False)))
