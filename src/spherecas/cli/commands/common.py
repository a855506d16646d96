"""Arguments and execution shared by the scanning commands."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path

from spherecas.errors import ConfigError, ErrorHandlingConfig, load_config, resolve_out_dir
from spherecas.pipeline.run_scan import run_scan

ENV_PREFIX = "SPHERECAS_"


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("inputs", nargs="+", metavar="input_file", help="Raw cassette dump(s) to scan.")
    parser.add_argument("--log-dir", default=None, help="Directory for run logs (default: logs).")
    parser.add_argument("--debug", action="store_true", help="Stop at the first I/O failure with a traceback.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show progress messages on the console.")


def error_config(args: argparse.Namespace) -> ErrorHandlingConfig:
    """Build the run config: defaults, then SPHERECAS_* environment, then CLI flags."""
    cfg = ErrorHandlingConfig.from_env(
        default=ErrorHandlingConfig(
            env_prefix=ENV_PREFIX,
            console_level=logging.INFO if getattr(args, "verbose", False) else logging.WARNING,
        )
    )
    if getattr(args, "debug", False):
        cfg = replace(cfg, mode="debug")
    if getattr(args, "log_dir", None):
        cfg = replace(cfg, log_dir=Path(args.log_dir))
    return cfg


def execute(args: argparse.Namespace, *, list_only: bool) -> int:
    """Scan the inputs named on the command line; return the exit status."""
    out_dir = None
    if not list_only:
        config = load_config(Path.cwd())
        cli_out_dir = Path(args.out_dir) if getattr(args, "out_dir", None) else None
        try:
            out_dir = resolve_out_dir(config, cli_out_dir)
        except ConfigError as error:
            raise ConfigError(f"spherecas extract could not resolve the output directory. {error}") from error

    outcome = run_scan(
        [Path(p) for p in args.inputs],
        cfg=error_config(args),
        out_dir=out_dir,
        list_only=list_only,
        manifest=bool(getattr(args, "manifest", False)),
    )
    return int(outcome["exit_code"])
