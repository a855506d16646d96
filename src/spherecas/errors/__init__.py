"""
errors subpackage: error handling + logging for tape scanning runs.

Key primitives
--------------
- ErrorHandlingConfig: run config (mode, log paths, JSONL, etc.)
- configure_logging(): console + file logging, optional JSONL event logger
- ErrorReporter: captures failed/skipped steps and per-block anomalies
- step(): context manager to wrap a named step
- guard(): one-liner wrapper for callables
- Pipeline: dependency-aware runner (a failed load skips its scan)
"""

from .config import ConfigError, ErrorHandlingConfig, load_config, resolve_out_dir
from .logging import configure_logging, JsonlEventLogger
from .reporter import ErrorReporter
from .guards import step, guard
from .pipeline import Pipeline
from .types import TapeReadError

__all__ = [
    "ConfigError",
    "ErrorHandlingConfig",
    "JsonlEventLogger",
    "TapeReadError",
    "configure_logging",
    "load_config",
    "resolve_out_dir",
    "ErrorReporter",
    "step",
    "guard",
    "Pipeline",
]
