from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional, TypeVar

from .reporter import ErrorReporter

T = TypeVar("T")


@contextmanager
def step(
    step_name: str,
    reporter: ErrorReporter,
    *,
    context: Optional[Mapping[str, Any]] = None,
) -> Iterator[None]:
    """
    Run a block of code as the named step ``step_name``.

    An exception inside the block marks the step FAILED. In debug mode it
    then propagates; in run mode the caller continues after the block, which
    is how one unreadable tape leaves the other inputs untouched.

    Usage example
    -------------
        with step("load:tape.bin", reporter, context={"input": "tape.bin"}):
            data = load_tape(path)
    """
    try:
        yield
    except Exception as exc:
        reporter.mark_failed(step_name=step_name, exc=exc, context=context)
        if reporter.cfg.mode == "debug":
            raise
    else:
        reporter.mark_ok(step_name)


def guard(
    step_name: str,
    reporter: ErrorReporter,
    fn: Callable[[], T],
    *,
    context: Optional[Mapping[str, Any]] = None,
) -> Optional[T]:
    """
    Call ``fn`` as the named step and return its result, or ``None`` if it
    failed in run mode.

    Usage example
    -------------
        written = guard(f"write:{path}", reporter, lambda: write_block(path, payload))
        if written is None:
            echo(f"Failed to open output file for writing {path}")
    """
    try:
        result = fn()
    except Exception as exc:
        reporter.mark_failed(step_name=step_name, exc=exc, context=context)
        if reporter.cfg.mode == "debug":
            raise
        return None
    reporter.mark_ok(step_name)
    return result
