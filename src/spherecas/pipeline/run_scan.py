from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

import numpy as np

from spherecas.errors import ErrorHandlingConfig, ErrorReporter, Pipeline, configure_logging
from spherecas.io.artifacts import artifact_stem, unique_stems
from spherecas.io.tape import load_tape
from spherecas.pipeline.scan import ScanSession, scan_tape


def run_scan(
    inputs: Sequence[Path],
    *,
    cfg: ErrorHandlingConfig,
    out_dir: Optional[Path] = None,
    list_only: bool = False,
    manifest: bool = False,
    echo: Callable[[str], None] = print,
) -> Dict[str, Any]:
    """
    Scan every input tape dump and report the outcome.

    Each input gets a ``load:<name>`` step and a ``scan:<name>`` step that
    depends on it, so an unreadable file skips its scan while the remaining
    inputs still run (in "run" mode).

    Inputs whose artifacts would share a directory and a name prefix get
    distinct prefixes (see ``unique_stems``) so no block overwrites another.

    Returns
    -------
    dict
        ``exit_code`` (0 unless an I/O step failed), ``reporter`` and the
        per-input ``summaries``.
    """

    cfg = replace(cfg, run_id=cfg.resolved_run_id())
    logger, event_logger = configure_logging(cfg=cfg)
    reporter = ErrorReporter(cfg=cfg, logger=logger, event_logger=event_logger)
    pipe = Pipeline(reporter)

    loaded: Dict[str, np.ndarray] = {}
    summaries: Dict[str, Dict[str, Any]] = {}
    seen: Set[str] = set()
    unique_inputs: List[Path] = []
    for path in inputs:
        if str(path) in seen:
            logger.warning("Ignoring duplicate input %s", path)
            continue
        seen.add(str(path))
        unique_inputs.append(path)

    stems = unique_stems(unique_inputs, out_dir=out_dir)
    for path, stem in zip(unique_inputs, stems):
        if not list_only and stem != artifact_stem(path):
            logger.warning("Output names for %s clash with an earlier input; writing them as %s-*.bin", path, stem)
        session = ScanSession(
            path, out_dir=out_dir, list_only=list_only, echo=echo, reporter=reporter, stem=stem
        )
        load_name = f"load:{path}"
        scan_name = session.step_name

        def _load(path: Path = path, key: str = load_name) -> int:
            logger.info("Reading %s", path, extra={"step": key})
            loaded[key] = load_tape(path)
            return int(loaded[key].size)

        def _scan(session: ScanSession = session, key: str = load_name) -> Dict[str, Any]:
            summary = scan_tape(loaded.pop(key), session, manifest=manifest)
            summaries[str(session.input_path)] = summary
            logger.info(
                "%s: %d block(s), %d trailer error(s), %d checksum error(s)",
                session.input_path.name,
                summary["blocks_found"],
                summary["trailer_errors"],
                summary["checksum_errors"],
                extra={"step": session.step_name},
            )
            return summary

        context = {"input": str(path)}
        pipe.add(load_name, _load, context=context)
        pipe.add(scan_name, _scan, deps=[load_name], context=context)

    pipe.run()
    if len(inputs) > 1 or reporter.has_failures():
        reporter.print_summary()
    return {"exit_code": reporter.exit_code(), "reporter": reporter, "summaries": summaries}

