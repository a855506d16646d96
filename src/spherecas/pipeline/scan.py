"""Scan one tape dump: decode its blocks, list them and write their payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from spherecas.decode.decoder import BlockDecoder, ByteSource
from spherecas.decode.events import BlockError, BlockEvent
from spherecas.errors.guards import guard
from spherecas.errors.reporter import ErrorReporter
from spherecas.io import artifacts

LISTING_HEADER = f"\n{'BLOCK':<10}{'NAME':<10}{'LENGTH':<10}{'TYPE':<10}{'ERROR':<10}"
LISTING_RULE = "-----     ----      ------    ----      -----"


def format_listing_row(event: BlockEvent) -> str:
    """One fixed-width listing line for a block."""

    return (
        f"{event.ordinal:<10}{event.name_text:<10}{event.length:<10}"
        f"{event.kind.value:<10}{event.error.value:<10}"
    ).rstrip()


@dataclass
class ScanSession:
    """
    Per-input context threaded through block handling.

    Parameters
    ----------
    input_path
        Tape dump being scanned; artifact names derive from it.
    out_dir
        Directory for artifacts. ``None`` writes them next to the input.
    list_only
        Only list blocks, never write files.
    echo
        Output function for listing lines.
    reporter
        Optional ErrorReporter receiving block anomalies and write failures.
    stem
        Prefix for artifact names. ``None`` uses the input file name without
        its extension.

    Usage example
    -------------
        session = ScanSession(Path("tape.bin"), list_only=True)
        scan_tape(load_tape(session.input_path), session)
    """

    input_path: Path
    out_dir: Optional[Path] = None
    list_only: bool = False
    echo: Callable[[str], None] = print
    reporter: Optional[ErrorReporter] = None
    stem: Optional[str] = None
    events: List[BlockEvent] = field(default_factory=list)
    written: Dict[int, Path] = field(default_factory=dict)

    @property
    def step_name(self) -> str:
        return f"scan:{self.input_path}"

    @property
    def blocks_found(self) -> int:
        return len(self.events)

    @property
    def artifact_stem(self) -> str:
        return self.stem if self.stem is not None else artifacts.artifact_stem(self.input_path)

    def output_path(self, event: BlockEvent) -> Path:
        return artifacts.block_output_path(self.input_path, event, out_dir=self.out_dir, stem=self.artifact_stem)

    def handle(self, event: BlockEvent) -> None:
        """Sink for the decoder: list the block and, unless listing only, write it."""

        self.events.append(event)
        if self.reporter is not None:
            self.reporter.record_block(self.step_name, event)
        self.echo(format_listing_row(event))
        if self.list_only:
            return

        path = self.output_path(event)
        if self.reporter is not None:
            written = guard(
                f"write:{path}",
                self.reporter,
                lambda: artifacts.write_block(path, event.payload),
                context={"input": str(self.input_path), "block": event.ordinal},
            )
        else:
            written = artifacts.write_block(path, event.payload)

        if written is None:
            self.echo(f"\tFailed to open output file for writing {path}\n")
            return
        self.written[event.ordinal] = written
        self.echo(f"\t--> Block written to file {written}\n")

    def manifest(self) -> Dict[str, Any]:
        """JSON-ready description of every block found so far."""

        blocks = []
        for event in self.events:
            entry = event.describe()
            if event.ordinal in self.written:
                entry["file"] = str(self.written[event.ordinal])
            blocks.append(entry)
        return {"input": str(self.input_path), "blocks_found": self.blocks_found, "blocks": blocks}


def scan_tape(data: ByteSource, session: ScanSession, *, manifest: bool = False) -> Dict[str, Any]:
    """
    Decode ``data`` block by block through ``session``.

    Returns
    -------
    summary
        ``input``, ``blocks_found``, per-error counts and, when ``manifest``
        is set outside list-only mode, the manifest path.
    """

    session.echo(LISTING_HEADER)
    session.echo(LISTING_RULE)

    decoder = BlockDecoder(sink=session.handle)
    decoder.feed_all(data)

    session.echo(f"\nDone. {session.blocks_found} block(s) found.")

    summary: Dict[str, Any] = {
        "input": str(session.input_path),
        "blocks_found": session.blocks_found,
        "trailer_errors": sum(1 for e in session.events if e.error is BlockError.TRAILER),
        "checksum_errors": sum(1 for e in session.events if e.error is BlockError.CHECKSUM),
    }
    if manifest and not session.list_only:
        target_dir = session.out_dir if session.out_dir is not None else session.input_path.parent
        summary["manifest"] = str(artifacts.save_json(session.manifest(), target_dir / f"{session.artifact_stem}_blocks.json"))
    return summary
