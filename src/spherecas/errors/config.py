from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional
import os
import uuid

import yaml


class ConfigError(ValueError):
    """Raised when runtime configuration is missing or invalid."""


CONFIG_FILENAMES = ("config.yaml", "spherecas.yaml")


def load_config(root: Path) -> dict[str, Any]:
    """
    Load spherecas config from a directory if present.

    Search order:
    1) ``config.yaml``
    2) ``spherecas.yaml``

    An empty file yields ``{}``; a document that is not a mapping raises
    ``ConfigError``.
    """

    for filename in CONFIG_FILENAMES:
        config_path = root / filename
        if not config_path.exists():
            continue
        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as error:
            raise ConfigError(f"Could not parse {config_path}: {error}") from error
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping, got {type(data).__name__}.")
        return data
    return {}


def resolve_out_dir(config: dict[str, Any], cli_out_dir: Path | None) -> Path | None:
    """
    Resolve the artifact directory from CLI arg or config.

    CLI value has highest priority. Fallbacks:
    - ``paths.out_dir``
    - ``io.out_dir``

    Returns ``None`` when nothing is configured; artifacts are then written
    next to their input file.
    """

    if cli_out_dir is not None:
        return cli_out_dir

    for section_name in ("paths", "io"):
        section = config.get(section_name)
        if section is None:
            continue
        if not isinstance(section, dict):
            raise ConfigError(f"Config section '{section_name}' must be a mapping.")
        out_dir = section.get("out_dir")
        if out_dir is None:
            continue
        if not isinstance(out_dir, str) or not out_dir.strip():
            raise ConfigError(f"{section_name}.out_dir must be a non-empty string.")
        return Path(out_dir.strip())

    return None


@dataclass(frozen=True)
class ErrorHandlingConfig:
    """
    Configuration for error-handling + logging behavior.

    Parameters
    ----------
    mode
        "debug" re-raises the first I/O failure; "run" records it and moves on
        to the next input file.
    log_dir
        Directory where log files and JSONL event logs are written.
    run_id
        Unique identifier for the run. If "auto", a UUID4 prefix is generated.
    console_level
        Logging level for console output.
    file_level
        Logging level for file output.
    write_jsonl
        If True, writes structured JSONL events to <log_dir>/events_<run_id>.jsonl.
    max_failures
        If set, stops scheduling new inputs once this many steps have failed.
        Ignored in "debug" mode.
    env_prefix
        Prefix for environment-variable overrides (the CLI uses "SPHERECAS_").

    Usage example
    -------------
        cfg = ErrorHandlingConfig(mode="run", log_dir=Path("logs"))
    """

    mode: Literal["debug", "run"] = "run"
    log_dir: Path = Path("logs")
    run_id: str = "auto"

    console_level: int = 20  # logging.INFO
    file_level: int = 10  # logging.DEBUG

    write_jsonl: bool = True
    max_failures: Optional[int] = None

    env_prefix: str = field(default="", repr=False)

    def resolved_run_id(self) -> str:
        """Return a non-auto run id."""
        if self.run_id != "auto":
            return self.run_id
        return uuid.uuid4().hex[:10]

    @classmethod
    def from_env(cls, *, default: Optional["ErrorHandlingConfig"] = None) -> "ErrorHandlingConfig":
        """
        Create config from environment variables.

        Supported variables (prefix controlled by env_prefix on `default`):
        - <PFX>ERROR_MODE: "debug" | "run"
        - <PFX>LOG_DIR: path
        - <PFX>WRITE_JSONL: "1"/"0"
        - <PFX>MAX_FAILURES: integer

        Invalid values fall back to the ones on `default`.

        Usage example
        -------------
            cfg = ErrorHandlingConfig.from_env(default=ErrorHandlingConfig(env_prefix="SPHERECAS_"))
        """
        base = default if default is not None else cls()
        pfx = base.env_prefix

        mode = os.getenv(f"{pfx}ERROR_MODE", base.mode).strip().lower()
        if mode not in ("debug", "run"):
            mode = base.mode

        log_dir = Path(os.getenv(f"{pfx}LOG_DIR", str(base.log_dir)))

        write_jsonl_raw = os.getenv(f"{pfx}WRITE_JSONL", "1" if base.write_jsonl else "0").strip()
        write_jsonl = write_jsonl_raw not in ("0", "false", "False", "")

        max_failures_raw = os.getenv(f"{pfx}MAX_FAILURES", "")
        max_failures = base.max_failures
        if max_failures_raw.strip():
            try:
                max_failures = int(max_failures_raw)
            except ValueError:
                max_failures = base.max_failures

        return cls(
            mode=mode,  # type: ignore[arg-type]
            log_dir=log_dir,
            run_id=base.run_id,
            console_level=base.console_level,
            file_level=base.file_level,
            write_jsonl=write_jsonl,
            max_failures=max_failures,
            env_prefix=pfx,
        )
