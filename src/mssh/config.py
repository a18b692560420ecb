"""Configuration loader for mssh."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

RUN_MODES = ("sequential", "parallel")
FALLBACKS = ("remote", "echo")


@dataclass
class Defaults:
    """Connection defaults used when connect omits port or timeout."""

    port: int = 22
    timeout: int = 5


@dataclass
class Config:
    """Main configuration for the shell."""

    prompt: str = "mssh"
    history_file: Path = field(default_factory=lambda: Path("/tmp/mssh.tmp"))
    rc_file: Path = field(default_factory=lambda: Path(".msshrc"))
    download_root: Path = field(default_factory=lambda: Path("download"))
    log_file: Path | None = None
    run_mode: str = "sequential"
    scoped_barrier: bool = False
    max_parallel: int = 0
    fallback: str = "remote"
    defaults: Defaults = field(default_factory=Defaults)


def load_config(config_path: str | Path) -> Config:
    """Load and validate configuration from a YAML file."""
    config_path = Path(config_path).resolve()

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration must be a mapping")

    return _parse_config(raw)


def _parse_defaults(raw: dict[str, Any]) -> Defaults:
    """Parse the defaults section."""
    defaults_raw = raw.get("defaults") or {}
    defaults = Defaults(
        port=defaults_raw.get("port", 22),
        timeout=defaults_raw.get("timeout", 5),
    )
    if not isinstance(defaults.port, int) or not 0 < defaults.port < 65536:
        raise ValueError(f"Invalid default port: {defaults.port!r}")
    if not isinstance(defaults.timeout, int) or defaults.timeout <= 0:
        raise ValueError(f"Invalid default timeout: {defaults.timeout!r}")
    return defaults


def _parse_config(raw: dict[str, Any]) -> Config:
    """Parse raw YAML data into Config object."""
    defaults = _parse_defaults(raw)

    run_mode = raw.get("run_mode", "sequential")
    if run_mode not in RUN_MODES:
        raise ValueError(f"run_mode must be one of {', '.join(RUN_MODES)}, got {run_mode!r}")

    fallback = raw.get("fallback", "remote")
    if fallback not in FALLBACKS:
        raise ValueError(f"fallback must be one of {', '.join(FALLBACKS)}, got {fallback!r}")

    max_parallel = raw.get("max_parallel", 0)
    if isinstance(max_parallel, bool) or not isinstance(max_parallel, int) or max_parallel < 0:
        raise ValueError(f"max_parallel must be a non-negative integer, got {max_parallel!r}")

    scoped_barrier = raw.get("scoped_barrier", False)
    if not isinstance(scoped_barrier, bool):
        raise ValueError(f"scoped_barrier must be true or false, got {scoped_barrier!r}")

    prompt = raw.get("prompt", "mssh")
    if not isinstance(prompt, str) or not prompt:
        raise ValueError(f"prompt must be a non-empty string, got {prompt!r}")

    return Config(
        prompt=prompt,
        history_file=_parse_path(raw, "history_file", "/tmp/mssh.tmp"),
        rc_file=_parse_path(raw, "rc_file", ".msshrc"),
        download_root=_parse_path(raw, "download_root", "download"),
        log_file=_parse_path(raw, "log_file", None, optional=True),
        run_mode=run_mode,
        scoped_barrier=scoped_barrier,
        max_parallel=max_parallel,
        fallback=fallback,
        defaults=defaults,
    )


def _parse_path(raw: dict[str, Any], key: str, default: str | None, optional: bool = False) -> Path | None:
    """Parse a path option; ``optional`` ones may be null or empty."""
    value = raw.get(key, default)
    if value is None or value == "":
        if optional:
            return None
        raise ValueError(f"{key} must be a path, got {value!r}")
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a path, got {value!r}")
    return Path(value).expanduser()
