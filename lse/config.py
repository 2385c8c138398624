"""Configuration for lse.

Settings come from (lowest to highest priority): dataclass defaults, a YAML
file (``--config``, ``$LSE_CONFIG`` or ``./lse.yaml``), then environment
overrides ``LSE_TOOL`` and ``LSE_RUN_DIR``.

Example ``lse.yaml``::

    tool_command: cargo run --manifest-path ../lumi-tester/Cargo.toml --
    readiness_timeout_s: 90
    inspector_base_port: 9333
"""

from __future__ import annotations

import dataclasses
import logging
import os
import shlex
import shutil
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from .errors import ProcessSpawnFailure

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "lse.yaml"
DEFAULT_TOOL = "lumi-tester"
DEFAULT_GPS_CONTROL_PATH = "/tmp/lumi-gps-control.json"


def _default_run_dir() -> str:
    """Runtime directory root.

    Implemented as a function (not module-level constant) so tests can
    monkeypatch LSE_RUN_DIR after import.
    """
    return os.environ.get("LSE_RUN_DIR", "/tmp")


@dataclass
class LseConfig:
    """Settings shared by the runner, the inspector and the device context.

    Attributes:
        tool_command: argv prefix that starts the test tool.
        run_dir: Root for runtime files; logs go to <run_dir>/lse-session/.
        cwd: Working directory for the tool (None = inherit).
        readiness_timeout_s: How long to wait for the inspector port.
        inspector_base_port: First port tried for the inspector.
        device_cache_ttl_s: Device list validity window.
        recent_log_lines: Raw log lines kept in memory for failure reports.
        gps_control_path: File the tool polls for mock-location speed/pause commands.
    """
    tool_command: list[str] = field(default_factory=lambda: [DEFAULT_TOOL])
    run_dir: str = field(default_factory=_default_run_dir)
    cwd: Optional[str] = None
    readiness_timeout_s: float = 60.0
    inspector_base_port: int = 9333
    device_cache_ttl_s: float = 10.0
    recent_log_lines: int = 500
    gps_control_path: str = DEFAULT_GPS_CONTROL_PATH

    @property
    def session_dir(self) -> str:
        return os.path.join(self.run_dir, "lse-session")


def _coerce_command(value: Any) -> list[str]:
    if isinstance(value, str):
        argv = shlex.split(value)
    elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        argv = list(value)
    else:
        raise ValueError(f"tool_command must be a string or list of strings, got {value!r}")
    if not argv:
        raise ValueError("tool_command must not be empty")
    return argv


def _from_mapping(data: dict[str, Any]) -> LseConfig:
    known = {f.name for f in dataclasses.fields(LseConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
    values = dict(data)
    if "tool_command" in values:
        values["tool_command"] = _coerce_command(values["tool_command"])
    return LseConfig(**values)


def load_config(path: Optional[str] = None) -> LseConfig:
    """Load configuration.

    Args:
        path: Explicit YAML file. Falls back to $LSE_CONFIG, then ./lse.yaml
            if it exists, then defaults.

    Raises:
        FileNotFoundError: If an explicitly named file does not exist.
        ValueError: If the file is not a mapping or has unknown keys.
    """
    explicit = path or os.environ.get("LSE_CONFIG")
    if explicit:
        config_path: Optional[str] = explicit
    elif os.path.isfile(DEFAULT_CONFIG_NAME):
        config_path = DEFAULT_CONFIG_NAME
    else:
        config_path = None

    if config_path:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Invalid config file (expected mapping): {config_path}")
        config = _from_mapping(data)
        logger.debug("Loaded config from %s", config_path)
    else:
        config = LseConfig()

    tool_env = os.environ.get("LSE_TOOL")
    if tool_env:
        config.tool_command = _coerce_command(tool_env)
    run_dir_env = os.environ.get("LSE_RUN_DIR")
    if run_dir_env:
        config.run_dir = run_dir_env
    return config


def resolve_tool_command(config: LseConfig) -> list[str]:
    """Return tool_command with its executable resolved on PATH.

    Raises:
        ProcessSpawnFailure: If the executable cannot be found.
    """
    argv = list(config.tool_command)
    exe = argv[0]
    if os.path.isfile(exe) and os.access(exe, os.X_OK):
        return argv
    found = shutil.which(exe)
    if not found:
        raise ProcessSpawnFailure(
            f"Could not find {exe}. Set tool_command in {DEFAULT_CONFIG_NAME} or LSE_TOOL."
        )
    argv[0] = found
    return argv
