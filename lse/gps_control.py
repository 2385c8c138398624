"""
Control channel for a running mock-location route.

While a script replays a GPS route, the test tool polls a small JSON file
(``/tmp/lumi-gps-control.json`` by default) and applies whatever keys it
finds: ``speed`` in km/h, ``speedMode`` (``linear`` or ``noise``) and
``paused``. The tool deletes the file after reading it, so every command
is a fresh file holding one change.

Writes go through a temp file plus rename so the tool never reads a
half-written command.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Optional

from .config import LseConfig
from .implementations import RealFileSystem
from .interfaces import FileSystemInterface

logger = logging.getLogger(__name__)

SPEED_MODES = ("linear", "noise")


class GpsControl:
    """
    Sends speed and pause commands to the tool's mock-location loop.

    Usage:
        gps = GpsControl.from_config(load_config())
        gps.set_speed(40)
        gps.pause()
    """

    def __init__(self, filesystem: FileSystemInterface, control_path: str):
        self._fs = filesystem
        self._path = control_path

    @classmethod
    def from_config(cls, config: LseConfig,
                    filesystem: Optional[FileSystemInterface] = None) -> "GpsControl":
        return cls(filesystem or RealFileSystem(), config.gps_control_path)

    @property
    def control_path(self) -> str:
        return self._path

    def set_speed(self, speed_kmh: float) -> dict[str, Any]:
        speed = float(speed_kmh)
        if not math.isfinite(speed) or speed <= 0:
            raise ValueError(f"speed must be a positive number of km/h, got {speed_kmh!r}")
        return self._send({"speed": speed})

    def set_speed_mode(self, mode: str) -> dict[str, Any]:
        if mode not in SPEED_MODES:
            raise ValueError(f"speed mode must be one of {', '.join(SPEED_MODES)}, got {mode!r}")
        return self._send({"speedMode": mode})

    def pause(self) -> dict[str, Any]:
        return self._send({"paused": True})

    def resume(self) -> dict[str, Any]:
        return self._send({"paused": False})

    def _send(self, command: dict[str, Any]) -> dict[str, Any]:
        temp_path = f"{self._path}.tmp"
        self._fs.write_file(temp_path, json.dumps(command))
        self._fs.rename_file(temp_path, self._path)
        logger.info("GPS control %s -> %s", command, self._path)
        return command
