"""Mock-location control commands for lsectl."""

from __future__ import annotations

from typing import Optional

from lse.config import LseConfig
from lse.gps_control import GpsControl

from lse.cli.helpers import _print


def cmd_gps(*, config: LseConfig, action: str, value: Optional[str], json_mode: bool) -> int:
    """Send one speed/mode/pause/resume command to the running route."""
    gps = GpsControl.from_config(config)
    try:
        if action == "speed":
            command = gps.set_speed(float(value))
        elif action == "mode":
            command = gps.set_speed_mode(value)
        elif action == "pause":
            command = gps.pause()
        elif action == "resume":
            command = gps.resume()
        else:
            raise ValueError(f"unknown gps action: {action}")
    except (TypeError, ValueError) as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return 2
    except OSError as e:
        _print({"error": f"could not write {gps.control_path}: {e}"}, json_mode=json_mode)
        return 1

    if json_mode:
        _print({"path": gps.control_path, "command": command}, json_mode=True)
    else:
        print(f"gps {action} sent to {gps.control_path}")
    return 0
