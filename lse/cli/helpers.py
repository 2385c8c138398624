"""Shared utilities for lsectl CLI commands."""

from __future__ import annotations

import json
from typing import Any, Optional

from lse.devices import Device


def _print(obj: Any, *, json_mode: bool) -> None:
    if json_mode:
        print(json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False))
    else:
        if isinstance(obj, str):
            print(obj)
        else:
            print(json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False))


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def _device_from_args(platform: Optional[str], device_id: Optional[str]) -> Optional[Device]:
    """Device named on the command line, or None if no target was given.

    Only id and platform reach the tool, so the rest is filled in.
    """
    if not platform and not device_id:
        return None
    if not platform or not device_id:
        raise ValueError("--platform and --device must be given together")
    device_type = "browser" if platform == "web" else "physical"
    return Device(id=device_id, name=device_id, platform=platform, state="device", type=device_type)
