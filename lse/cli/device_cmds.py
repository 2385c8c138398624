"""Device and inspector commands for lsectl."""

from __future__ import annotations

import time
from typing import Optional

from lse.config import LseConfig
from lse.devices import Device, DeviceContext
from lse.errors import ProcessSpawnFailure, ReadinessTimeout
from lse.inspector import Inspector
from lse.port_waiter import NoFreePortError

from lse.cli.helpers import _print


def _device_context(config: LseConfig) -> DeviceContext:
    """Device context for one CLI invocation (no listing sources configured)."""
    return DeviceContext(cache_ttl_s=config.device_cache_ttl_s)


def cmd_devices(*, config: LseConfig, refresh: bool, json_mode: bool) -> int:
    """List devices known to the device context."""
    context = _device_context(config)
    devices = context.refresh(force=refresh)
    if json_mode:
        _print({"devices": [d.to_dict() for d in devices]}, json_mode=True)
        return 0

    if not devices:
        print("no devices")
        return 0
    for d in devices:
        print(f"{d.id:<24} {d.platform:<8} {d.type:<10} {d.state:<10} {d.name}")
    return 0


def cmd_inspect(
    *,
    config: LseConfig,
    platform: str,
    device_id: Optional[str],
    json_mode: bool,
) -> int:
    """Start the inspector, print its URL and keep it running until Ctrl+C."""
    device = None
    if device_id:
        device = Device(id=device_id, name=device_id, platform=platform, state="device", type="physical")

    inspector = Inspector(config)
    try:
        session = inspector.start(platform, device)
    except ProcessSpawnFailure as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return 127
    except (ReadinessTimeout, NoFreePortError) as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return 1

    if json_mode:
        _print({"url": session.url, "port": session.port, "pid": session.process.pid}, json_mode=True)
    else:
        print(f"Inspector running at {session.url} (Ctrl+C to stop)")

    try:
        while session.is_running:
            time.sleep(0.5)
    except KeyboardInterrupt:
        inspector.stop()
        return 0

    code = session.process.poll()
    _print({"error": f"inspector exited with code {code}"}, json_mode=json_mode)
    return 1
