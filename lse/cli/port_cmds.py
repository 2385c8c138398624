"""Local port helpers for lsectl."""

from __future__ import annotations

from lse.port_waiter import NoFreePortError, find_free_port, wait_for_port

from lse.cli.helpers import _print


def cmd_free_port(*, start: int, json_mode: bool) -> int:
    try:
        port = find_free_port(start)
    except (NoFreePortError, ValueError) as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return 1
    _print({"port": port} if json_mode else str(port), json_mode=json_mode)
    return 0


def cmd_wait_port(*, port: int, timeout_s: float, json_mode: bool) -> int:
    """Exit 0 once *port* accepts connections, 1 on timeout."""
    ready = wait_for_port(port, timeout_s=timeout_s)
    if json_mode:
        _print({"port": port, "ready": ready}, json_mode=True)
    else:
        print(f"port {port} {'ready' if ready else 'not ready'}")
    return 0 if ready else 1
