"""Argument parser for lsectl CLI."""

from __future__ import annotations

import argparse

from lse.devices import PLATFORMS
from lse.gps_control import SPEED_MODES
from lse.port_waiter import DEFAULT_READY_TIMEOUT_S


def _preprocess_argv(argv: list[str]) -> list[str]:
    """Reorder global flags (--json, --config, -v) before the subcommand.

    argparse doesn't support global flags after a subparser reliably, so we
    move them to the front. Subcommand options are left where they are.

    Args:
        argv: Raw argument list (without ``sys.argv[0]``).

    Returns:
        Reordered argument list with global flags moved to the front.
    """
    global_args: list[str] = []
    rest: list[str] = []
    i = 0
    while i < len(argv):
        token = argv[i]
        if token in ("--json", "-v", "--verbose"):
            global_args.append(token)
            i += 1
            continue
        if token.startswith("--config="):
            global_args.append(token)
            i += 1
            continue
        if token == "--config":
            # Needs a value.
            if i + 1 >= len(argv):
                rest.append(token)
                i += 1
                continue
            global_args.extend([token, argv[i + 1]])
            i += 2
            continue
        rest.append(token)
        i += 1

    return global_args + rest


def _build_parser() -> argparse.ArgumentParser:
    """Build the full argparse parser with all subcommands."""
    parser = argparse.ArgumentParser(prog="lsectl", description="Lumi test script runner CLI")
    parser.add_argument("--json", action="store_true", help="Machine-parseable JSON output")
    parser.add_argument("--config", default=None, help="Path to lse.yaml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log to stderr")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_commands = sub.add_parser("commands", help="List the runnable commands of a script")
    p_commands.add_argument("file", help="Test script (.yaml)")

    p_run = sub.add_parser("run", help="Run a script (or one command) and report per-command status")
    p_run.add_argument("file", help="Test script (.yaml)")
    p_run.add_argument("--command-index", type=int, default=None,
                       help="Run only the command with this 0-based index")
    p_run.add_argument("--platform", choices=PLATFORMS, default=None, help="Target platform")
    p_run.add_argument("--device", dest="device_id", default=None, help="Target device id")
    p_run.add_argument("--events", dest="events_path", default=None,
                       help="Append run events as JSON lines to this file")

    p_devices = sub.add_parser("devices", help="List known devices")
    p_devices.add_argument("--refresh", action="store_true", help="Ignore the cached list")

    p_free = sub.add_parser("free-port", help="Print the first free local port")
    p_free.add_argument("--start", type=int, default=None,
                        help="First port to try (default: inspector_base_port)")

    p_wait = sub.add_parser("wait-port", help="Wait until a local port accepts connections")
    p_wait.add_argument("port", type=int)
    p_wait.add_argument("--timeout", type=float, default=DEFAULT_READY_TIMEOUT_S)

    p_inspect = sub.add_parser("inspect", help="Start the UI inspector and print its URL")
    p_inspect.add_argument("--platform", choices=PLATFORMS, required=True, help="Target platform")
    p_inspect.add_argument("--device", dest="device_id", default=None, help="Target device id")

    p_gps = sub.add_parser("gps", help="Control a running mock-location route")
    gps_sub = p_gps.add_subparsers(dest="gps_action", required=True)
    p_speed = gps_sub.add_parser("speed", help="Set the route speed")
    p_speed.add_argument("value", help="Speed in km/h")
    p_mode = gps_sub.add_parser("mode", help="Set how speed varies along the route")
    p_mode.add_argument("value", choices=SPEED_MODES)
    gps_sub.add_parser("pause", help="Hold the current position")
    gps_sub.add_parser("resume", help="Continue along the route")

    return parser
