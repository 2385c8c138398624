"""
lsectl: command-line front end for Lumi test scripts.

Runs the same operations an editor integration uses, from a terminal or a
CI job, with optional JSON output for reliable parsing.

Main commands:
- commands: List the runnable commands of a script
- run: Run a script or one command and report per-command status
- devices: List known devices
- free-port / wait-port: Local port helpers
- inspect: Start the UI inspector
- gps: Change speed or pause a running mock-location route

Entry points:
- lsectl: Main CLI entry point (installed via pip)
- Can also be imported and called programmatically via main(argv)
"""

from __future__ import annotations

from lse.config import load_config

from lse.cli.helpers import _print

# Import all command functions from submodules
from lse.cli.script_cmds import cmd_commands, cmd_run
from lse.cli.device_cmds import cmd_devices, cmd_inspect
from lse.cli.port_cmds import cmd_free_port, cmd_wait_port
from lse.cli.gps_cmds import cmd_gps

from lse.cli.parser import _build_parser, _preprocess_argv
from lse.cli.dispatch import main

__all__ = [
    "main",
    "load_config",
    "_print",
    "_build_parser",
    "_preprocess_argv",
    "cmd_commands",
    "cmd_run",
    "cmd_devices",
    "cmd_inspect",
    "cmd_free_port",
    "cmd_wait_port",
    "cmd_gps",
]
