"""
Lumi Script Editor support

Editor-side tooling for Lumi YAML test scripts: command indexing, running
the test tool and turning its streamed output into per-command status.
"""

from .interfaces import (
    CommandState,
    RunOutcome,
    FileSystemInterface,
    ClockInterface,
    ProcessHandle,
    ProcessLauncherInterface,
)

from .document import TestDocument, parse
from .command_index import CommandEntry, index_commands, command_at_line, build_run_args
from .status_table import CommandStatusRecord, StatusTable
from .status_engine import StatusEngine
from .run_session import RunSession, TestRunner
from .port_waiter import find_free_port, wait_for_port
from .devices import Device, DeviceContext
from .gps_control import GpsControl
from .config import LseConfig, load_config
from .errors import LseError, ProcessSpawnFailure, UnexpectedExit, ReadinessTimeout

__all__ = [
    "CommandState",
    "RunOutcome",
    "FileSystemInterface",
    "ClockInterface",
    "ProcessHandle",
    "ProcessLauncherInterface",
    "TestDocument",
    "parse",
    "CommandEntry",
    "index_commands",
    "command_at_line",
    "build_run_args",
    "CommandStatusRecord",
    "StatusTable",
    "StatusEngine",
    "RunSession",
    "TestRunner",
    "find_free_port",
    "wait_for_port",
    "Device",
    "DeviceContext",
    "GpsControl",
    "LseConfig",
    "load_config",
    "LseError",
    "ProcessSpawnFailure",
    "UnexpectedExit",
    "ReadinessTimeout",
]
