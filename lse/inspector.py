"""
Inspector session: the test tool serving its UI inspector on a local port.

Picks a free port starting at ``config.inspector_base_port``, starts
``<tool> inspect --platform P --port N [--device ID]`` and waits until the
port accepts connections. If the process exits first or the deadline
passes, the process is terminated and ReadinessTimeout is raised.

The tool's output is pumped through a StatusEngine for as long as the
session lives, the same way a test run is. A first build can print far
more than a pipe holds before the server binds its port, so both streams
must be drained while we wait.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .config import LseConfig, resolve_tool_command
from .devices import Device
from .errors import ProcessSpawnFailure, ReadinessTimeout
from .events import Event, EventBus
from .implementations import RealClock, RealProcessLauncher
from .interfaces import ClockInterface, ProcessHandle, ProcessLauncherInterface
from .port_waiter import find_free_port, wait_for_port
from .process_utils import handle_is_alive, stop_process_graceful
from .run_session import RunSession
from .status_engine import StatusEngine

logger = logging.getLogger(__name__)


def build_inspect_args(platform: str, port: int, device_id: Optional[str] = None) -> List[str]:
    args = ["inspect", "--platform", platform, "--port", str(port)]
    if device_id:
        args.extend(["--device", device_id])
    return args


class InspectorSession:
    """A running inspector process, the port it serves on and its output pump."""

    def __init__(self, process: ProcessHandle, port: int, platform: str,
                 device_id: Optional[str] = None, output: Optional[RunSession] = None):
        self.process = process
        self.port = port
        self.platform = platform
        self.device_id = device_id
        self.output = output

    @property
    def url(self) -> str:
        return f"http://localhost:{self.port}"

    @property
    def is_running(self) -> bool:
        return handle_is_alive(self.process)

    def stop(self, timeout_s: float = 5.0) -> bool:
        logger.info("Stopping inspector on port %d", self.port)
        if self.output is not None:
            self.output.engine.stop()
        return stop_process_graceful(self.process, timeout_s)


class Inspector:
    """Owns at most one InspectorSession; starting a new one stops the old."""

    def __init__(
        self,
        config: Optional[LseConfig] = None,
        launcher: Optional[ProcessLauncherInterface] = None,
        clock: Optional[ClockInterface] = None,
        bus: Optional[EventBus] = None,
    ):
        self._config = config or LseConfig()
        self._launcher = launcher or RealProcessLauncher()
        self._clock = clock or RealClock()
        self._bus = bus or EventBus()
        self._session: Optional[InspectorSession] = None

    @property
    def session(self) -> Optional[InspectorSession]:
        return self._session

    @property
    def bus(self) -> EventBus:
        return self._bus

    def subscribe(self, callback: Callable[[Event], None]) -> Callable[[], None]:
        return self._bus.subscribe(callback)

    def start(self, platform: str, device: Optional[Device] = None) -> InspectorSession:
        """Start the inspector and wait until it is reachable.

        Raises:
            ProcessSpawnFailure: If the tool cannot be started.
            ReadinessTimeout: If the port never becomes connectable.
        """
        self.stop()

        port = find_free_port(self._config.inspector_base_port)
        device_id = device.id if device is not None else None
        label = f"inspect:{platform}"
        engine = StatusEngine(label, bus=self._bus)
        run_args = build_inspect_args(platform, port, device_id)

        try:
            argv = resolve_tool_command(self._config) + run_args
        except ProcessSpawnFailure as e:
            engine.spawn_failed(str(e))
            raise
        try:
            process = self._launcher.spawn(argv, cwd=self._config.cwd)
        except OSError as e:
            reason = f"Failed to start {argv[0]}: {e}"
            engine.spawn_failed(reason)
            raise ProcessSpawnFailure(reason) from e

        output = RunSession(label, process, engine, argv)
        output.start()

        timeout_s = self._config.readiness_timeout_s
        ready = wait_for_port(
            port,
            timeout_s=timeout_s,
            has_exited=lambda: process.poll() is not None,
            clock=self._clock,
        )
        if not ready:
            exited = process.poll() is not None
            engine.readiness_timed_out(port, timeout_s)
            stop_process_graceful(process)
            raise ReadinessTimeout(port, timeout_s, exited=exited)

        self._session = InspectorSession(process, port, platform, device_id, output=output)
        logger.info("Inspector ready at %s", self._session.url)
        return self._session

    def stop(self) -> bool:
        if self._session is None:
            return False
        session, self._session = self._session, None
        return session.stop()
