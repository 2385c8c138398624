"""
Test runs: spawn the test tool for a script and stream its output into a
StatusEngine.

One reader thread per output stream pushes raw chunks into a single queue;
one pump thread drains the queue and drives the engine, so every table
mutation of a run happens on one sequence. The exit code is delivered only
after both streams reached EOF, which guarantees the final partial lines
are classified before RunComplete.

Only one run is active per TestRunner: starting a run stops the previous
one first.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, List, Optional

from .command_index import build_run_args
from .config import LseConfig, resolve_tool_command
from .devices import Device
from .errors import ProcessSpawnFailure, UnexpectedExit
from .events import Event, EventBus
from .implementations import RealClock, RealFileSystem, RealProcessLauncher
from .interfaces import (
    ClockInterface, FileSystemInterface, ProcessHandle, ProcessLauncherInterface, RunOutcome,
)
from .process_utils import signal_stop
from .run_log import RunLog
from .status_engine import STDERR, STDOUT, StatusEngine
from .status_table import StatusTable

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096

_EOF = object()


class RunSession:
    """
    One run of the test tool: a process handle, the script path and the
    engine (with its status table) fed by the process output.
    """

    def __init__(self, file_path: str, process: ProcessHandle, engine: StatusEngine,
                 argv: Optional[List[str]] = None):
        self.file_path = file_path
        self.process = process
        self.engine = engine
        self.argv = list(argv or [])
        self._queue: "queue.Queue[tuple]" = queue.Queue()
        self._threads: List[threading.Thread] = []
        self._done = threading.Event()

    @property
    def table(self) -> StatusTable:
        return self.engine.table

    @property
    def outcome(self) -> Optional[RunOutcome]:
        return self.engine.outcome

    @property
    def exit_code(self) -> Optional[int]:
        return self.engine.exit_code

    @property
    def is_active(self) -> bool:
        return self.engine.is_active

    def start(self) -> None:
        """Start the reader threads and the pump thread."""
        pipes = [(STDOUT, self.process.stdout), (STDERR, self.process.stderr)]
        pipes = [(name, pipe) for name, pipe in pipes if pipe is not None]

        for name, pipe in pipes:
            reader = threading.Thread(
                target=self._reader,
                args=(name, pipe),
                daemon=True,
                name=f"lse-{name}-reader",
            )
            self._threads.append(reader)

        pump = threading.Thread(
            target=self._pump,
            args=(len(pipes),),
            daemon=True,
            name="lse-pump",
        )
        self._threads.append(pump)

        for thread in self._threads:
            thread.start()

    def _reader(self, stream: str, pipe) -> None:
        try:
            while True:
                chunk = pipe.read1(READ_CHUNK_SIZE)
                if not chunk:
                    break
                self._queue.put((stream, chunk))
        except (OSError, ValueError) as e:
            # Pipe closed underneath us (process killed)
            logger.debug("%s reader stopped: %s", stream, e)
        finally:
            self._queue.put((stream, _EOF))

    def _pump(self, open_streams: int) -> None:
        feeds = {STDOUT: self.engine.feed_stdout, STDERR: self.engine.feed_stderr}
        try:
            while open_streams:
                stream, chunk = self._queue.get()
                if chunk is _EOF:
                    open_streams -= 1
                    continue
                try:
                    feeds[stream](chunk)
                except Exception:
                    logger.exception("Failed to process %s output of %s", stream, self.file_path)

            exit_code = self.process.wait()
            logger.info("Test tool exited with code %d (pid %d)", exit_code, self.process.pid)
            try:
                self.engine.process_exited(exit_code)
            except Exception:
                logger.exception("Failed to finish run of %s", self.file_path)
        finally:
            self._done.set()

    def stop(self) -> bool:
        """Signal the process and mark the run aborted without waiting for it to die."""
        signal_stop(self.process)
        stopped = self.engine.stop()
        self._done.set()
        return stopped

    def wait(self, timeout: Optional[float] = None) -> Optional[RunOutcome]:
        """Block until the run is finished. Returns None if still running at timeout."""
        if not self._done.wait(timeout):
            return None
        return self.engine.outcome

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the session threads themselves (tests, shutdown)."""
        for thread in self._threads:
            thread.join(timeout)

    def raise_for_outcome(self, recent_log: Optional[List[str]] = None) -> None:
        """Raise UnexpectedExit if the tool exited with a nonzero code."""
        if self.engine.outcome is RunOutcome.COMPLETED and self.engine.exit_code:
            raise UnexpectedExit(self.engine.exit_code, recent_log)


class TestRunner:
    """
    Starts, supersedes and stops test runs.

    Observers subscribe once on the runner; the same bus is handed to every
    session's engine, so registrations survive across runs.

    Usage:
        runner = TestRunner(load_config())
        runner.subscribe(print)
        runner.run_command("login.yaml", 2)
        runner.wait()
    """

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        config: Optional[LseConfig] = None,
        launcher: Optional[ProcessLauncherInterface] = None,
        clock: Optional[ClockInterface] = None,
        run_log: Optional[RunLog] = None,
        filesystem: Optional[FileSystemInterface] = None,
    ):
        self._config = config or LseConfig()
        self._launcher = launcher or RealProcessLauncher()
        self._clock = clock or RealClock()
        self._bus = EventBus()
        self._lock = threading.RLock()
        self._active: Optional[RunSession] = None

        if run_log is None and filesystem is not None:
            run_log = RunLog(filesystem, self._clock, self._config.session_dir,
                             recent_buffer_size=self._config.recent_log_lines)
        self._run_log = run_log
        if self._run_log is not None:
            self._bus.subscribe(self._run_log.observe)

    @classmethod
    def with_session_log(cls, config: LseConfig) -> "TestRunner":
        """Runner writing its raw log to <run_dir>/lse-session/latest.log."""
        return cls(config, filesystem=RealFileSystem())

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def run_log(self) -> Optional[RunLog]:
        return self._run_log

    @property
    def active_session(self) -> Optional[RunSession]:
        return self._active

    def subscribe(self, callback: Callable[[Event], None]) -> Callable[[], None]:
        return self._bus.subscribe(callback)

    def run_file(self, file_path: str, device: Optional[Device] = None) -> RunSession:
        """Run every command of *file_path*."""
        return self._start(file_path, build_run_args(file_path, device=device))

    def run_command(self, file_path: str, index: int, device: Optional[Device] = None) -> RunSession:
        """Run *file_path* starting at command *index*."""
        return self._start(file_path, build_run_args(file_path, command_index=index, device=device))

    def _start(self, file_path: str, run_args: List[str]) -> RunSession:
        with self._lock:
            self._stop_active()

            engine = StatusEngine(file_path, bus=self._bus)
            try:
                argv = resolve_tool_command(self._config) + run_args
            except ProcessSpawnFailure as e:
                self._spawn_failed(engine, file_path, list(self._config.tool_command) + run_args, str(e))
                raise

            try:
                if self._run_log is not None:
                    self._run_log.start(file_path, argv)
                process = self._launcher.spawn(argv, cwd=self._config.cwd)
            except OSError as e:
                reason = f"Failed to start {argv[0]}: {e}"
                self._spawn_failed(engine, file_path, argv, reason, log_started=True)
                raise ProcessSpawnFailure(reason) from e

            session = RunSession(file_path, process, engine, argv)
            self._active = session
            logger.info("Started run of %s (pid %d)", file_path, process.pid)
            session.start()
            return session

    def _spawn_failed(self, engine: StatusEngine, file_path: str, argv: List[str],
                      reason: str, log_started: bool = False) -> None:
        if self._run_log is not None and not log_started:
            self._run_log.start(file_path, argv)
        self._active = None
        engine.spawn_failed(reason)

    def _stop_active(self) -> bool:
        session = self._active
        if session is None or not session.is_active:
            return False
        logger.info("Stopping previous run of %s", session.file_path)
        return session.stop()

    def stop(self) -> bool:
        """Stop the active run. Returns False if nothing was running."""
        with self._lock:
            return self._stop_active()

    def wait(self, timeout: Optional[float] = None) -> Optional[RunOutcome]:
        """Block until the active run finishes; None if there is none or it is still running."""
        session = self._active
        if session is None:
            return None
        return session.wait(timeout)
