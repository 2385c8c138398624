"""
Mock implementations for testing.

These classes implement the abstract interfaces with in-memory behavior
suitable for unit testing without spawning the real test tool.
"""

from typing import Optional, List, Dict, IO
from datetime import datetime, timedelta
import io
import threading

from .interfaces import (
    FileSystemInterface, ClockInterface, ProcessHandle, ProcessLauncherInterface,
)


class MockFileSystem(FileSystemInterface):
    """
    In-memory file system for testing.

    All file operations are performed in memory without touching disk.
    """

    def __init__(self):
        self._files: Dict[str, str] = {}
        self._dirs: set = set()

    def read_file(self, path: str) -> str:
        if path not in self._files:
            raise FileNotFoundError(f"No such file: {path}")
        return self._files[path]

    def write_file(self, path: str, content: str, append: bool = False) -> None:
        if append and path in self._files:
            self._files[path] += content
        else:
            self._files[path] = content

    def file_exists(self, path: str) -> bool:
        return path in self._files

    def ensure_dir(self, path: str) -> None:
        self._dirs.add(path)

    def rename_file(self, old_path: str, new_path: str) -> None:
        if old_path not in self._files:
            raise FileNotFoundError(f"No such file: {old_path}")
        self._files[new_path] = self._files.pop(old_path)


class MockClock(ClockInterface):
    """
    Controllable clock for testing.

    Time can be advanced manually for deterministic testing of
    time-dependent behavior. sleep() advances time instead of blocking.
    """

    def __init__(self, start_time: Optional[datetime] = None):
        self._current_time = start_time or datetime(2025, 1, 1, 0, 0, 0)
        self._monotonic = 1000.0
        self._sleep_calls: List[float] = []

    def now(self) -> datetime:
        return self._current_time

    def timestamp(self) -> float:
        return self._current_time.timestamp()

    def monotonic(self) -> float:
        return self._monotonic

    def sleep(self, seconds: float) -> None:
        self._sleep_calls.append(seconds)
        self.advance(seconds)

    # Test helper methods

    def advance(self, seconds: float) -> None:
        """Advance time by specified seconds."""
        self._current_time += timedelta(seconds=seconds)
        self._monotonic += seconds

    @property
    def sleep_calls(self) -> List[float]:
        return list(self._sleep_calls)


class MockProcess(ProcessHandle):
    """
    Scripted process for testing.

    stdout/stderr are pre-filled byte streams. The process counts as exited
    once finish() or terminate() has been called; wait() blocks until then.
    """

    def __init__(
        self,
        stdout: bytes = b"",
        stderr: bytes = b"",
        exit_code: int = 0,
        pid: int = 4242,
        finished: bool = True,
    ):
        self._stdout = io.BytesIO(stdout)
        self._stderr = io.BytesIO(stderr)
        self._exit_code = exit_code
        self._pid = pid
        self._done = threading.Event()
        self._returncode: Optional[int] = None
        self.terminate_calls = 0
        self.kill_calls = 0
        if finished:
            self.finish()

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def stdout(self) -> Optional[IO[bytes]]:
        return self._stdout

    @property
    def stderr(self) -> Optional[IO[bytes]]:
        return self._stderr

    def poll(self) -> Optional[int]:
        return self._returncode

    def wait(self, timeout: Optional[float] = None) -> int:
        if not self._done.wait(timeout):
            raise TimeoutError(f"mock process {self._pid} still running")
        return self._returncode

    def terminate(self) -> None:
        self.terminate_calls += 1
        if self._returncode is None:
            self._returncode = -15
            self._done.set()

    def kill(self) -> None:
        self.kill_calls += 1
        if self._returncode is None:
            self._returncode = -9
            self._done.set()

    # Test helper methods

    def finish(self, exit_code: Optional[int] = None) -> None:
        """Mark the process as exited."""
        if exit_code is not None:
            self._exit_code = exit_code
        if self._returncode is None:
            self._returncode = self._exit_code
            self._done.set()


class MockProcessLauncher(ProcessLauncherInterface):
    """
    Launcher that hands out pre-built MockProcess objects in order.

    Set fail_with to make spawn() raise (e.g. FileNotFoundError).
    """

    def __init__(self, processes: Optional[List[MockProcess]] = None):
        self._processes: List[MockProcess] = list(processes or [])
        self.spawned: List[List[str]] = []
        self.fail_with: Optional[BaseException] = None

    def spawn(self, argv: List[str], cwd: Optional[str] = None) -> ProcessHandle:
        self.spawned.append(list(argv))
        if self.fail_with is not None:
            raise self.fail_with
        if not self._processes:
            return MockProcess()
        return self._processes.pop(0)

    # Test helper methods

    def queue_process(self, proc: MockProcess) -> None:
        self._processes.append(proc)
