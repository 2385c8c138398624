"""
Interfaces for Lumi Script Editor support.

Abstract base classes that define contracts for all pluggable components.
This enables dependency injection and mock-based testing without spawning
the real test tool.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, IO
from datetime import datetime
from enum import Enum


class CommandState(Enum):
    """Execution state of a single command in a run."""
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CommandState.PASSED, CommandState.FAILED)


class RunOutcome(Enum):
    """Terminal outcome of a run session."""
    COMPLETED = "completed"
    ABORTED = "aborted"
    SPAWN_FAILED = "spawn_failed"
    READINESS_TIMED_OUT = "readiness_timed_out"


class FileSystemInterface(ABC):
    """
    Abstract interface for file system operations.

    Implementations:
    - RealFileSystem: Actual file I/O
    - MockFileSystem: In-memory for testing
    """

    @abstractmethod
    def read_file(self, path: str) -> str:
        """Read entire file contents."""
        pass

    @abstractmethod
    def write_file(self, path: str, content: str, append: bool = False) -> None:
        """Write content to file. Creates parent dirs if needed."""
        pass

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        """Check if file exists."""
        pass

    @abstractmethod
    def ensure_dir(self, path: str) -> None:
        """Create directory and parents if they don't exist."""
        pass

    @abstractmethod
    def rename_file(self, old_path: str, new_path: str) -> None:
        """Rename a file, replacing the destination if it exists."""
        pass


class ClockInterface(ABC):
    """
    Abstract interface for time operations.

    Enables deterministic testing of time-dependent logic.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get current datetime."""
        pass

    @abstractmethod
    def timestamp(self) -> float:
        """Get current timestamp (seconds since epoch)."""
        pass

    @abstractmethod
    def monotonic(self) -> float:
        """Get a monotonic time reading in seconds (for deadlines)."""
        pass

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        """Sleep for specified duration."""
        pass


class ProcessHandle(ABC):
    """
    Abstract handle on a spawned external process.

    Implementations:
    - RealProcess: Wraps subprocess.Popen
    - MockProcess: Scripted output for testing
    """

    @property
    @abstractmethod
    def pid(self) -> int:
        """OS process id."""
        pass

    @property
    @abstractmethod
    def stdout(self) -> Optional[IO[bytes]]:
        """Primary output stream."""
        pass

    @property
    @abstractmethod
    def stderr(self) -> Optional[IO[bytes]]:
        """Diagnostic output stream."""
        pass

    @abstractmethod
    def poll(self) -> Optional[int]:
        """Return exit code if the process has exited, else None."""
        pass

    @abstractmethod
    def wait(self, timeout: Optional[float] = None) -> int:
        """Block until exit. Returns exit code."""
        pass

    @abstractmethod
    def terminate(self) -> None:
        """Send a termination signal. Does not wait for exit."""
        pass

    @abstractmethod
    def kill(self) -> None:
        """Force-kill the process."""
        pass


class ProcessLauncherInterface(ABC):
    """
    Abstract interface for spawning the external test tool.

    Raises FileNotFoundError / OSError when the executable cannot be spawned.
    """

    @abstractmethod
    def spawn(self, argv: List[str], cwd: Optional[str] = None) -> ProcessHandle:
        """Spawn argv with both output streams piped."""
        pass
