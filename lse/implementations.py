"""
Real implementations of interfaces for production use.

These classes wrap actual system resources (processes, files, time)
and implement the abstract interfaces.
"""

from typing import Optional, List, IO
from datetime import datetime
import logging
import os
import subprocess
import time

from .interfaces import (
    FileSystemInterface, ClockInterface, ProcessHandle, ProcessLauncherInterface,
)

logger = logging.getLogger(__name__)


class RealProcess(ProcessHandle):
    """
    Process handle backed by subprocess.Popen.
    """

    def __init__(self, proc: subprocess.Popen):
        self._proc = proc

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def stdout(self) -> Optional[IO[bytes]]:
        return self._proc.stdout

    @property
    def stderr(self) -> Optional[IO[bytes]]:
        return self._proc.stderr

    def poll(self) -> Optional[int]:
        return self._proc.poll()

    def wait(self, timeout: Optional[float] = None) -> int:
        return self._proc.wait(timeout=timeout)

    def terminate(self) -> None:
        if self._proc.poll() is None:
            try:
                self._proc.terminate()
            except OSError:
                pass

    def kill(self) -> None:
        if self._proc.poll() is None:
            try:
                self._proc.kill()
            except OSError:
                pass


class RealProcessLauncher(ProcessLauncherInterface):
    """
    Spawns processes with stdin closed and both output streams piped.
    """

    def spawn(self, argv: List[str], cwd: Optional[str] = None) -> ProcessHandle:
        logger.info("Spawning: %s", " ".join(argv))
        proc = subprocess.Popen(
            argv,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
        )
        return RealProcess(proc)


class RealFileSystem(FileSystemInterface):
    """
    Real file system implementation.
    """

    def read_file(self, path: str) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def write_file(self, path: str, content: str, append: bool = False) -> None:
        # Ensure parent directory exists
        parent = os.path.dirname(path)
        if parent and not os.path.exists(parent):
            os.makedirs(parent, exist_ok=True)

        mode = "a" if append else "w"
        with open(path, mode, encoding="utf-8") as f:
            f.write(content)
            f.flush()

    def file_exists(self, path: str) -> bool:
        return os.path.exists(path)

    def ensure_dir(self, path: str) -> None:
        os.makedirs(path, exist_ok=True)

    def rename_file(self, old_path: str, new_path: str) -> None:
        os.replace(old_path, new_path)


class RealClock(ClockInterface):
    """
    Real clock implementation using system time.
    """

    def now(self) -> datetime:
        return datetime.now()

    def timestamp(self) -> float:
        return time.time()

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)
