"""Tests for the inspector session."""

from __future__ import annotations

import sys
import textwrap
import time
from unittest.mock import patch

import pytest

from lse.devices import Device
from lse.errors import ProcessSpawnFailure, ReadinessTimeout
from lse.events import LogLine, ReadinessTimedOut, RunAborted, SpawnFailed
from lse.inspector import Inspector, build_inspect_args
from lse.mocks import MockClock, MockProcess

PIXEL = Device(id="R58M", name="Pixel 7", platform="android", state="device", type="physical")


def _wait_until(condition, timeout_s=5.0):
    deadline = time.monotonic() + timeout_s
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.01)


def test_build_inspect_args():
    assert build_inspect_args("ios", 9333) == ["inspect", "--platform", "ios", "--port", "9333"]
    assert build_inspect_args("android", 9400, "R58M")[-2:] == ["--device", "R58M"]


@patch("lse.inspector.find_free_port", return_value=9400)
class TestInspector:
    def test_ready(self, mock_port, config, launcher):
        proc = MockProcess(finished=False)
        launcher.queue_process(proc)
        inspector = Inspector(config, launcher, clock=MockClock())

        with patch("lse.port_waiter.port_accepts_connection", return_value=True):
            session = inspector.start("android", PIXEL)

        mock_port.assert_called_once_with(config.inspector_base_port)
        assert launcher.spawned == [[
            sys.executable, "-m", "lumi_tester",
            "inspect", "--platform", "android", "--port", "9400", "--device", "R58M",
        ]]
        assert session.url == "http://localhost:9400"
        assert session.is_running
        assert inspector.session is session

    def test_process_exits_before_ready(self, _mock_port, config, launcher):
        launcher.queue_process(MockProcess(exit_code=101))
        inspector = Inspector(config, launcher, clock=MockClock())
        with pytest.raises(ReadinessTimeout) as exc_info:
            inspector.start("ios")
        assert exc_info.value.exited
        assert exc_info.value.port == 9400
        assert inspector.session is None

    def test_never_ready(self, _mock_port, config, launcher, recorded_bus):
        bus, events = recorded_bus
        proc = MockProcess(finished=False)
        launcher.queue_process(proc)
        config.readiness_timeout_s = 2.0
        inspector = Inspector(config, launcher, clock=MockClock(), bus=bus)

        with patch("lse.port_waiter.port_accepts_connection", return_value=False):
            with pytest.raises(ReadinessTimeout) as exc_info:
                inspector.start("web")

        assert not exc_info.value.exited
        assert exc_info.value.timeout_s == 2.0
        assert proc.terminate_calls == 1
        assert proc.poll() is not None
        assert ReadinessTimedOut(port=9400, timeout_s=2.0) in events

    def test_spawn_failure(self, _mock_port, config, launcher, recorded_bus):
        bus, events = recorded_bus
        launcher.fail_with = FileNotFoundError("missing")
        inspector = Inspector(config, launcher, clock=MockClock(), bus=bus)
        with pytest.raises(ProcessSpawnFailure):
            inspector.start("android")
        assert len([e for e in events if isinstance(e, SpawnFailed)]) == 1

    def test_new_inspector_stops_old(self, _mock_port, config, launcher):
        first, second = MockProcess(finished=False), MockProcess(finished=False)
        launcher.queue_process(first)
        launcher.queue_process(second)
        inspector = Inspector(config, launcher, clock=MockClock())

        with patch("lse.port_waiter.port_accepts_connection", return_value=True):
            inspector.start("android")
            inspector.start("android")

        assert first.terminate_calls == 1
        assert second.poll() is None
        assert inspector.stop()
        assert second.poll() is not None
        assert not inspector.stop()

    def test_output_drained_while_waiting(self, _mock_port, config, launcher, recorded_bus):
        bus, events = recorded_bus
        build_log = b"   Compiling lumi-tester v0.1.0 (/src/lumi-tester)\n" * 5000
        proc = MockProcess(stdout=b"Inspector listening\n", stderr=build_log, finished=False)
        launcher.queue_process(proc)
        inspector = Inspector(config, launcher, clock=MockClock(), bus=bus)

        with patch("lse.port_waiter.port_accepts_connection", return_value=True):
            session = inspector.start("web")

        engine = session.output.engine
        banner = LogLine(stream="stdout", text="Inspector listening")
        _wait_until(lambda: engine.lines_seen == 5001 and banner in events)
        assert proc.stderr.read() == b""
        assert engine.lines_suppressed == 5000

        inspector.stop()
        session.output.join(2.0)
        assert events[-1] == RunAborted()


_CHATTY_TOOL = textwrap.dedent("""
    import socket
    import sys
    import time

    port = int(sys.argv[sys.argv.index("--port") + 1])
    for i in range(5000):
        sys.stderr.write("   Compiling crate-%04d v0.1.0 (/src/crate-%04d)\\n" % (i, i))
    sys.stderr.flush()

    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind(("127.0.0.1", port))
    server.listen(5)
    while True:
        conn, _ = server.accept()
        conn.close()
""")


def test_tool_printing_a_build_log_still_becomes_ready(tmp_path, config):
    """A tool writing more than a pipe buffer before binding must not stall."""
    tool = tmp_path / "chatty_tool.py"
    tool.write_text(_CHATTY_TOOL)
    config.tool_command = [sys.executable, str(tool)]
    config.readiness_timeout_s = 20.0
    inspector = Inspector(config)

    session = inspector.start("web")
    try:
        assert session.is_running
        assert session.url == f"http://localhost:{session.port}"
    finally:
        assert inspector.stop()
    assert not session.is_running
