"""Tests for the event bus and the JSONL event emitter."""

from __future__ import annotations

import json

import pytest

from lse.events import (
    EventBus,
    EventEmitter,
    LogLine,
    MockLocationStarted,
    RunAborted,
    RunComplete,
    SpawnFailed,
    StatusChange,
    event_to_record,
)
from lse.implementations import RealFileSystem
from lse.interfaces import CommandState
from lse.mocks import MockClock
from lse.status_table import StatusTable


class TestEventBus:
    def test_publish_in_subscription_order(self):
        bus = EventBus()
        seen = []
        bus.subscribe(lambda e: seen.append(("a", e)))
        bus.subscribe(lambda e: seen.append(("b", e)))
        bus.publish(RunAborted())
        assert seen == [("a", RunAborted()), ("b", RunAborted())]

    def test_unsubscribe(self):
        bus = EventBus()
        seen = []
        unsubscribe = bus.subscribe(seen.append)
        unsubscribe()
        unsubscribe()  # idempotent
        bus.publish(RunAborted())
        assert seen == []

    def test_failing_observer_is_logged_and_skipped(self, caplog):
        bus = EventBus()
        seen = []

        def _boom(event):
            raise ValueError("nope")

        bus.subscribe(_boom)
        bus.subscribe(seen.append)
        bus.publish(RunComplete(exit_code=0))
        assert seen == [RunComplete(exit_code=0)]
        assert "Event observer failed for RunComplete" in caplog.text


class TestEventToRecord:
    def test_status_change(self):
        table = StatusTable("a.yaml")
        table.apply(0, CommandState.RUNNING, "Running: open")
        event_type, data = event_to_record(StatusChange(table=table))
        assert event_type == "status_change"
        assert data["commands"][0]["state"] == "running"

    @pytest.mark.parametrize("event,expected", [
        (MockLocationStarted(point_count=3), ("mock_location_started", {"point_count": 3})),
        (RunComplete(exit_code=2), ("run_complete", {"exit_code": 2})),
        (RunAborted(), ("run_aborted", {})),
        (SpawnFailed(reason="x"), ("spawn_failed", {"reason": "x"})),
        (LogLine(stream="stdout", text="hi"), ("log_line", {"stream": "stdout", "text": "hi"})),
    ])
    def test_simple_events(self, event, expected):
        assert event_to_record(event) == expected

    def test_unknown_event(self):
        with pytest.raises(TypeError):
            event_to_record(object())


class TestEventEmitter:
    def _read(self, path):
        return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]

    def test_emit_appends_jsonl_with_sequence(self, tmp_path):
        path = tmp_path / "events" / "events.jsonl"
        emitter = EventEmitter(RealFileSystem(), MockClock(), str(path))
        emitter.observe(RunComplete(exit_code=0))
        emitter.observe(RunComplete(exit_code=3))

        records = self._read(path)
        assert [r["sequence"] for r in records] == [1, 2]
        assert records[0]["type"] == "run_complete"
        assert records[0]["level"] == "info"
        assert records[1]["level"] == "warning"
        assert records[0]["timestamp"] == "2025-01-01T00:00:00"

    def test_spawn_failure_is_error_level(self, tmp_path):
        path = tmp_path / "events.jsonl"
        emitter = EventEmitter(RealFileSystem(), MockClock(), str(path))
        emitter.observe(SpawnFailed(reason="missing"))
        assert self._read(path)[0]["level"] == "error"

    def test_log_lines_skipped_by_default(self, tmp_path):
        path = tmp_path / "events.jsonl"
        emitter = EventEmitter(RealFileSystem(), MockClock(), str(path))
        emitter.observe(LogLine(stream="stdout", text="hi"))
        assert not path.exists()

        verbose = EventEmitter(RealFileSystem(), MockClock(), str(path), include_log_lines=True)
        verbose.observe(LogLine(stream="stdout", text="✓ hi"))
        assert self._read(path)[0]["data"] == {"stream": "stdout", "text": "✓ hi"}

    def test_sequence_resumes_from_existing_file(self, tmp_path):
        path = tmp_path / "events.jsonl"
        EventEmitter(RealFileSystem(), MockClock(), str(path)).emit("custom", {"n": 1})
        emitter = EventEmitter(RealFileSystem(), MockClock(), str(path))
        emitter.set_session_id("run_1")
        payload = emitter.emit("custom", {"n": 2})
        assert payload["sequence"] == 2
        assert payload["session_id"] == "run_1"

    def test_corrupt_last_line_restarts_sequence(self, tmp_path):
        path = tmp_path / "events.jsonl"
        path.write_text("not json\n", encoding="utf-8")
        emitter = EventEmitter(RealFileSystem(), MockClock(), str(path))
        assert emitter.emit("custom")["sequence"] == 1
