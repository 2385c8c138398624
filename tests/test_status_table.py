"""Tests for the per-run command status table."""

from lse.interfaces import CommandState
from lse.status_table import StatusTable


def test_unknown_index_has_no_record():
    table = StatusTable("a.yaml")
    assert table.get(5) is None
    assert table.state_of(5) is None
    assert 5 not in table
    assert len(table) == 0


def test_apply_and_get():
    table = StatusTable("a.yaml")
    assert table.apply(0, CommandState.RUNNING, "Running: launchApp")
    record = table.get(0)
    assert record.state is CommandState.RUNNING
    assert record.message == "Running: launchApp"
    assert record.duration_ms is None


def test_terminal_state_never_regresses():
    table = StatusTable()
    table.apply(0, CommandState.PASSED, "Passed: launchApp", 2395)
    assert not table.apply(0, CommandState.RUNNING, "Running: launchApp")
    assert not table.apply(0, CommandState.PENDING)
    record = table.get(0)
    assert record.state is CommandState.PASSED
    assert record.duration_ms == 2395


def test_terminal_may_be_replaced_by_terminal():
    table = StatusTable()
    table.apply(1, CommandState.PASSED, "Passed: tapOn", 10)
    assert table.apply(1, CommandState.FAILED, "Failed: tapOn")
    assert table.state_of(1) is CommandState.FAILED


def test_negative_index_refused():
    table = StatusTable()
    assert not table.apply(-1, CommandState.RUNNING)
    assert len(table) == 0


def test_records_sorted_and_counts():
    table = StatusTable()
    table.apply(2, CommandState.FAILED)
    table.apply(0, CommandState.PASSED, duration_ms=1)
    table.apply(1, CommandState.RUNNING)
    assert [r.index for r in table.records()] == [0, 1, 2]
    assert [r.index for r in table] == [0, 1, 2]
    assert table.counts() == {"pending": 0, "running": 1, "passed": 1, "failed": 1}


def test_snapshot_is_independent():
    table = StatusTable("a.yaml")
    table.apply(0, CommandState.RUNNING)
    snap = table.snapshot()
    table.apply(0, CommandState.PASSED)
    assert snap.state_of(0) is CommandState.RUNNING
    assert snap.file_path == "a.yaml"


def test_to_dict():
    table = StatusTable("a.yaml")
    table.apply(0, CommandState.PASSED, "Passed: open", 7)
    assert table.to_dict() == {
        "file_path": "a.yaml",
        "commands": [
            {"index": 0, "state": "passed", "message": "Passed: open", "duration_ms": 7},
        ],
    }
