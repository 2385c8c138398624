"""Script commands for lsectl: list commands, run a script."""

from __future__ import annotations

from typing import Any, Optional

from lse.command_index import index_text
from lse.config import LseConfig
from lse.errors import ProcessSpawnFailure
from lse.events import Event, EventEmitter, LogLine
from lse.implementations import RealClock, RealFileSystem
from lse.interfaces import RunOutcome
from lse.run_session import RunSession, TestRunner
from lse.status_table import StatusTable

from lse.cli.helpers import _device_from_args, _print, _read_text

EXIT_SPAWN_FAILED = 127
EXIT_INTERRUPTED = 130


def cmd_commands(*, file_path: str, json_mode: bool) -> int:
    """List command entries (index, line, name) of a script."""
    try:
        text = _read_text(file_path)
    except OSError as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return 1

    entries = index_text(text)
    if json_mode:
        _print({
            "file": file_path,
            "commands": [
                {"index": e.index, "line": e.line_number, "name": e.name}
                for e in entries
            ],
        }, json_mode=True)
        return 0

    if not entries:
        print("no commands")
        return 0
    for e in entries:
        # 1-based line numbers, as shown by editors
        print(f"[{e.index}] line {e.line_number + 1}: {e.name}")
    return 0


def _format_table(table: StatusTable) -> str:
    lines = []
    for record in table.records():
        duration = f"{record.duration_ms}ms" if record.duration_ms is not None else "-"
        lines.append(f"[{record.index}] {record.state.value:<8} {duration:>8}  {record.message or ''}")
    return "\n".join(lines)


def _summary(session: RunSession) -> dict[str, Any]:
    outcome = session.outcome
    return {
        "file": session.file_path,
        "outcome": outcome.value if outcome else None,
        "exit_code": session.exit_code,
        "counts": session.table.counts(),
        "commands": [r.to_dict() for r in session.table.records()],
    }


def _exit_code_for(session: RunSession) -> int:
    if session.outcome is RunOutcome.ABORTED:
        return EXIT_INTERRUPTED
    code = session.exit_code
    if code is None:
        return 1
    if code < 0:
        # Killed by signal N -> shell convention 128 + N
        return 128 - code
    return code


def cmd_run(
    *,
    config: LseConfig,
    file_path: str,
    command_index: Optional[int],
    platform: Optional[str],
    device_id: Optional[str],
    events_path: Optional[str],
    json_mode: bool,
) -> int:
    """Run a script and print its status table when the tool exits.

    Exit code mirrors the tool's; 127 if it could not be started, 130 on
    Ctrl+C.
    """
    try:
        device = _device_from_args(platform, device_id)
    except ValueError as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return 2

    runner = TestRunner.with_session_log(config)
    if events_path:
        emitter = EventEmitter(RealFileSystem(), RealClock(), events_path)
        runner.subscribe(emitter.observe)
    if not json_mode:
        def _echo(event: Event) -> None:
            if isinstance(event, LogLine):
                print(event.text, flush=True)
        runner.subscribe(_echo)

    try:
        if command_index is None:
            session = runner.run_file(file_path, device=device)
        else:
            session = runner.run_command(file_path, command_index, device=device)
    except ProcessSpawnFailure as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return EXIT_SPAWN_FAILED
    except ValueError as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return 2

    try:
        while session.wait(0.5) is None:
            pass
    except KeyboardInterrupt:
        runner.stop()

    if json_mode:
        summary = _summary(session)
        if runner.run_log is not None:
            summary["log"] = runner.run_log.log_path
        _print(summary, json_mode=True)
    else:
        table_text = _format_table(session.table)
        if table_text:
            print(table_text)
        outcome = session.outcome
        if outcome is RunOutcome.ABORTED:
            print("Test stopped by user")
        elif session.exit_code == 0:
            print("Test completed successfully!")
        else:
            print(f"Test failed with exit code: {session.exit_code}")
    return _exit_code_for(session)
