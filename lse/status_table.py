"""
Per-command execution state for one run.

The table is sparse: it holds only indices the test tool has reported, and
may hold indices the current document does not have (the tool may have run
an older revision of the file). Readers must treat unknown indices as
"no status".
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, asdict
from typing import Any, Iterator, Optional

from .interfaces import CommandState


@dataclass
class CommandStatusRecord:
    """Execution state snapshot for a single command index."""
    index: int
    state: CommandState
    message: Optional[str] = None
    duration_ms: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data


class StatusTable:
    """
    Sparse index -> CommandStatusRecord map scoped to one run.

    A record in a terminal state (passed/failed) never goes back to
    pending/running within the same table.
    """

    def __init__(self, file_path: str = ""):
        self.file_path = file_path
        self._records: dict[int, CommandStatusRecord] = {}

    def get(self, index: int) -> Optional[CommandStatusRecord]:
        """Record for *index*, or None if the tool never reported it."""
        return self._records.get(index)

    def state_of(self, index: int) -> Optional[CommandState]:
        record = self._records.get(index)
        return record.state if record else None

    def apply(
        self,
        index: int,
        state: CommandState,
        message: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> bool:
        """Set the record for *index*. Returns False if the change was refused.

        Terminal records may be overwritten by another terminal state but
        never by pending/running.
        """
        if index < 0:
            return False
        current = self._records.get(index)
        if current is not None and current.state.is_terminal and not state.is_terminal:
            return False
        self._records[index] = CommandStatusRecord(
            index=index,
            state=state,
            message=message,
            duration_ms=duration_ms,
        )
        return True

    def records(self) -> list[CommandStatusRecord]:
        """All records ordered by index."""
        return [self._records[i] for i in sorted(self._records)]

    def counts(self) -> dict[str, int]:
        """Number of records per state."""
        result = {state.value: 0 for state in CommandState}
        for record in self._records.values():
            result[record.state.value] += 1
        return result

    def snapshot(self) -> "StatusTable":
        """Independent copy, safe to hand to observers on other threads."""
        clone = StatusTable(self.file_path)
        clone._records = copy.deepcopy(self._records)
        return clone

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "commands": [r.to_dict() for r in self.records()],
        }

    def __contains__(self, index: object) -> bool:
        return index in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CommandStatusRecord]:
        return iter(self.records())
