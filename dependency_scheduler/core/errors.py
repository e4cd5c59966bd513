"""Error values raised or returned by the scheduler.

Snapshot problems (unreadable file, malformed task or dependency records)
surface as SnapshotLoadError / SnapshotValidationError. A rejected candidate
edge is not an exception: the cycle guard hands back a code, one of the
constants at the bottom of this module.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class SchedulerError(Exception):
    """Code plus message, located by snapshot file and record path (e.g. `dependencies[2].task_id`)."""

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        where = [p for p in (self.file, self.path) if p]
        return f"{':'.join(where) or '<snapshot>'}: {self.code}: {self.message}"


class SnapshotLoadError(SchedulerError):
    """The task/dependency export could not be read or parsed."""


class SnapshotValidationError(SchedulerError):
    """A task or dependency record is missing a field or holds a bad value."""


@dataclass(frozen=True)
class CycleDetectedError(SchedulerError):
    """Stored dependencies already loop, so no task order exists.

    This is a data-integrity fault in records that got past the edge gate
    (imports, manual edits), not a rejected edge. `task_ids` lists the tasks
    left on or behind the loop.
    """

    task_ids: tuple[str, ...] = field(default_factory=tuple)


# A task may not depend on itself.
INVALID_EDGE = "E_SELF_DEPENDENCY"
# The candidate would close a loop; see EdgeCheck.circular_path.
REJECTED_CYCLE = "E_CIRCULAR_DEPENDENCY"
