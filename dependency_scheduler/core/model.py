from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Literal, Optional, Union


DependencyType = Literal["finish-to-start", "start-to-start", "finish-to-finish", "start-to-finish"]

DEPENDENCY_TYPES: tuple[str, ...] = (
    "finish-to-start",
    "start-to-start",
    "finish-to-finish",
    "start-to-finish",
)
DEFAULT_DEPENDENCY_TYPE: DependencyType = "finish-to-start"


@dataclass(frozen=True)
class Task:
    id: str
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    estimated_duration_minutes: Optional[Union[int, float]] = None
    project_id: Optional[str] = None

    title: Optional[str] = None
    completed: bool = False


@dataclass(frozen=True)
class DependencyEdge:
    id: str
    task_id: str  # successor
    depends_on_task_id: str  # predecessor
    dependency_type: DependencyType = DEFAULT_DEPENDENCY_TYPE

    lag_minutes: float = 0
    notes: Optional[str] = None

    @property
    def lag(self) -> timedelta:
        return timedelta(minutes=self.lag_minutes)


@dataclass(frozen=True)
class DependencyGraph:
    task_ids: list[str]
    predecessors_of: dict[str, list[DependencyEdge]]
    successors_of: dict[str, list[DependencyEdge]]
    edges: list[DependencyEdge] = field(default_factory=list)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self.predecessors_of


@dataclass(frozen=True)
class TaskWindow:
    start: datetime
    finish: datetime

    @property
    def duration(self) -> timedelta:
        return self.finish - self.start


@dataclass(frozen=True)
class ScheduleNode:
    task_id: str
    earliest_start: datetime
    earliest_finish: datetime
    latest_start: datetime
    latest_finish: datetime
    slack: timedelta
    is_critical: bool


@dataclass(frozen=True)
class LevelAssignment:
    levels: dict[str, int]
    order: list[str]  # dequeue order, a topological order of the leveled tasks
    unleveled: list[str] = field(default_factory=list)

    def columns(self) -> list[list[str]]:
        """Group leveled task ids into diagram columns, in dequeue order."""
        if not self.levels:
            return []
        cols: list[list[str]] = [[] for _ in range(max(self.levels.values()) + 1)]
        for tid in self.order:
            cols[self.levels[tid]].append(tid)
        return cols
