"""Host-facing entry points: the dependency mutation gate and scope reports."""
from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import ContextManager, Iterable, Optional

from dependency_scheduler.core.errors import CycleDetectedError
from dependency_scheduler.core.graph.build_graph import build_graph
from dependency_scheduler.core.graph.cycle_guard import check_edge
from dependency_scheduler.core.graph.levels import compute_levels
from dependency_scheduler.core.log import get_logger
from dependency_scheduler.core.model import (
    DEFAULT_DEPENDENCY_TYPE,
    DEPENDENCY_TYPES,
    DependencyEdge,
    DependencyGraph,
    DependencyType,
    LevelAssignment,
    ScheduleNode,
    Task,
)
from dependency_scheduler.core.schedule.critical_path import compute_critical_path
from dependency_scheduler.core.schedule.durations import derive_windows
from dependency_scheduler.core.store.base import DependencyStore


log = get_logger("service")

# Default per-scope locks for in-process hosts. One entry per scope id ever
# used; never pruned. Hosts with many short-lived scopes should pass `lock`.
_scope_locks: dict[Optional[str], threading.Lock] = defaultdict(threading.Lock)
_scope_locks_guard = threading.Lock()


def _lock_for(scope_id: Optional[str]) -> threading.Lock:
    with _scope_locks_guard:
        return _scope_locks[scope_id]


@dataclass(frozen=True)
class EdgeResult:
    ok: bool
    edge: Optional[DependencyEdge] = None
    code: Optional[str] = None
    message: Optional[str] = None
    circular_path: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ScopeReport:
    scope_id: Optional[str]
    levels: LevelAssignment
    schedule: list[ScheduleNode]
    warnings: list[str] = field(default_factory=list)
    cycle_task_ids: list[str] = field(default_factory=list)


def create_dependency_edge(
    store: DependencyStore,
    scope_id: Optional[str],
    task_id: str,
    depends_on_task_id: str,
    dependency_type: DependencyType = DEFAULT_DEPENDENCY_TYPE,
    lag_minutes: float = 0,
    notes: Optional[str] = None,
    lock: Optional[ContextManager[object]] = None,
) -> EdgeResult:
    """Check a candidate dependency against the scope and persist it if accepted.

    Check-then-persist runs under `lock`, or a module-level lock for the scope
    when none is given, so callers sharing it cannot race two edges into a
    joint cycle. Serializing across processes is up to the host.
    """

    if dependency_type not in DEPENDENCY_TYPES:
        return EdgeResult(
            ok=False,
            code="E_INVALID_ENUM",
            message=f"dependency_type must be one of {list(DEPENDENCY_TYPES)}",
        )

    with lock if lock is not None else _lock_for(scope_id):
        graph = build_graph(store.list_tasks_in_scope(scope_id), store.list_dependency_edges(scope_id))
        check = check_edge(graph, task_id, depends_on_task_id)
        if not check.ok:
            return EdgeResult(
                ok=False,
                code=check.code,
                message=check.message,
                circular_path=list(check.circular_path),
            )
        edge = store.create_edge(
            task_id,
            depends_on_task_id,
            dependency_type,
            lag_minutes=lag_minutes,
            notes=notes,
        )
    return EdgeResult(ok=True, edge=edge)


def schedule_scope(
    tasks: Iterable[Task],
    edges: Iterable[DependencyEdge],
    scope_id: Optional[str] = None,
    anchor: Optional[datetime] = None,
) -> ScopeReport:
    """Levels and CPM schedule for one scope's snapshot.

    A dependency cycle in the data does not raise: the report carries an empty
    schedule and a warning instead.
    """

    task_list = list(tasks)
    graph = build_graph(task_list, edges)
    levels = compute_levels(graph)
    try:
        schedule = compute_critical_path(graph, derive_windows(task_list, anchor=anchor))
    except CycleDetectedError as e:
        log.warning("scope %s: %s", scope_id, e.message)
        return ScopeReport(
            scope_id=scope_id,
            levels=levels,
            schedule=[],
            warnings=[e.message],
            cycle_task_ids=list(e.task_ids),
        )
    return ScopeReport(scope_id=scope_id, levels=levels, schedule=schedule)


def compute_scope(
    store: DependencyStore, scope_id: Optional[str], anchor: Optional[datetime] = None
) -> ScopeReport:
    return schedule_scope(
        store.list_tasks_in_scope(scope_id),
        store.list_dependency_edges(scope_id),
        scope_id=scope_id,
        anchor=anchor,
    )


def can_complete_task(graph: DependencyGraph, tasks: Iterable[Task], task_id: str) -> bool:
    """False while a finish-to-start or finish-to-finish prerequisite is still open."""
    completed = {t.id: t.completed for t in tasks}
    for e in graph.predecessors_of.get(task_id, []):
        if e.dependency_type in ("finish-to-start", "finish-to-finish"):
            if not completed.get(e.depends_on_task_id, False):
                return False
    return True
