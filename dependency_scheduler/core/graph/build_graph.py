from __future__ import annotations

from typing import Iterable, Optional

from dependency_scheduler.core.log import get_logger
from dependency_scheduler.core.model import DependencyEdge, DependencyGraph, Task


log = get_logger("graph")


def tasks_in_scope(tasks: Iterable[Task], scope_id: Optional[str]) -> list[Task]:
    """Select the tasks belonging to one project. A None scope keeps everything."""
    if scope_id is None:
        return list(tasks)
    return [t for t in tasks if t.project_id == scope_id]


def build_graph(tasks: Iterable[Task], edges: Iterable[DependencyEdge]) -> DependencyGraph:
    """Build successor/predecessor adjacency for the given task subset.

    Edges with an endpoint outside `tasks` are dropped, so a dependency that
    points into another project never breaks the current one. Self-referential
    edges are dropped too.
    """

    task_ids: list[str] = []
    seen: set[str] = set()
    for t in tasks:
        if t.id in seen:
            continue
        seen.add(t.id)
        task_ids.append(t.id)

    predecessors_of: dict[str, list[DependencyEdge]] = {tid: [] for tid in task_ids}
    successors_of: dict[str, list[DependencyEdge]] = {tid: [] for tid in task_ids}
    kept: list[DependencyEdge] = []

    for e in edges:
        if e.task_id == e.depends_on_task_id:
            log.debug("dropping self-referential edge %s on %s", e.id, e.task_id)
            continue
        if e.task_id not in seen or e.depends_on_task_id not in seen:
            log.debug(
                "dropping out-of-scope edge %s (%s -> %s)", e.id, e.depends_on_task_id, e.task_id
            )
            continue
        predecessors_of[e.task_id].append(e)
        successors_of[e.depends_on_task_id].append(e)
        kept.append(e)

    return DependencyGraph(
        task_ids=task_ids,
        predecessors_of=predecessors_of,
        successors_of=successors_of,
        edges=kept,
    )


def dependencies_of(graph: DependencyGraph, task_id: str) -> list[DependencyEdge]:
    """Edges the task is blocked by."""
    return list(graph.predecessors_of.get(task_id, []))


def dependents_of(graph: DependencyGraph, task_id: str) -> list[DependencyEdge]:
    """Edges of tasks blocked by this task."""
    return list(graph.successors_of.get(task_id, []))
