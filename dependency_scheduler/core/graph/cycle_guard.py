from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from dependency_scheduler.core.errors import INVALID_EDGE, REJECTED_CYCLE
from dependency_scheduler.core.log import get_logger
from dependency_scheduler.core.model import DependencyGraph


log = get_logger("cycle_guard")


@dataclass(frozen=True)
class EdgeCheck:
    ok: bool
    code: Optional[str] = None
    message: Optional[str] = None
    # task ids along the cycle the candidate would close, first id repeated at the end
    circular_path: list[str] = field(default_factory=list)


def check_edge(graph: DependencyGraph, task_id: str, depends_on_task_id: str) -> EdgeCheck:
    """Decide whether `task_id` may depend on `depends_on_task_id`.

    `graph` must not already contain the candidate edge. Ids missing from the
    graph are accepted; the store decides whether they exist.

    The candidate closes a cycle exactly when `task_id` already precedes
    `depends_on_task_id`, so the search walks prerequisites upward from
    `depends_on_task_id` looking for `task_id`.
    """

    if task_id == depends_on_task_id:
        return EdgeCheck(ok=False, code=INVALID_EDGE, message="A task cannot depend on itself")

    if task_id not in graph or depends_on_task_id not in graph:
        return EdgeCheck(ok=True)

    chain = _prerequisite_chain(graph, depends_on_task_id, task_id)
    if chain is not None:
        # chain runs depends_on -> ... -> task_id against edge direction
        cycle = list(reversed(chain)) + [task_id]
        log.info(
            "rejected dependency %s -> %s: would close %s",
            depends_on_task_id,
            task_id,
            " -> ".join(cycle),
        )
        return EdgeCheck(
            ok=False,
            code=REJECTED_CYCLE,
            message="This would create a circular dependency",
            circular_path=cycle,
        )
    return EdgeCheck(ok=True)


def can_add_edge(graph: DependencyGraph, task_id: str, depends_on_task_id: str) -> bool:
    return check_edge(graph, task_id, depends_on_task_id).ok


def _prerequisite_chain(graph: DependencyGraph, start: str, target: str) -> Optional[list[str]]:
    """BFS over predecessor edges; returns ids start..target when target is reachable."""
    parent: dict[str, Optional[str]] = {start: None}
    q: deque[str] = deque([start])
    while q:
        cur = q.popleft()
        if cur == target:
            path: list[str] = []
            node: Optional[str] = cur
            while node is not None:
                path.append(node)
                node = parent[node]
            return list(reversed(path))
        for e in graph.predecessors_of.get(cur, []):
            nxt = e.depends_on_task_id
            if nxt not in parent:
                parent[nxt] = cur
                q.append(nxt)
    return None
