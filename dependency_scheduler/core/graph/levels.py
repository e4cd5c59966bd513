from __future__ import annotations

from collections import deque

from dependency_scheduler.core.log import get_logger
from dependency_scheduler.core.model import DependencyGraph, LevelAssignment


log = get_logger("levels")


def compute_levels(graph: DependencyGraph) -> LevelAssignment:
    """Longest-path leveling (Kahn's algorithm).

    Roots get level 0; every other task gets 1 + the highest level among its
    predecessors. Ready tasks are processed FIFO so the output is stable for a
    given input order. Tasks that never become ready (they sit on a cycle or
    downstream of one) are returned in `unleveled`.
    """

    indegree: dict[str, int] = {tid: len(graph.predecessors_of.get(tid, [])) for tid in graph.task_ids}
    levels: dict[str, int] = {}
    q: deque[str] = deque()

    for tid in graph.task_ids:
        if indegree[tid] == 0:
            levels[tid] = 0
            q.append(tid)

    order: list[str] = []
    while q:
        cur = q.popleft()
        order.append(cur)
        cur_level = levels[cur]
        for e in graph.successors_of.get(cur, []):
            nxt = e.task_id
            indegree[nxt] -= 1
            levels[nxt] = max(levels.get(nxt, 0), cur_level + 1)
            if indegree[nxt] == 0:
                q.append(nxt)

    done = set(order)
    unleveled = [tid for tid in graph.task_ids if tid not in done]
    if unleveled:
        log.warning(
            "dependency cycle: %d task(s) could not be leveled: %s",
            len(unleveled),
            ", ".join(unleveled),
        )
        for tid in unleveled:
            levels.pop(tid, None)

    return LevelAssignment(levels=levels, order=order, unleveled=unleveled)
