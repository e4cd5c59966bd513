from __future__ import annotations

from datetime import datetime, timedelta
from typing import Mapping, Optional

from dependency_scheduler.core.errors import CycleDetectedError
from dependency_scheduler.core.graph.levels import compute_levels
from dependency_scheduler.core.log import get_logger
from dependency_scheduler.core.model import DependencyEdge, DependencyGraph, ScheduleNode, TaskWindow


log = get_logger("critical_path")


# Critical Path Method over typed edges (lag included in every constraint):
#   finish-to-start   succ.start  >= pred.finish + lag
#   start-to-start    succ.start  >= pred.start  + lag
#   finish-to-finish  succ.finish >= pred.finish + lag
#   start-to-finish   succ.finish >= pred.start  + lag


def compute_critical_path(
    graph: DependencyGraph, windows: Mapping[str, TaskWindow]
) -> list[ScheduleNode]:
    """Forward and backward pass; returns one node per task in topological order.

    Raises CycleDetectedError when the dependencies cannot be ordered.
    """

    if not graph.task_ids:
        return []

    order = topological_order(graph)
    durations = {tid: windows[tid].duration for tid in order}

    es: dict[str, datetime] = {}
    ef: dict[str, datetime] = {}
    for tid in order:
        preds = graph.predecessors_of.get(tid, [])
        if not preds:
            start = windows[tid].start
        else:
            start = max(_earliest_start_bound(e, es, ef, durations[tid]) for e in preds)
        es[tid] = start
        ef[tid] = start + durations[tid]

    end = max(ef.values())

    ls: dict[str, datetime] = {}
    lf: dict[str, datetime] = {}
    for tid in reversed(order):
        bounds = [end]
        bounds.extend(
            _latest_finish_bound(e, ls, lf, durations[tid]) for e in graph.successors_of.get(tid, [])
        )
        lf[tid] = min(bounds)
        ls[tid] = lf[tid] - durations[tid]

    nodes: list[ScheduleNode] = []
    for tid in order:
        slack = ls[tid] - es[tid]
        nodes.append(
            ScheduleNode(
                task_id=tid,
                earliest_start=es[tid],
                earliest_finish=ef[tid],
                latest_start=ls[tid],
                latest_finish=lf[tid],
                slack=slack,
                is_critical=slack == timedelta(0),
            )
        )
    return nodes


def topological_order(graph: DependencyGraph) -> list[str]:
    """Leveler ordering, bounded to one dequeue per task."""
    assignment = compute_levels(graph)
    if assignment.unleveled or len(assignment.order) > len(graph.task_ids):
        log.error(
            "schedule could not be computed for %d tasks: dependency cycle",
            len(assignment.unleveled),
        )
        raise CycleDetectedError(
            code="E_CYCLE_DETECTED",
            message=f"schedule could not be computed for {len(assignment.unleveled)} tasks",
            path="dependencies",
            task_ids=tuple(assignment.unleveled),
        )
    return assignment.order


def _earliest_start_bound(
    e: DependencyEdge,
    es: Mapping[str, datetime],
    ef: Mapping[str, datetime],
    duration: timedelta,
) -> datetime:
    pred = e.depends_on_task_id
    if e.dependency_type == "start-to-start":
        return es[pred] + e.lag
    if e.dependency_type == "finish-to-finish":
        return ef[pred] + e.lag - duration
    if e.dependency_type == "start-to-finish":
        return es[pred] + e.lag - duration
    return ef[pred] + e.lag


def _latest_finish_bound(
    e: DependencyEdge,
    ls: Mapping[str, datetime],
    lf: Mapping[str, datetime],
    duration: timedelta,
) -> datetime:
    succ = e.task_id
    if e.dependency_type == "start-to-start":
        return ls[succ] - e.lag + duration
    if e.dependency_type == "finish-to-finish":
        return lf[succ] - e.lag
    if e.dependency_type == "start-to-finish":
        return lf[succ] - e.lag + duration
    return ls[succ] - e.lag


def critical_path(nodes: list[ScheduleNode]) -> list[ScheduleNode]:
    """Zero-slack nodes, in the dependency order `nodes` already carries."""
    return [n for n in nodes if n.is_critical]


def project_end(nodes: list[ScheduleNode]) -> Optional[datetime]:
    return max((n.earliest_finish for n in nodes), default=None)


def critical_links(graph: DependencyGraph, nodes: list[ScheduleNode]) -> list[tuple[str, str]]:
    """Driving edges between critical tasks, as (predecessor, successor) pairs.

    An edge drives when its constraint fixes the successor's earliest start.
    Together with the critical tasks these form the critical subgraph.
    """

    by_id = {n.task_id: n for n in nodes}
    critical = {n.task_id for n in nodes if n.is_critical}
    es = {n.task_id: n.earliest_start for n in nodes}
    ef = {n.task_id: n.earliest_finish for n in nodes}

    links: list[tuple[str, str]] = []
    seen: set[tuple[str, str]] = set()
    for n in nodes:
        if n.task_id not in critical:
            continue
        for e in graph.successors_of.get(n.task_id, []):
            pair = (e.depends_on_task_id, e.task_id)
            if e.task_id not in critical or pair in seen:
                continue
            succ = by_id[e.task_id]
            bound = _earliest_start_bound(e, es, ef, succ.earliest_finish - succ.earliest_start)
            if bound == succ.earliest_start:
                seen.add(pair)
                links.append(pair)
    return links


def critical_chains(graph: DependencyGraph, nodes: list[ScheduleNode]) -> list[list[str]]:
    """Split the critical subgraph into chains, in dependency order.

    A chain runs along driving critical edges and breaks wherever the
    subgraph branches or merges, so every critical task sits in exactly one
    chain and parallel branches come out as separate chains. Use
    `critical_links` to see how chains connect. Linear in tasks plus edges.
    """

    links = critical_links(graph, nodes)

    succ: dict[str, list[str]] = {}
    pred: dict[str, list[str]] = {}
    for p, s in links:
        succ.setdefault(p, []).append(s)
        pred.setdefault(s, []).append(p)

    def continues(tid: str) -> bool:
        # tid extends its only predecessor's chain
        ps = pred.get(tid, [])
        return len(ps) == 1 and len(succ.get(ps[0], [])) == 1

    chains: list[list[str]] = []
    for n in nodes:
        if not n.is_critical or continues(n.task_id):
            continue
        chain = [n.task_id]
        while len(succ.get(chain[-1], [])) == 1 and continues(succ[chain[-1]][0]):
            chain.append(succ[chain[-1]][0])
        chains.append(chain)
    return chains
