from __future__ import annotations

import uuid
from typing import Iterable, Optional, Protocol

from dependency_scheduler.core.graph.build_graph import tasks_in_scope
from dependency_scheduler.core.model import DependencyEdge, DependencyType, Task


class DependencyStore(Protocol):
    """Read/write surface of the task and dependency record store."""

    def list_tasks_in_scope(self, scope_id: Optional[str]) -> list[Task]: ...

    def list_dependency_edges(self, scope_id: Optional[str]) -> list[DependencyEdge]: ...

    def create_edge(
        self,
        task_id: str,
        depends_on_task_id: str,
        dependency_type: DependencyType,
        lag_minutes: float = 0,
        notes: Optional[str] = None,
    ) -> DependencyEdge: ...

    def delete_edge(self, edge_id: str) -> bool: ...


def new_edge_id() -> str:
    return uuid.uuid4().hex


def edges_touching(edges: Iterable[DependencyEdge], task_ids: set[str]) -> list[DependencyEdge]:
    return [e for e in edges if e.task_id in task_ids or e.depends_on_task_id in task_ids]


class InMemoryDependencyStore:
    """Store kept in process memory; for embedding hosts and tests."""

    def __init__(self, tasks: Iterable[Task] = (), edges: Iterable[DependencyEdge] = ()) -> None:
        self.tasks: list[Task] = list(tasks)
        self.edges: list[DependencyEdge] = list(edges)

    def list_tasks_in_scope(self, scope_id: Optional[str]) -> list[Task]:
        return tasks_in_scope(self.tasks, scope_id)

    def list_dependency_edges(self, scope_id: Optional[str]) -> list[DependencyEdge]:
        ids = {t.id for t in self.list_tasks_in_scope(scope_id)}
        return edges_touching(self.edges, ids)

    def create_edge(
        self,
        task_id: str,
        depends_on_task_id: str,
        dependency_type: DependencyType,
        lag_minutes: float = 0,
        notes: Optional[str] = None,
    ) -> DependencyEdge:
        edge = DependencyEdge(
            id=new_edge_id(),
            task_id=task_id,
            depends_on_task_id=depends_on_task_id,
            dependency_type=dependency_type,
            lag_minutes=lag_minutes,
            notes=notes,
        )
        self.edges.append(edge)
        return edge

    def delete_edge(self, edge_id: str) -> bool:
        before = len(self.edges)
        self.edges = [e for e in self.edges if e.id != edge_id]
        return len(self.edges) != before
