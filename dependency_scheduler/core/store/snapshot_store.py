from __future__ import annotations

from typing import Any, Optional

from dependency_scheduler.core.errors import SnapshotValidationError
from dependency_scheduler.core.graph.build_graph import tasks_in_scope
from dependency_scheduler.core.io.load_snapshot import dump_snapshot, load_snapshot
from dependency_scheduler.core.log import get_logger
from dependency_scheduler.core.model import DEFAULT_DEPENDENCY_TYPE, DependencyEdge, DependencyType, Task
from dependency_scheduler.core.store.base import edges_touching, new_edge_id
from dependency_scheduler.core.validate.validate_snapshot import Snapshot, validate_snapshot


log = get_logger("store")


class SnapshotStore:
    """DependencyStore backed by a YAML/JSON snapshot file.

    Raises SnapshotLoadError / the first SnapshotValidationError on open.
    Mutations rewrite the file immediately, one record at a time; a record
    that fails validation raises and leaves the store as it was.
    """

    def __init__(self, path: str, default_dependency_type: str = DEFAULT_DEPENDENCY_TYPE) -> None:
        self.path = path
        self.default_dependency_type = default_dependency_type
        self.raw: dict[str, Any] = load_snapshot(path)
        self.snapshot: Snapshot = self._validate(self.raw)

    def _validate(self, raw: dict[str, Any]) -> Snapshot:
        snap, errors = validate_snapshot(raw, self.default_dependency_type)
        if errors or snap is None:
            raise errors[0] if errors else SnapshotValidationError(
                code="E_INVALID_SNAPSHOT", message="snapshot did not validate", file=self.path
            )
        return snap

    def list_tasks_in_scope(self, scope_id: Optional[str]) -> list[Task]:
        return tasks_in_scope(self.snapshot.tasks, scope_id)

    def list_dependency_edges(self, scope_id: Optional[str]) -> list[DependencyEdge]:
        ids = {t.id for t in self.list_tasks_in_scope(scope_id)}
        return edges_touching(self.snapshot.dependencies, ids)

    def create_edge(
        self,
        task_id: str,
        depends_on_task_id: str,
        dependency_type: DependencyType,
        lag_minutes: float = 0,
        notes: Optional[str] = None,
    ) -> DependencyEdge:
        record: dict[str, Any] = {
            "id": new_edge_id(),
            "task_id": task_id,
            "depends_on_task_id": depends_on_task_id,
            "dependency_type": dependency_type,
        }
        if lag_minutes:
            record["lag_minutes"] = lag_minutes
        if notes:
            record["notes"] = notes

        deps = self.raw.get("dependencies") or []
        self._commit({**self.raw, "dependencies": list(deps) + [record]})
        log.info("created dependency %s: %s -> %s", record["id"], depends_on_task_id, task_id)
        return next(e for e in self.snapshot.dependencies if e.id == record["id"])

    def delete_edge(self, edge_id: str) -> bool:
        deps = self.raw.get("dependencies") or []
        kept = [d for d in deps if not (isinstance(d, dict) and d.get("id") == edge_id)]
        if len(kept) == len(deps):
            return False
        self._commit({**self.raw, "dependencies": kept})
        log.info("deleted dependency %s", edge_id)
        return True

    def _commit(self, raw: dict[str, Any]) -> None:
        # nothing changes unless the new records validate and reach disk
        snap = self._validate(raw)
        dump_snapshot(raw, self.path)
        self.raw = raw
        self.snapshot = snap
