from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional, cast

from dependency_scheduler.core.errors import SnapshotValidationError
from dependency_scheduler.core.model import (
    DEFAULT_DEPENDENCY_TYPE,
    DEPENDENCY_TYPES,
    DependencyEdge,
    DependencyType,
    Task,
)


@dataclass(frozen=True)
class Snapshot:
    schema_version: str
    tasks: list[Task]
    dependencies: list[DependencyEdge]


def parse_datetime(v: Any) -> Optional[datetime]:
    """ISO string / date / datetime -> aware datetime (naive values are UTC).

    Returns None for values that cannot be read as a date.
    """
    if isinstance(v, datetime):
        dt = v
    elif isinstance(v, date):
        dt = datetime(v.year, v.month, v.day)
    elif isinstance(v, str) and v.strip():
        text = v.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def validate_snapshot(
    snapshot: dict[str, Any], default_dependency_type: str = DEFAULT_DEPENDENCY_TYPE
) -> tuple[Optional[Snapshot], list[SnapshotValidationError]]:
    """Validate a loaded snapshot.

    Returns (snapshot, errors). Snapshot is None when errors exist. Dangling
    dependency references are not errors here: the graph builder drops them.
    """

    file = cast(Optional[str], snapshot.get("__file__"))
    errors: list[SnapshotValidationError] = []

    def err(code: str, message: str, path: str) -> None:
        errors.append(SnapshotValidationError(code=code, message=message, file=file, path=path))

    schema_version = snapshot.get("schema_version")
    if not isinstance(schema_version, str) or not schema_version.strip():
        err("E_REQUIRED_FIELD", "schema_version is required and must be a non-empty string", "schema_version")

    raw_tasks = snapshot.get("tasks")
    if not isinstance(raw_tasks, list):
        err("E_REQUIRED_FIELD", "tasks is required and must be an array", "tasks")
        return None, _sorted(errors)

    tasks: list[Task] = []
    seen_ids: set[str] = set()
    for i, raw in enumerate(raw_tasks):
        p = f"tasks[{i}]"
        if not isinstance(raw, dict):
            err("E_INVALID_TYPE", "task must be an object", p)
            continue

        tid = raw.get("id")
        if not isinstance(tid, str) or not tid.strip():
            err("E_REQUIRED_FIELD", "id is required and must be a non-empty string", f"{p}.id")
            continue
        if tid in seen_ids:
            err("E_DUPLICATE_ID", f"duplicate task id: {tid}", f"{p}.id")
            continue
        seen_ids.add(tid)

        dates: dict[str, Optional[datetime]] = {}
        for key in ("start_date", "due_date"):
            v = raw.get(key)
            dates[key] = None
            if v is None:
                continue
            parsed = parse_datetime(v)
            if parsed is None:
                err("E_INVALID_DATE", f"{key} must be an ISO-8601 date or datetime", f"{p}.{key}")
            dates[key] = parsed

        est = raw.get("estimated_duration_minutes")
        if est is not None and not _is_number(est):
            err("E_INVALID_TYPE", "estimated_duration_minutes must be a number", f"{p}.estimated_duration_minutes")
            est = None

        project_id = raw.get("project_id")
        if project_id is not None and not isinstance(project_id, str):
            err("E_INVALID_TYPE", "project_id must be a string", f"{p}.project_id")

        title = raw.get("title")
        if title is not None and not isinstance(title, str):
            err("E_INVALID_TYPE", "title must be a string", f"{p}.title")

        completed = raw.get("completed", False)
        if not isinstance(completed, bool):
            err("E_INVALID_TYPE", "completed must be a boolean", f"{p}.completed")
            completed = False

        tasks.append(
            Task(
                id=tid,
                start_date=dates["start_date"],
                due_date=dates["due_date"],
                estimated_duration_minutes=est,
                project_id=cast(Optional[str], project_id),
                title=cast(Optional[str], title),
                completed=completed,
            )
        )

    raw_deps = snapshot.get("dependencies")
    if raw_deps is None:
        raw_deps = []
    if not isinstance(raw_deps, list):
        err("E_INVALID_TYPE", "dependencies must be an array", "dependencies")
        return None, _sorted(errors)

    edges: list[DependencyEdge] = []
    seen_edge_ids: set[str] = set()
    for i, raw in enumerate(raw_deps):
        p = f"dependencies[{i}]"
        if not isinstance(raw, dict):
            err("E_INVALID_TYPE", "dependency must be an object", p)
            continue

        eid = raw.get("id")
        if not isinstance(eid, str) or not eid.strip():
            err("E_REQUIRED_FIELD", "id is required and must be a non-empty string", f"{p}.id")
            continue
        if eid in seen_edge_ids:
            err("E_DUPLICATE_ID", f"duplicate dependency id: {eid}", f"{p}.id")
            continue
        seen_edge_ids.add(eid)

        ok = True
        for key in ("task_id", "depends_on_task_id"):
            v = raw.get(key)
            if not isinstance(v, str) or not v.strip():
                err("E_REQUIRED_FIELD", f"{key} is required and must be a non-empty string", f"{p}.{key}")
                ok = False

        dtype = raw.get("dependency_type", default_dependency_type)
        if dtype is None:
            dtype = default_dependency_type
        if dtype not in DEPENDENCY_TYPES:
            err("E_INVALID_ENUM", f"dependency_type must be one of {list(DEPENDENCY_TYPES)}", f"{p}.dependency_type")
            ok = False

        lag = raw.get("lag_minutes", 0)
        if lag is None:
            lag = 0
        if not _is_number(lag):
            err("E_INVALID_TYPE", "lag_minutes must be a number", f"{p}.lag_minutes")
            ok = False

        notes = raw.get("notes")
        if notes is not None and not isinstance(notes, str):
            err("E_INVALID_TYPE", "notes must be a string", f"{p}.notes")
            ok = False

        if not ok:
            continue

        edges.append(
            DependencyEdge(
                id=eid,
                task_id=raw["task_id"],
                depends_on_task_id=raw["depends_on_task_id"],
                dependency_type=cast(DependencyType, dtype),
                lag_minutes=lag,
                notes=notes,
            )
        )

    if errors:
        return None, _sorted(errors)

    return Snapshot(schema_version=cast(str, schema_version), tasks=tasks, dependencies=edges), []


def summarize_snapshot(snap: Snapshot) -> str:
    scopes = Counter([t.project_id or "-" for t in snap.tasks])
    parts = [f"{k}={scopes[k]}" for k in sorted(scopes)]
    return (
        f"OK: {len(snap.tasks)} tasks, {len(snap.dependencies)} dependencies\n"
        + "Scopes: "
        + (", ".join(parts) if parts else "(none)")
    )


def _sorted(errors: Iterable[SnapshotValidationError]) -> list[SnapshotValidationError]:
    return sorted(
        list(errors),
        key=lambda e: (
            e.file or "",
            e.path or "",
            e.code,
        ),
    )
