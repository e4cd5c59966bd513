"""Read and write the task/dependency export a scope is scheduled from."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from dependency_scheduler.core.errors import SnapshotLoadError

YAML_SUFFIXES = {".yaml", ".yml"}


def _parse(text: str, p: Path) -> Any:
    suffix = p.suffix.lower()
    if suffix not in YAML_SUFFIXES and suffix != ".json":
        raise SnapshotLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message="snapshots are read from .yaml/.yml or .json files",
            file=str(p),
        )
    try:
        return yaml.safe_load(text) if suffix in YAML_SUFFIXES else json.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        code = "E_YAML_PARSE" if suffix in YAML_SUFFIXES else "E_JSON_PARSE"
        raise SnapshotLoadError(code=code, message=str(e), file=str(p)) from e


def load_snapshot(path: str) -> dict[str, Any]:
    """Load the tasks and dependency records exported for scheduling.

    The result has `schema_version`, `tasks`, `dependencies` and `__file__`.
    Records are passed through untouched: dates stay strings, unknown
    dependency types stay as written, and validate_snapshot reports them.
    """

    p = Path(path)
    if not p.exists():
        raise SnapshotLoadError(code="E_FILE_NOT_FOUND", message="no snapshot at this path", file=str(p))

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:  # pragma: no cover
        raise SnapshotLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    data = _parse(text, p)
    if not isinstance(data, dict):
        raise SnapshotLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="snapshot must be a mapping with `tasks` and `dependencies`",
            file=str(p),
        )

    # a project with no links yet exports no dependency list
    return {
        "schema_version": data.get("schema_version"),
        "tasks": data.get("tasks"),
        "dependencies": data.get("dependencies", []),
        "__file__": str(p),
    }


def dump_snapshot(snapshot: dict[str, Any], path: str) -> None:
    """Rewrite the export after a dependency is added or removed.

    Keys starting with `__` are loader bookkeeping and are not written.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    records = {k: v for k, v in snapshot.items() if not k.startswith("__")}
    if p.suffix.lower() == ".json":
        p.write_text(json.dumps(records, indent=2, default=str) + "\n", encoding="utf-8")
    else:
        p.write_text(yaml.safe_dump(records, sort_keys=False, allow_unicode=True), encoding="utf-8")
