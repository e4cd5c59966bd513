from __future__ import annotations

import json
from typing import Any, Optional

import typer

from dependency_scheduler.core.config.scheduler_config import ConfigError, SchedulerConfig, load_and_merge
from dependency_scheduler.core.errors import SchedulerError, SnapshotLoadError, SnapshotValidationError
from dependency_scheduler.core.graph.build_graph import build_graph
from dependency_scheduler.core.io.load_snapshot import load_snapshot
from dependency_scheduler.core.log import set_verbose
from dependency_scheduler.core.model import DEPENDENCY_TYPES, ScheduleNode
from dependency_scheduler.core.schedule.critical_path import critical_chains, critical_links, project_end
from dependency_scheduler.core.service.scope_service import compute_scope, create_dependency_edge
from dependency_scheduler.core.store.snapshot_store import SnapshotStore
from dependency_scheduler.core.validate.validate_snapshot import summarize_snapshot, validate_snapshot

app = typer.Typer(add_completion=False, no_args_is_help=True)


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr"),
) -> None:
    """Task dependency scheduler CLI."""
    set_verbose(verbose)


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a snapshot file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate a task/dependency snapshot."""
    _check_format(format, "E_VALIDATE_UNKNOWN_FORMAT")

    try:
        raw = load_snapshot(path)
    except SnapshotLoadError as e:
        _fail("validate", format, [e], exit_code=1)

    snap, errors = validate_snapshot(raw)
    if errors or snap is None:
        _fail("validate", format, list(errors), exit_code=2)
    assert snap is not None

    if format == "text":
        typer.echo(summarize_snapshot(snap))
        return

    scopes: dict[str, int] = {}
    for t in snap.tasks:
        key = t.project_id or "-"
        scopes[key] = scopes.get(key, 0) + 1
    _emit_json(
        "validate",
        {
            "ok": True,
            "errors": [],
            "error_count": 0,
            "summary": {
                "schema_version": snap.schema_version,
                "task_count": len(snap.tasks),
                "dependency_count": len(snap.dependencies),
                "scopes": scopes,
            },
        },
    )


@app.command("levels")
def levels(
    path: str = typer.Argument(..., help="Path to a snapshot file (.yaml/.yml/.json)"),
    scope: Optional[str] = typer.Option(None, "--scope", help="Project id; all tasks when omitted"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    config: Optional[str] = typer.Option(None, "--config", help="Optional YAML scheduler config"),
) -> None:
    """Print diagram columns (longest-path level per task)."""
    _check_format(format, "E_LEVELS_UNKNOWN_FORMAT")
    cfg = _load_config(config, format, "levels")
    store = _open_store(path, cfg, format, "levels")

    report = compute_scope(store, scope, anchor=cfg.anchor)
    assignment = report.levels

    if format == "json":
        _emit_json(
            "levels",
            {
                "ok": not assignment.unleveled,
                "scope": scope,
                "levels": assignment.levels,
                "columns": assignment.columns(),
                "unleveled": assignment.unleveled,
            },
            exit_code=2 if assignment.unleveled else 0,
        )

    for i, col in enumerate(assignment.columns()):
        typer.echo(f"{i}: {', '.join(col)}")
    if assignment.unleveled:
        typer.echo(f"WARN: unleveled (dependency cycle): {', '.join(assignment.unleveled)}", err=True)
        raise typer.Exit(code=2)


@app.command("schedule")
def schedule(
    path: str = typer.Argument(..., help="Path to a snapshot file (.yaml/.yml/.json)"),
    scope: Optional[str] = typer.Option(None, "--scope", help="Project id; all tasks when omitted"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    config: Optional[str] = typer.Option(None, "--config", help="Optional YAML scheduler config"),
) -> None:
    """Compute earliest/latest times, slack and the critical path."""
    _check_format(format, "E_SCHEDULE_UNKNOWN_FORMAT")
    cfg = _load_config(config, format, "schedule")
    store = _open_store(path, cfg, format, "schedule")

    report = compute_scope(store, scope, anchor=cfg.anchor)
    graph = build_graph(store.list_tasks_in_scope(scope), store.list_dependency_edges(scope))
    chains = critical_chains(graph, report.schedule)
    links = critical_links(graph, report.schedule)
    end = project_end(report.schedule)

    if format == "json":
        _emit_json(
            "schedule",
            {
                "ok": not report.warnings,
                "scope": scope,
                "time_unit": cfg.time_unit,
                "project_end": end.isoformat() if end else None,
                "schedule": [_node_item(n, cfg) for n in report.schedule],
                "critical_chains": chains,
                "critical_links": [list(pair) for pair in links],
                "warnings": report.warnings,
                "cycle_task_ids": report.cycle_task_ids,
            },
            exit_code=2 if report.warnings else 0,
        )

    if report.warnings:
        for w in report.warnings:
            typer.echo(f"WARN: {w}", err=True)
        raise typer.Exit(code=2)

    for n in report.schedule:
        mark = "*" if n.is_critical else " "
        typer.echo(
            f"{mark} {n.task_id}: ES={n.earliest_start.isoformat()} EF={n.earliest_finish.isoformat()} "
            f"LS={n.latest_start.isoformat()} LF={n.latest_finish.isoformat()} "
            f"slack={_fmt_units(cfg.to_units(n.slack))}{cfg.time_unit[0]}"
        )
    if end is not None:
        typer.echo(f"Project end: {end.isoformat()}")
    for chain in chains:
        typer.echo("Critical: " + " -> ".join(chain))
    if len(chains) > 1 and links:
        typer.echo("Critical links: " + ", ".join(f"{p} -> {s}" for p, s in links))


@app.command("add-dependency")
def add_dependency(
    path: str = typer.Argument(..., help="Path to a snapshot file (.yaml/.yml/.json)"),
    task: str = typer.Option(..., "--task", help="Dependent (successor) task id"),
    depends_on: str = typer.Option(..., "--depends-on", help="Prerequisite (predecessor) task id"),
    dependency_type: Optional[str] = typer.Option(
        None, "--type", help="finish-to-start|start-to-start|finish-to-finish|start-to-finish"
    ),
    lag: float = typer.Option(0, "--lag", help="Lag in minutes (negative for lead time)"),
    notes: Optional[str] = typer.Option(None, "--notes"),
    scope: Optional[str] = typer.Option(None, "--scope", help="Project id the check runs against"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    config: Optional[str] = typer.Option(None, "--config", help="Optional YAML scheduler config"),
) -> None:
    """Add a dependency unless it would create a cycle."""
    _check_format(format, "E_ADD_UNKNOWN_FORMAT")
    cfg = _load_config(config, format, "add-dependency")

    dtype = dependency_type or cfg.default_dependency_type
    if dtype not in DEPENDENCY_TYPES:
        err = SnapshotValidationError(
            code="E_INVALID_ENUM",
            message=f"--type must be one of: {', '.join(DEPENDENCY_TYPES)}",
            path="type",
        )
        _fail("add-dependency", format, [err], exit_code=2)

    store = _open_store(path, cfg, format, "add-dependency")
    result = create_dependency_edge(
        store,
        scope,
        task,
        depends_on,
        dependency_type=dtype,  # type: ignore[arg-type]
        lag_minutes=lag,
        notes=notes,
    )

    if not result.ok:
        err = SnapshotValidationError(
            code=result.code or "E_REJECTED",
            message=result.message or "dependency rejected",
            file=path,
            path="dependencies",
        )
        if format == "json":
            _emit_json(
                "add-dependency",
                {
                    "ok": False,
                    "errors": [_to_item(err)],
                    "error_count": 1,
                    "circular_path": result.circular_path,
                },
                exit_code=2,
            )
        _print_errors([err])
        if result.circular_path:
            typer.echo("Cycle: " + " -> ".join(result.circular_path), err=True)
        raise typer.Exit(code=2)

    assert result.edge is not None
    if format == "json":
        _emit_json("add-dependency", {"ok": True, "edge_id": result.edge.id})
    typer.echo(f"OK: added {result.edge.id} ({depends_on} -> {task}, {dtype})")


@app.command("remove-dependency")
def remove_dependency(
    path: str = typer.Argument(..., help="Path to a snapshot file (.yaml/.yml/.json)"),
    edge_id: str = typer.Option(..., "--id", help="Dependency record id"),
) -> None:
    """Delete a dependency record."""
    store = _open_store(path, load_and_merge(None), "text", "remove-dependency")
    if not store.delete_edge(edge_id):
        _print_errors(
            [
                SnapshotValidationError(
                    code="E_UNKNOWN_DEPENDENCY",
                    message=f"no dependency with id: {edge_id}",
                    file=path,
                    path="id",
                )
            ]
        )
        raise typer.Exit(code=2)
    typer.echo(f"OK: removed {edge_id}")


def _check_format(format: str, code: str) -> None:
    if format not in ("text", "json"):
        err = SnapshotValidationError(
            code=code,
            message=f"unknown format: {format} (choose one of: text, json)",
            file=None,
            path="format",
        )
        _print_errors([err])
        raise typer.Exit(code=2)


def _load_config(config: Optional[str], format: str, command: str) -> SchedulerConfig:
    try:
        return load_and_merge(config)
    except FileNotFoundError:
        err: SchedulerError = SnapshotLoadError(
            code="E_CONFIG_FILE_NOT_FOUND",
            message=f"config file not found: {config}",
            path="config",
        )
        _fail(command, format, [err], exit_code=1)
    except ConfigError as e:
        err = SnapshotValidationError(code="E_CONFIG_FILE_INVALID", message=str(e), path="config")
        _fail(command, format, [err], exit_code=2)
    raise AssertionError("unreachable")  # pragma: no cover


def _open_store(path: str, cfg: SchedulerConfig, format: str, command: str) -> SnapshotStore:
    try:
        return SnapshotStore(path, default_dependency_type=cfg.default_dependency_type)
    except SnapshotLoadError as e:
        _fail(command, format, [e], exit_code=1)
    except SnapshotValidationError as e:
        _fail(command, format, [e], exit_code=2)
    raise AssertionError("unreachable")  # pragma: no cover


def _node_item(n: ScheduleNode, cfg: SchedulerConfig) -> dict[str, Any]:
    return {
        "task_id": n.task_id,
        "earliest_start": n.earliest_start.isoformat(),
        "earliest_finish": n.earliest_finish.isoformat(),
        "latest_start": n.latest_start.isoformat(),
        "latest_finish": n.latest_finish.isoformat(),
        "slack": cfg.to_units(n.slack),
        "is_critical": n.is_critical,
    }


def _fmt_units(v: float) -> str:
    return str(int(v)) if v == int(v) else f"{v:.2f}"


def _to_item(e: SchedulerError) -> dict[str, Any]:
    source = "load" if isinstance(e, SnapshotLoadError) else "validate"
    return {
        "code": e.code,
        "message": e.message,
        "file": e.file,
        "path": e.path,
        "severity": "error",
        "source": source,
    }


def _emit_json(command: str, body: dict[str, Any], exit_code: int = 0) -> None:
    payload = {"tool": "scheduler", "command": command}
    payload.update(body)
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    raise typer.Exit(code=exit_code)


def _fail(command: str, format: str, errors: list[SchedulerError], exit_code: int) -> None:
    if format == "json":
        _emit_json(
            command,
            {
                "ok": False,
                "error_count": len(errors),
                "errors": [_to_item(e) for e in errors],
            },
            exit_code=exit_code,
        )
    _print_errors(errors)
    raise typer.Exit(code=exit_code)


def _print_errors(errors: list[SchedulerError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="scheduler")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
