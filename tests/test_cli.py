import json
import shutil
from pathlib import Path

from typer.testing import CliRunner

from dependency_scheduler.cli import app
from dependency_scheduler.core.io.load_snapshot import load_snapshot

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"

runner = CliRunner()


def _copy(tmp_path: Path, name: str = "project-snapshot.yaml") -> str:
    dst = tmp_path / name
    shutil.copy(EXAMPLES / name, dst)
    return str(dst)


def test_cli_validate_success():
    r = runner.invoke(app, ["validate", str(EXAMPLES / "project-snapshot.yaml")])
    assert r.exit_code == 0
    assert "OK: 4 tasks, 3 dependencies" in r.stdout
    assert "P1=3" in r.stdout


def test_cli_validate_failure_json():
    r = runner.invoke(app, ["validate", str(EXAMPLES / "invalid-snapshot.yaml"), "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["ok"] is False
    assert "E_INVALID_ENUM" in {e["code"] for e in payload["errors"]}


def test_cli_validate_missing_file():
    r = runner.invoke(app, ["validate", str(EXAMPLES / "nope.yaml")])
    assert r.exit_code == 1
    assert "E_FILE_NOT_FOUND" in r.output


def test_cli_unknown_format():
    r = runner.invoke(app, ["schedule", str(EXAMPLES / "project-snapshot.yaml"), "--format", "xml"])
    assert r.exit_code == 2
    assert "E_SCHEDULE_UNKNOWN_FORMAT" in r.output


def test_cli_levels_text():
    r = runner.invoke(app, ["levels", str(EXAMPLES / "project-snapshot.yaml"), "--scope", "P1"])
    assert r.exit_code == 0
    assert r.stdout.splitlines() == ["0: A", "1: B", "2: C"]


def test_cli_levels_cycle_json():
    r = runner.invoke(app, ["levels", str(EXAMPLES / "cycle-snapshot.yaml"), "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["ok"] is False
    assert payload["levels"] == {"A": 0}
    assert payload["unleveled"] == ["B", "C"]


def test_cli_schedule_json():
    r = runner.invoke(
        app, ["schedule", str(EXAMPLES / "project-snapshot.yaml"), "--scope", "P1", "--format", "json"]
    )
    assert r.exit_code == 0
    payload = json.loads(r.stdout)
    assert payload["project_end"] == "2024-01-07T00:00:00+00:00"
    assert payload["critical_chains"] == [["A", "B", "C"]]
    assert payload["critical_links"] == [["A", "B"], ["B", "C"]]
    assert [n["task_id"] for n in payload["schedule"]] == ["A", "B", "C"]
    assert all(n["slack"] == 0 for n in payload["schedule"])


def test_cli_schedule_text_with_config(tmp_path):
    cfg = tmp_path / "scheduler.yaml"
    cfg.write_text("time_unit: hours\n", encoding="utf-8")
    r = runner.invoke(
        app,
        [
            "schedule",
            str(EXAMPLES / "project-snapshot.yaml"),
            "--scope",
            "P1",
            "--config",
            str(cfg),
        ],
    )
    assert r.exit_code == 0
    assert "Critical: A -> B -> C" in r.stdout
    assert "slack=0h" in r.stdout
    assert "Project end: 2024-01-07T00:00:00+00:00" in r.stdout


def test_cli_schedule_cycle_degrades():
    r = runner.invoke(app, ["schedule", str(EXAMPLES / "cycle-snapshot.yaml"), "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["schedule"] == []
    assert payload["warnings"] == ["schedule could not be computed for 2 tasks"]
    assert payload["cycle_task_ids"] == ["B", "C"]


def test_cli_add_dependency_accepts_and_writes(tmp_path):
    path = _copy(tmp_path)
    r = runner.invoke(app, ["add-dependency", path, "--scope", "P1", "--task", "C", "--depends-on", "A"])
    assert r.exit_code == 0, r.output
    assert "OK: added" in r.stdout
    deps = load_snapshot(path)["dependencies"]
    assert len(deps) == 4
    assert deps[-1]["dependency_type"] == "finish-to-start"


def test_cli_add_dependency_uses_configured_default_type(tmp_path):
    path = _copy(tmp_path)
    r = runner.invoke(
        app,
        [
            "add-dependency",
            path,
            "--task",
            "C",
            "--depends-on",
            "A",
            "--config",
            str(EXAMPLES / "scheduler-config.yaml"),
        ],
    )
    assert r.exit_code == 0, r.output
    assert load_snapshot(path)["dependencies"][-1]["dependency_type"] == "start-to-start"


def test_cli_add_dependency_rejects_cycle(tmp_path):
    path = _copy(tmp_path)
    r = runner.invoke(
        app,
        ["add-dependency", path, "--scope", "P1", "--task", "A", "--depends-on", "C", "--format", "json"],
    )
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["errors"][0]["code"] == "E_CIRCULAR_DEPENDENCY"
    assert payload["circular_path"] == ["A", "B", "C", "A"]
    assert len(load_snapshot(path)["dependencies"]) == 3


def test_cli_add_dependency_rejects_self_and_bad_type(tmp_path):
    path = _copy(tmp_path)
    r = runner.invoke(app, ["add-dependency", path, "--task", "A", "--depends-on", "A"])
    assert r.exit_code == 2
    assert "E_SELF_DEPENDENCY" in r.output

    r = runner.invoke(app, ["add-dependency", path, "--task", "C", "--depends-on", "A", "--type", "later"])
    assert r.exit_code == 2
    assert "E_INVALID_ENUM" in r.output


def test_cli_remove_dependency(tmp_path):
    path = _copy(tmp_path)
    r = runner.invoke(app, ["remove-dependency", path, "--id", "D3"])
    assert r.exit_code == 0
    assert [d["id"] for d in load_snapshot(path)["dependencies"]] == ["D1", "D2"]

    r = runner.invoke(app, ["remove-dependency", path, "--id", "D3"])
    assert r.exit_code == 2
    assert "E_UNKNOWN_DEPENDENCY" in r.output
