from pathlib import Path

import pytest

from dependency_scheduler.core.errors import SnapshotLoadError
from dependency_scheduler.core.io.load_snapshot import dump_snapshot, load_snapshot

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def test_load_yaml_success():
    snap = load_snapshot(str(EXAMPLES / "project-snapshot.yaml"))
    assert snap["schema_version"] == "0.1.0"
    assert isinstance(snap["tasks"], list)
    assert isinstance(snap["dependencies"], list)
    assert snap["__file__"].endswith("project-snapshot.yaml")


def test_load_missing_file():
    with pytest.raises(SnapshotLoadError) as exc:
        load_snapshot(str(EXAMPLES / "does-not-exist.yaml"))
    assert exc.value.code == "E_FILE_NOT_FOUND"


def test_load_unsupported_format(tmp_path):
    p = tmp_path / "snapshot.txt"
    p.write_text("hello", encoding="utf-8")
    with pytest.raises(SnapshotLoadError) as exc:
        load_snapshot(str(p))
    assert exc.value.code == "E_UNSUPPORTED_FORMAT"


def test_load_bad_json(tmp_path):
    p = tmp_path / "snapshot.json"
    p.write_text("{nope", encoding="utf-8")
    with pytest.raises(SnapshotLoadError) as exc:
        load_snapshot(str(p))
    assert exc.value.code == "E_JSON_PARSE"


def test_load_non_mapping(tmp_path):
    p = tmp_path / "snapshot.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(SnapshotLoadError) as exc:
        load_snapshot(str(p))
    assert exc.value.code == "E_INVALID_TOP_LEVEL"


def test_dump_json_drops_internal_keys(tmp_path):
    out = tmp_path / "nested" / "out.json"
    dump_snapshot({"schema_version": "0.1.0", "tasks": [], "dependencies": [], "__file__": "x"}, str(out))
    loaded = load_snapshot(str(out))
    assert loaded["tasks"] == []
    assert "__file__" not in out.read_text(encoding="utf-8")
