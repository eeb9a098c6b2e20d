"""End-to-end tests for scripts/allocate_pua.py."""
from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

from ids_repertoire.io_utils import load_jsonl
from ids_repertoire.repertoire_store import RepertoireStore, load_repertoire_file

_IDS_TEXT = (
    "# sample\n"
    "U+674E\t李\t⿰木{yao}\n"
    "U+6797\t林\t⿰木木\n"
    "U+68EE\t森\t⿱木⿰木木\n"
    "U+5B50\t子\t⿰子\n"
)


def _run(
    tmp_path: Path, args: list[str], *, env_extra: dict[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    root = Path(__file__).resolve().parents[1]
    env = os.environ.copy()
    env.pop("IDS_REPERTOIRE_DB", None)
    env["PYTHONPATH"] = str(root / "src")
    env.update(env_extra or {})
    return subprocess.run(
        [sys.executable, str(root / "scripts" / "allocate_pua.py"), *args],
        cwd=str(tmp_path),
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )


def _write_ids(tmp_path: Path) -> Path:
    path = tmp_path / "ids.txt"
    path.write_text(_IDS_TEXT, encoding="utf-8")
    return path


def test_writes_new_records(tmp_path: Path) -> None:
    ids_path = _write_ids(tmp_path)
    out = tmp_path / "out" / "repertoire.json"
    issues = tmp_path / "issues.jsonl"
    proc = _run(tmp_path, ["--ids", str(ids_path), "--output", str(out), "--issues", str(issues)])
    assert proc.returncode == 0, proc.stderr

    summary = json.loads(proc.stdout)
    assert summary["records"] == 5
    assert summary["persisted"] == 0
    assert summary["new_components"] == 1
    assert summary["new_compounds"] == 1
    assert summary["issue_count"] == 1

    records = load_repertoire_file(out)
    by_name = {r.name: r for r in records if r.name is not None}
    assert by_name["yao"].unicode == 0xE200
    assert by_name["森字底"].unicode == 0xF0000

    issue_rows = load_jsonl(issues)
    assert len(issue_rows) == 1
    assert issue_rows[0]["kind"] == "syntax"
    assert issue_rows[0]["line"] == 5


def test_persist_then_rerun_mints_nothing(tmp_path: Path) -> None:
    ids_path = _write_ids(tmp_path)
    db_path = tmp_path / "repertoire.duckdb"

    first = _run(tmp_path, ["--ids", str(ids_path), "--db", str(db_path), "--persist"])
    assert first.returncode == 0, first.stderr
    assert json.loads(first.stdout)["persisted"] == 5

    second = _run(
        tmp_path,
        ["--ids", str(ids_path), "--persist"],
        env_extra={"IDS_REPERTOIRE_DB": str(db_path)},
    )
    assert second.returncode == 0, second.stderr
    summary = json.loads(second.stdout)
    assert summary["records"] == 0
    assert summary["skipped_existing"] == 3
    assert summary["new_components"] == 0
    assert summary["new_compounds"] == 0

    with RepertoireStore(db_path) as store:
        assert store.count() == 5


def test_include_existing_reuses_codepoints(tmp_path: Path) -> None:
    ids_path = _write_ids(tmp_path)
    db_path = tmp_path / "repertoire.duckdb"
    _run(tmp_path, ["--ids", str(ids_path), "--db", str(db_path), "--persist"])

    proc = _run(
        tmp_path,
        ["--ids", str(ids_path), "--db", str(db_path), "--include-existing"],
    )
    assert proc.returncode == 0, proc.stderr
    summary = json.loads(proc.stdout)
    assert summary["records"] == 3
    assert summary["new_components"] == 0
    assert summary["new_compounds"] == 0


def test_manifest_written(tmp_path: Path) -> None:
    ids_path = _write_ids(tmp_path)
    manifest_dir = tmp_path / "runs"
    proc = _run(tmp_path, ["--ids", str(ids_path), "--manifest-dir", str(manifest_dir)])
    assert proc.returncode == 0, proc.stderr
    summary = json.loads(proc.stdout)
    manifest = json.loads(Path(summary["manifest"]).read_text(encoding="utf-8"))
    assert manifest["component_range"]["start"] == "U+E200"
    assert manifest["input_source"]["ids"] == str(ids_path)


def test_missing_ids_file(tmp_path: Path) -> None:
    proc = _run(tmp_path, ["--ids", str(tmp_path / "absent.txt")])
    assert proc.returncode == 1
    assert "IDS file not found" in proc.stderr


def test_persist_requires_db(tmp_path: Path) -> None:
    ids_path = _write_ids(tmp_path)
    proc = _run(tmp_path, ["--ids", str(ids_path), "--persist"])
    assert proc.returncode == 1
    assert "--persist needs" in proc.stderr
