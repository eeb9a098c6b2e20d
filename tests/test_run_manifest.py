"""Tests for ids_repertoire.run_manifest utilities."""
from __future__ import annotations

from pathlib import Path

from ids_repertoire.ids_source import read_ids_lines
from ids_repertoire.pua_allocator import AllocationResult, allocate_from_source
from ids_repertoire.run_manifest import (
    build_manifest,
    compare_manifests,
    generate_run_id,
    load_manifest,
    write_manifest,
)

_LINES = [
    "U+674E\t李\t⿰木{yao}",
    "U+6797\t林\t⿰木木",
    "U+68EE\t森\t⿱木⿰木木",
    "U+5B50\t子\t⿰子",
]


def _allocate() -> AllocationResult:
    return allocate_from_source(read_ids_lines(_LINES), [])


def test_generate_run_id_prefix() -> None:
    run_id = generate_run_id("test_run")
    assert run_id.startswith("test_run_")
    assert run_id != generate_run_id("test_run")


def test_write_and_load_manifest(tmp_path: Path) -> None:
    result = _allocate()
    run_id = generate_run_id("test_run")
    manifest = build_manifest(
        run_id=run_id,
        result=result,
        input_source={"ids": "ids.txt"},
        timings_sec={"allocate": 0.01},
    )
    canonical_path, versioned_path = write_manifest(tmp_path / "runs", manifest)
    assert canonical_path.exists()
    assert versioned_path.exists()
    assert run_id in versioned_path.name

    loaded = load_manifest(canonical_path)
    assert loaded["run_id"] == run_id
    assert loaded["component_range"] == {"start": "U+E200", "end": "U+E201"}
    assert loaded["compound_range"] == {"start": "U+F0000", "end": "U+F0001"}
    assert loaded["record_count"] == len(result.records)
    assert loaded["errors_count"] == 1
    assert loaded["stats"]["new_components"] == 1
    assert "issues" not in loaded["stats"]


def test_compare_manifests_rerun_mints_nothing() -> None:
    first = _allocate()
    second = allocate_from_source(read_ids_lines(_LINES), list(first.records))

    older = build_manifest(
        run_id="old",
        result=first,
        input_source={},
        timings_sec={},
    )
    newer = build_manifest(
        run_id="new",
        result=second,
        input_source={},
        timings_sec={},
    )
    assert newer["stats"]["new_components"] == 0
    assert newer["stats"]["new_compounds"] == 0

    delta = compare_manifests(newer, older)
    assert delta["current_run_id"] == "new"
    assert delta["stats_delta"]["new_components"] == -1
    assert delta["stats_delta"]["skipped_existing"] == 3
    assert delta["errors_count_delta"] == 0
