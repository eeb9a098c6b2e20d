"""Tests for ids_repertoire.repertoire_store: DuckDB store and JSON files."""
from __future__ import annotations

from pathlib import Path

import duckdb
import pytest

from ids_repertoire.glyph_types import BasicComponent, Character, Compound, Identity
from ids_repertoire.io_utils import save_json
from ids_repertoire.repertoire_store import (
    SCHEMA_VERSION,
    RepertoireStore,
    SchemaVersionError,
    load_repertoire_file,
    save_records_file,
)
from ids_repertoire.transform import to_model


# ───────────────────── Fixtures ──────────────────────────────────────


@pytest.fixture()
def store(tmp_path: Path) -> RepertoireStore:
    """Create a fresh RepertoireStore in a temp directory."""
    s = RepertoireStore(tmp_path / "repertoire.duckdb", create_if_missing=True)
    yield s  # type: ignore[misc]
    s.close()


def _records() -> list[Character]:
    return [
        Character(unicode=ord("李"), glyphs=(Compound("⿰", ("木", "子")),)),
        Character(unicode=0xE200, name="yao", glyphs=(BasicComponent(),)),
        Character(unicode=ord("幺"), glyphs=(Identity(source=chr(0xE200)),)),
    ]


class TestRepertoireStore:
    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            RepertoireStore(tmp_path / "absent.duckdb")

    def test_new_store_is_empty(self, store: RepertoireStore) -> None:
        assert store.count() == 0
        assert store.schema_version == SCHEMA_VERSION
        assert store.load_characters() == []

    def test_persist_and_load(self, store: RepertoireStore) -> None:
        assert store.persist(_records()) == 3
        loaded = store.load_characters()
        assert [c.unicode for c in loaded] == sorted(r.unicode for r in _records())
        assert store.get(0xE200) == _records()[1]
        assert store.get(0xE201) is None

    def test_persist_replaces_existing_rows(self, store: RepertoireStore) -> None:
        store.persist(_records())
        store.persist([Character(unicode=0xE200, name="yao2", glyphs=(BasicComponent(),))])
        assert store.count() == 3
        found = store.get(0xE200)
        assert found is not None
        assert found.name == "yao2"

    def test_duplicate_codepoints_in_one_batch(self, store: RepertoireStore) -> None:
        store.persist([
            Character(unicode=0xE200, name="first"),
            Character(unicode=0xE200, name="second"),
        ])
        found = store.get(0xE200)
        assert found is not None
        assert found.name == "second"

    def test_reopen(self, tmp_path: Path) -> None:
        db_path = tmp_path / "repertoire.duckdb"
        with RepertoireStore(db_path, create_if_missing=True) as s:
            s.persist(_records())
        with RepertoireStore(db_path) as s:
            assert s.count() == 3

    def test_schema_mismatch(self, tmp_path: Path) -> None:
        db_path = tmp_path / "repertoire.duckdb"
        with RepertoireStore(db_path, create_if_missing=True):
            pass
        conn = duckdb.connect(str(db_path))
        conn.execute("UPDATE _schema_version SET version = '0.0.1'")
        conn.close()
        with pytest.raises(SchemaVersionError):
            RepertoireStore(db_path)


class TestJsonFiles:
    def test_round_trip_api_shape(self, tmp_path: Path) -> None:
        path = tmp_path / "out" / "repertoire.json"
        save_records_file(_records(), path)
        assert load_repertoire_file(path) == _records()

    def test_round_trip_storage_model(self, tmp_path: Path) -> None:
        path = tmp_path / "repertoire.json"
        save_records_file(_records(), path, storage_model=True)
        assert load_repertoire_file(path) == _records()

    def test_mixed_shapes(self, tmp_path: Path) -> None:
        path = tmp_path / "repertoire.json"
        records = _records()
        save_json([to_model(records[0]), to_model(records[1])], path)
        assert load_repertoire_file(path) == records[:2]

    def test_rejects_non_list(self, tmp_path: Path) -> None:
        path = tmp_path / "repertoire.json"
        save_json({"unicode": 1}, path)
        with pytest.raises(ValueError, match="JSON list"):
            load_repertoire_file(path)
