"""DuckDB-backed repertoire store, plus JSON file helpers.

The store holds one row per character in the storage-model shape of
``ids_repertoire.transform``. It is read once before an allocation run and
written once after it; ``persist`` is a single transaction, so a failed run
leaves the store untouched.

Tables:
    repertoire     : one row per character (unicode primary key)
    _schema_version: schema version tracking
"""
from __future__ import annotations

import contextlib
import importlib
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ids_repertoire.glyph_types import Character, character_to_dict
from ids_repertoire.io_utils import load_json, save_json
from ids_repertoire.transform import MODEL_COLUMNS, from_model, load_character, to_model

# Dynamic DuckDB import for pyright compatibility
_duckdb_mod = importlib.import_module("duckdb")

log = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"

_SCHEMA_DDL = """\
CREATE TABLE IF NOT EXISTS _schema_version (
    table_name VARCHAR PRIMARY KEY,
    version VARCHAR NOT NULL,
    created_at TIMESTAMP DEFAULT current_timestamp
);

CREATE TABLE IF NOT EXISTS repertoire (
    unicode INTEGER PRIMARY KEY,
    name VARCHAR,
    tygf INTEGER DEFAULT 0,
    gb2312 INTEGER DEFAULT 0,
    gf0014_id INTEGER,
    gf3001_id INTEGER,
    ambiguous INTEGER DEFAULT 0,
    readings VARCHAR DEFAULT '[]',
    glyphs VARCHAR DEFAULT '[]'
)
"""


class SchemaVersionError(RuntimeError):
    """Raised when a store's schema version does not match expected."""


def _read_schema_version(conn: Any) -> str:
    try:
        result = conn.execute(
            "SELECT version FROM _schema_version WHERE table_name = 'repertoire'"
        ).fetchone()
        return str(result[0]) if result else "unknown"
    except _duckdb_mod.Error:
        return "unknown"


class RepertoireStore:
    """Read/write interface to a repertoire DuckDB file."""

    def __init__(
        self,
        db_path: Path | str,
        *,
        create_if_missing: bool = False,
    ) -> None:
        self._db_path = Path(db_path)
        if not self._db_path.exists() and not create_if_missing:
            raise FileNotFoundError(f"Repertoire database not found: {self._db_path}")
        is_new = not self._db_path.exists()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Any = _duckdb_mod.connect(str(self._db_path))
        try:
            if is_new:
                self._create_schema()
            actual = _read_schema_version(self._conn)
            if actual != SCHEMA_VERSION:
                raise SchemaVersionError(
                    f"Schema version mismatch in {self._db_path}: "
                    f"expected {SCHEMA_VERSION}, got {actual}"
                )
        except Exception:
            self._conn.close()
            raise

    def _create_schema(self) -> None:
        for stmt in _SCHEMA_DDL.split(";"):
            stmt = stmt.strip()
            if stmt:
                self._conn.execute(stmt)
        self._conn.execute(
            "INSERT INTO _schema_version (table_name, version) VALUES ('repertoire', ?)",
            [SCHEMA_VERSION],
        )

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> RepertoireStore:
        return self

    def __exit__(self, *_args: object) -> None:
        self.close()

    @property
    def schema_version(self) -> str:
        return _read_schema_version(self._conn)

    def count(self) -> int:
        result = self._conn.execute("SELECT COUNT(*) FROM repertoire").fetchone()
        return int(result[0]) if result else 0

    def _row_to_character(self, row: tuple[Any, ...]) -> Character:
        return from_model(dict(zip(MODEL_COLUMNS, row, strict=True)))

    def get(self, unicode: int) -> Character | None:
        row = self._conn.execute(
            f"SELECT {', '.join(MODEL_COLUMNS)} FROM repertoire WHERE unicode = ?",
            [unicode],
        ).fetchone()
        return self._row_to_character(row) if row else None

    def load_characters(self) -> list[Character]:
        """Every character, ordered by codepoint."""
        rows = self._conn.execute(
            f"SELECT {', '.join(MODEL_COLUMNS)} FROM repertoire ORDER BY unicode"
        ).fetchall()
        return [self._row_to_character(row) for row in rows]

    def persist(self, records: Iterable[Character]) -> int:
        """Insert or replace *records* in one transaction. Returns row count."""
        # One row per codepoint; the last record for a codepoint wins.
        rows = list({r.unicode: to_model(r) for r in records}.values())
        placeholders = ", ".join("?" for _ in MODEL_COLUMNS)
        self._conn.execute("BEGIN TRANSACTION")
        try:
            for row in rows:
                self._conn.execute(
                    f"INSERT OR REPLACE INTO repertoire ({', '.join(MODEL_COLUMNS)}) "
                    f"VALUES ({placeholders})",
                    [row[col] for col in MODEL_COLUMNS],
                )
            self._conn.execute("COMMIT")
        except Exception:
            with contextlib.suppress(Exception):
                self._conn.execute("ROLLBACK")
            raise
        log.info("Persisted %d characters to %s", len(rows), self._db_path)
        return len(rows)


# ---------------------------------------------------------------------------
# JSON files
# ---------------------------------------------------------------------------

def load_repertoire_file(path: Path) -> list[Character]:
    """Load a JSON list of characters in API or storage-model shape."""
    payload = load_json(path)
    if not isinstance(payload, list):
        raise ValueError(f"Expected a JSON list of characters in {path}")
    return [load_character(item) for item in payload]


def save_records_file(
    records: Iterable[Character],
    path: Path,
    *,
    storage_model: bool = False,
) -> None:
    """Write *records* as a JSON list (API shape unless *storage_model*)."""
    convert = to_model if storage_model else character_to_dict
    save_json([convert(r) for r in records], path)
