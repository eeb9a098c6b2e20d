"""Character records ↔ storage model.

The storage model keeps one flat row per character:

  - ``glyphs``   JSON text; ``source`` and ``operandList`` as integer codepoints
  - ``readings`` JSON text
  - ``ambiguous`` 0/1

Both directions go through the API dict shape of ``glyph_types``.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any

import orjson

from ids_repertoire.glyph_types import (
    Character,
    Glyph,
    character_from_dict,
    glyph_from_dict,
    glyph_to_dict,
)


MODEL_COLUMNS: tuple[str, ...] = (
    "unicode",
    "name",
    "tygf",
    "gb2312",
    "gf0014_id",
    "gf3001_id",
    "ambiguous",
    "readings",
    "glyphs",
)


def glyph_to_model(glyph: Glyph) -> dict[str, Any]:
    """API glyph dict with character references replaced by codepoints."""
    data = glyph_to_dict(glyph)
    if "source" in data:
        data["source"] = ord(data["source"])
    if "operandList" in data:
        data["operandList"] = [ord(c) for c in data["operandList"]]
    return data


def glyph_from_model(data: dict[str, Any]) -> Glyph:
    restored = dict(data)
    if isinstance(restored.get("source"), int):
        restored["source"] = chr(restored["source"])
    if "operandList" in restored:
        restored["operandList"] = [
            chr(c) if isinstance(c, int) else c for c in restored["operandList"]
        ]
    return glyph_from_dict(restored)


def to_model(character: Character) -> dict[str, Any]:
    """Flatten a character into a storage row."""
    return {
        "unicode": character.unicode,
        "name": character.name,
        "tygf": character.tygf,
        "gb2312": character.gb2312,
        "gf0014_id": character.gf0014_id,
        "gf3001_id": character.gf3001_id,
        "ambiguous": int(character.ambiguous),
        "readings": orjson.dumps(
            [{"pinyin": r.pinyin, "importance": r.importance} for r in character.readings],
        ).decode(),
        "glyphs": orjson.dumps([glyph_to_model(g) for g in character.glyphs]).decode(),
    }


def from_model(row: dict[str, Any]) -> Character:
    """Inverse of ``to_model``."""
    glyphs = orjson.loads(row["glyphs"]) if row.get("glyphs") else []
    readings = orjson.loads(row["readings"]) if row.get("readings") else []
    character = character_from_dict({**row, "glyphs": [], "readings": readings})
    return replace(character, glyphs=tuple(glyph_from_model(g) for g in glyphs))


def load_character(data: dict[str, Any]) -> Character:
    """Accept either the API shape or the storage-model shape."""
    if isinstance(data.get("glyphs"), str):
        return from_model(data)
    return character_from_dict(data)
