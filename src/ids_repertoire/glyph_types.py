"""Glyph and character record types.

A character owns one or more glyphs. Each glyph is one of:

  - ``BasicComponent``   irreducible shape, stroke data only
  - ``DerivedComponent`` shape derived from another component (``source``)
  - ``SplicedComponent`` component assembled like a compound
  - ``Identity``         same shape as another character (``source``)
  - ``Compound``         operator over operand characters

``source`` and ``operand_list`` hold characters (one code point each), never
integers; the storage model in ``ids_repertoire.transform`` converts them.
The ``*_to_dict`` / ``*_from_dict`` pair speaks the API shape
(``operandList``, ``type`` discriminator).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias

from ids_repertoire.ids_types import operator_arity


@dataclass(frozen=True, slots=True)
class BasicComponent:
    tags: tuple[str, ...] = ()
    strokes: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class DerivedComponent:
    source: str
    tags: tuple[str, ...] = ()
    strokes: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        _check_char(self.source, "source")


@dataclass(frozen=True, slots=True)
class Identity:
    source: str
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _check_char(self.source, "source")


@dataclass(frozen=True, slots=True)
class Block:
    """Explicit stacking-order entry: operand ``index`` draws ``strokes`` strokes."""

    index: int
    strokes: int


@dataclass(frozen=True, slots=True)
class Compound:
    operator: str
    operand_list: tuple[str, ...]
    tags: tuple[str, ...] = ()
    order: tuple[Block, ...] | None = None
    parameters: dict[str, float] | None = None

    def __post_init__(self) -> None:
        _check_operands(self.operator, self.operand_list)


@dataclass(frozen=True, slots=True)
class SplicedComponent:
    operator: str
    operand_list: tuple[str, ...]
    tags: tuple[str, ...] = ()
    order: tuple[Block, ...] | None = None
    parameters: dict[str, float] | None = None

    def __post_init__(self) -> None:
        _check_operands(self.operator, self.operand_list)


Glyph: TypeAlias = BasicComponent | DerivedComponent | SplicedComponent | Identity | Compound

_PARAMETER_KEYS: frozenset[str] = frozenset({"gap2", "scale2", "gap3", "scale3"})


def _check_char(value: str, label: str) -> None:
    if len(value) != 1:
        raise ValueError(f"{label} must be a single character, got {value!r}")


def _check_operands(operator: str, operand_list: tuple[str, ...]) -> None:
    arity = operator_arity(operator)
    if len(operand_list) != arity:
        raise ValueError(
            f"Operator {operator} takes {arity} operands, got {len(operand_list)}",
        )
    for operand in operand_list:
        _check_char(operand, "operand")


@dataclass(frozen=True, slots=True)
class Reading:
    pinyin: str
    importance: float


@dataclass(frozen=True, slots=True)
class Character:
    """One repertoire entry: a real or PUA codepoint plus its glyph variants."""

    unicode: int
    name: str | None = None
    glyphs: tuple[Glyph, ...] = ()
    tygf: int = 0
    gb2312: int = 0
    gf0014_id: int | None = None
    gf3001_id: int | None = None
    ambiguous: bool = False
    readings: tuple[Reading, ...] = ()

    def __post_init__(self) -> None:
        if not 0 <= self.unicode <= 0x10FFFF:
            raise ValueError(f"unicode out of range: {self.unicode:#x}")
        if self.gb2312 not in (0, 1, 2):
            raise ValueError(f"gb2312 must be 0..2, got {self.gb2312}")

    @property
    def char(self) -> str:
        return chr(self.unicode)


# ---------------------------------------------------------------------------
# API-shaped dict conversion
# ---------------------------------------------------------------------------

def glyph_to_dict(glyph: Glyph) -> dict[str, Any]:
    """Serialize a glyph to its API dict (``type`` discriminator)."""
    if isinstance(glyph, BasicComponent):
        return {
            "type": "basic_component",
            "tags": list(glyph.tags),
            "strokes": list(glyph.strokes),
        }
    if isinstance(glyph, DerivedComponent):
        return {
            "type": "derived_component",
            "tags": list(glyph.tags),
            "source": glyph.source,
            "strokes": list(glyph.strokes),
        }
    if isinstance(glyph, Identity):
        return {"type": "identity", "tags": list(glyph.tags), "source": glyph.source}

    out: dict[str, Any] = {
        "type": "compound" if isinstance(glyph, Compound) else "spliced_component",
        "operator": glyph.operator,
        "operandList": list(glyph.operand_list),
        "tags": list(glyph.tags),
    }
    if glyph.order is not None:
        out["order"] = [{"index": b.index, "strokes": b.strokes} for b in glyph.order]
    if glyph.parameters is not None:
        out["parameters"] = dict(glyph.parameters)
    return out


def glyph_from_dict(data: dict[str, Any]) -> Glyph:
    """Inverse of ``glyph_to_dict``. Raises ValueError on unknown types."""
    kind = data.get("type")
    tags = tuple(data.get("tags") or ())
    if kind == "basic_component":
        return BasicComponent(tags=tags, strokes=tuple(data.get("strokes") or ()))
    if kind == "derived_component":
        return DerivedComponent(
            source=data["source"],
            tags=tags,
            strokes=tuple(data.get("strokes") or ()),
        )
    if kind == "identity":
        return Identity(source=data["source"], tags=tags)
    if kind in ("compound", "spliced_component"):
        order = data.get("order")
        parameters = data.get("parameters")
        if parameters is not None:
            unknown = set(parameters) - _PARAMETER_KEYS
            if unknown:
                raise ValueError(f"Unknown compound parameters: {sorted(unknown)}")
        cls = Compound if kind == "compound" else SplicedComponent
        return cls(
            operator=data["operator"],
            operand_list=tuple(data["operandList"]),
            tags=tags,
            order=(
                tuple(Block(index=int(b["index"]), strokes=int(b["strokes"])) for b in order)
                if order is not None
                else None
            ),
            parameters=dict(parameters) if parameters is not None else None,
        )
    raise ValueError(f"Unknown glyph type: {kind!r}")


def character_to_dict(character: Character) -> dict[str, Any]:
    return {
        "unicode": character.unicode,
        "name": character.name,
        "glyphs": [glyph_to_dict(g) for g in character.glyphs],
        "tygf": character.tygf,
        "gb2312": character.gb2312,
        "gf0014_id": character.gf0014_id,
        "gf3001_id": character.gf3001_id,
        "ambiguous": character.ambiguous,
        "readings": [
            {"pinyin": r.pinyin, "importance": r.importance} for r in character.readings
        ],
    }


def character_from_dict(data: dict[str, Any]) -> Character:
    return Character(
        unicode=int(data["unicode"]),
        name=data.get("name"),
        glyphs=tuple(glyph_from_dict(g) for g in data.get("glyphs") or ()),
        tygf=int(data.get("tygf") or 0),
        gb2312=int(data.get("gb2312") or 0),
        gf0014_id=data.get("gf0014_id"),
        gf3001_id=data.get("gf3001_id"),
        ambiguous=bool(data.get("ambiguous", False)),
        readings=tuple(
            Reading(pinyin=r["pinyin"], importance=r["importance"])
            for r in data.get("readings") or ()
        ),
    )
