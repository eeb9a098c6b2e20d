"""PUA allocation for IDS trees.

Walks parsed IDS trees, resolves every leaf alias and nested sub-compound to
a codepoint, and mints Private-Use-Area characters for the shapes no
existing character represents.

Codepoint families:

  - components  ``U+E200``–``U+E3FF``, keyed by alias text
  - compounds   ``U+F0000``–``U+FFFFD``, keyed by pre-resolution structure

Dedup keys come from the syntax of the input, not from the resolved
operands, and never include tags: ``⿰{yao}子`` written twice shares one
codepoint, but two spellings that resolve to the same operands do not.
Historical codepoints depend on this, so it must not be "fixed".

Allocation is deterministic. Characters are handled in input order,
operands left to right, children before parents. Re-running with the same
input against the same repertoire gives the same codepoints, and a run
seeded with the output of a previous run mints nothing new.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

from ids_repertoire.glyph_types import (
    BasicComponent,
    Character,
    Compound,
    Glyph,
    Identity,
)
from ids_repertoire.ids_source import IDSCharacter, IDSReadResult, ParseIssue
from ids_repertoire.ids_types import (
    IDSComponent,
    IDSCompound,
    IDSNode,
    StructuralKey,
    structural_key,
)
from ids_repertoire.unicode_blocks import (
    COMPONENT_END,
    COMPONENT_START,
    COMPOUND_END,
    COMPOUND_START,
    in_component_range,
    in_compound_range,
    is_pua,
    is_valid_character,
)

log = logging.getLogger(__name__)

DISAMBIGUATORS = "一二三四五六七八九十"

_SUFFIXES: dict[str, str] = {
    "⿰": "旁边",
    "⿱": "头底",
    "⿲": "旁中边",
    "⿳": "头腰底",
}
_ENCLOSING_SUFFIXES = "框心"


class AllocatorInvariantError(RuntimeError):
    """Seed state or allocator bookkeeping is inconsistent. Aborts the run."""


def operand_suffix(operator: str, position: int) -> str:
    """Positional label for operand *position* (0-based) of *operator*."""
    labels = _SUFFIXES.get(operator, _ENCLOSING_SUFFIXES)
    if not 0 <= position < len(labels):
        raise ValueError(f"No operand {position} for operator {operator}")
    return labels[position]


def _is_compound_record(character: Character) -> bool:
    return bool(character.glyphs) and isinstance(character.glyphs[0], Compound)


class PUAAllocator:
    """Owns the counters, dedup table and name registry for one run."""

    def __init__(self, repertoire: Iterable[Character]) -> None:
        characters = list(repertoire)
        self._existing: dict[int, Character] = {c.unicode: c for c in characters}
        self._name_owners: dict[str, Character] = {
            c.name: c for c in characters if c.name is not None
        }
        self._used_names: set[str] = set(self._name_owners)
        self._dedup: dict[StructuralKey, Character] = {}
        self._minted: list[Character] = []

        self._component_counter = COMPONENT_START
        self._compound_counter = COMPOUND_START
        for character in characters:
            if in_component_range(character.unicode):
                self._component_counter = max(self._component_counter, character.unicode + 1)
            if in_compound_range(character.unicode):
                self._compound_counter = max(self._compound_counter, character.unicode + 1)
        self.initial_component_counter = self._component_counter
        self.initial_compound_counter = self._compound_counter

        for character in characters:
            if not is_pua(character.unicode):
                continue
            key = self._seed_key(character, frozenset())
            if key is None:
                continue
            keys: list[StructuralKey] = [key]
            name = character.name
            if name is not None and name != key and not _is_compound_record(character):
                keys.append(name)
            for seed in keys:
                if seed in self._dedup:
                    log.debug(
                        "Seed key of U+%04X already held by U+%04X",
                        character.unicode,
                        self._dedup[seed].unicode,
                    )
                    continue
                self._dedup[seed] = character

        log.info("Starting component PUA: U+%04X", self._component_counter)
        log.info("Starting compound PUA: U+%04X", self._compound_counter)

    # ─── Seeding ──────────────────────────────────────────────────

    def _component_alias(self, character: Character) -> str | None:
        """Alias text a persisted PUA component was minted for.

        A component whose alias collided with the name of a non-component
        record was stored as ``<alias>之<n>``; its alias is ``<alias>``.
        """
        name = character.name
        if name is None:
            return None
        base, sep, digit = name.rpartition("之")
        if not sep or len(digit) != 1 or digit not in DISAMBIGUATORS:
            return name
        owner = self._name_owners.get(base)
        if owner is None:
            return name
        if is_pua(owner.unicode) and not _is_compound_record(owner):
            return name
        return base

    def _seed_key(
        self, character: Character, visiting: frozenset[int],
    ) -> StructuralKey | None:
        """Rebuild the key a persisted PUA character was minted under."""
        if character.unicode in visiting:
            raise AllocatorInvariantError(
                f"Cyclic glyph reference through U+{character.unicode:04X}",
            )
        if _is_compound_record(character):
            glyph = character.glyphs[0]
            assert isinstance(glyph, Compound)
            inner = visiting | {character.unicode}
            return (
                glyph.operator,
                tuple(self._seed_operand_key(op, inner) for op in glyph.operand_list),
            )
        return self._component_alias(character)

    def _seed_operand_key(self, operand: str, visiting: frozenset[int]) -> StructuralKey:
        existing = self._existing.get(ord(operand))
        if existing is None or not is_pua(existing.unicode):
            return operand
        if _is_compound_record(existing):
            key = self._seed_key(existing, visiting)
            assert key is not None
            return key
        alias = self._component_alias(existing)
        return alias if alias is not None else operand

    # ─── State accessors ──────────────────────────────────────────

    @property
    def component_counter(self) -> int:
        return self._component_counter

    @property
    def compound_counter(self) -> int:
        return self._compound_counter

    @property
    def minted(self) -> tuple[Character, ...]:
        """Characters created by this allocator, in allocation order."""
        return tuple(self._minted)

    def is_name_used(self, name: str) -> bool:
        return name in self._used_names

    # ─── Naming ───────────────────────────────────────────────────

    def uniquify(self, raw_name: str) -> str:
        """Register and return *raw_name*, or ``<raw_name>之<n>`` if taken."""
        name = raw_name
        if name in self._used_names:
            for char in DISAMBIGUATORS:
                name = f"{raw_name}之{char}"
                if name not in self._used_names:
                    break
            else:
                raise AllocatorInvariantError(
                    f"Name disambiguators exhausted for {raw_name!r}",
                )
        self._used_names.add(name)
        return name

    # ─── Allocation primitives ────────────────────────────────────

    def _lookup(self, key: StructuralKey, *, compound: bool) -> Character | None:
        record = self._dedup.get(key)
        if record is not None and _is_compound_record(record) != compound:
            family = "compound" if compound else "component"
            raise AllocatorInvariantError(
                f"Key {key!r} expected a {family} but holds U+{record.unicode:04X}",
            )
        return record

    def _store(self, key: StructuralKey, record: Character) -> None:
        if key in self._dedup:
            raise AllocatorInvariantError(f"Key {key!r} allocated twice")
        self._dedup[key] = record
        self._minted.append(record)

    def _next_component(self) -> int:
        unicode = self._component_counter
        if unicode > COMPONENT_END:
            raise AllocatorInvariantError("Component PUA range exhausted")
        self._component_counter += 1
        return unicode

    def _next_compound(self) -> int:
        unicode = self._compound_counter
        if unicode > COMPOUND_END:
            raise AllocatorInvariantError("Compound PUA range exhausted")
        self._compound_counter += 1
        return unicode

    # ─── Resolution ───────────────────────────────────────────────

    def get_or_create_component(self, alias: str) -> str:
        """Return the character standing for *alias*, minting one if needed."""
        if is_valid_character(alias):
            return alias
        hit = self._lookup(alias, compound=False)
        if hit is not None:
            return hit.char
        unicode = self._next_component()
        name = self.uniquify(alias)
        self._store(alias, Character(unicode=unicode, name=name, glyphs=(BasicComponent(),)))
        log.debug("Component U+%04X %s", unicode, name)
        return chr(unicode)

    def resolve_leaf(self, node: IDSComponent, character: str) -> BasicComponent | Identity:
        """A whole-character description that is a single leaf."""
        if node.content == character:
            return BasicComponent(tags=node.tags)
        return Identity(source=self.get_or_create_component(node.content), tags=node.tags)

    def resolve_compound(self, node: IDSCompound, name_hint: str) -> Compound:
        """Resolve *node*'s operands to characters and build its glyph.

        Nested compounds missing from the dedup table are resolved first,
        then given the next compound codepoint and the name
        ``<name_hint>字<suffix>``.
        """
        operand_list: list[str] = []
        for index, operand in enumerate(node.operands):
            if isinstance(operand, IDSComponent):
                operand_list.append(self.get_or_create_component(operand.content))
                continue

            key = structural_key(operand)
            hit = self._lookup(key, compound=True)
            if hit is not None:
                operand_list.append(hit.char)
                continue

            operand_name = f"{name_hint}字{operand_suffix(node.operator, index)}"
            glyph = self.resolve_compound(operand, operand_name)
            unicode = self._next_compound()
            name = self.uniquify(operand_name)
            self._store(key, Character(unicode=unicode, name=name, glyphs=(glyph,)))
            log.debug("Compound U+%04X %s", unicode, name)
            operand_list.append(chr(unicode))

        return Compound(
            operator=node.operator,
            operand_list=tuple(operand_list),
            tags=node.tags,
        )

    def resolve_description(self, tree: IDSNode, character: str) -> Glyph:
        """Resolve one full description of *character*."""
        if isinstance(tree, IDSComponent):
            return self.resolve_leaf(tree, character)
        return self.resolve_compound(tree, character)


# ---------------------------------------------------------------------------
# Run driver
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class AllocationReport:
    """Counts for one run. Every skipped line or description is an issue."""

    total_lines: int = 0
    total_descriptions: int = 0
    resolved_descriptions: int = 0
    characters_processed: int = 0
    skipped_existing: int = 0
    new_components: int = 0
    new_compounds: int = 0
    issues: list[ParseIssue] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "total_lines": self.total_lines,
            "total_descriptions": self.total_descriptions,
            "resolved_descriptions": self.resolved_descriptions,
            "characters_processed": self.characters_processed,
            "skipped_existing": self.skipped_existing,
            "new_components": self.new_components,
            "new_compounds": self.new_compounds,
            "issue_count": len(self.issues),
            "issues": [issue.to_dict() for issue in self.issues],
        }


@dataclass(frozen=True, slots=True)
class AllocationResult:
    records: tuple[Character, ...]
    report: AllocationReport
    component_range: tuple[int, int]  # [start, end) minted this run
    compound_range: tuple[int, int]


def check_unique_names(records: Iterable[Character]) -> None:
    """Raise ``AllocatorInvariantError`` if two records share a name."""
    seen: set[str] = set()
    for record in records:
        if record.name is None:
            continue
        if record.name in seen:
            raise AllocatorInvariantError(f"Duplicate name: {record.name}")
        seen.add(record.name)


def allocate_repertoire(
    characters: Sequence[IDSCharacter],
    repertoire: Sequence[Character],
    *,
    skip_existing: bool = True,
    report: AllocationReport | None = None,
) -> AllocationResult:
    """Resolve every description and return the records to persist.

    Characters already in *repertoire* are skipped when *skip_existing* is
    set; otherwise only their glyphs are replaced. The result lists the described characters first, then the minted
    PUA characters in allocation order.
    """
    if report is None:
        report = AllocationReport(
            total_lines=len(characters),
            total_descriptions=sum(len(c.descriptions) for c in characters),
        )
    allocator = PUAAllocator(repertoire)
    existing = {c.unicode: c for c in repertoire}

    records: list[Character] = []
    for ids_character in characters:
        if skip_existing and ids_character.unicode in existing:
            report.skipped_existing += 1
            continue
        glyphs = tuple(
            allocator.resolve_description(desc.tree, ids_character.char)
            for desc in ids_character.descriptions
        )
        report.characters_processed += 1
        report.resolved_descriptions += len(glyphs)
        current = existing.get(ids_character.unicode)
        if current is not None:
            records.append(replace(current, glyphs=glyphs))
        else:
            records.append(Character(unicode=ids_character.unicode, glyphs=glyphs))

    minted = allocator.minted
    records.extend(minted)
    check_unique_names(records)

    report.new_components = allocator.component_counter - allocator.initial_component_counter
    report.new_compounds = allocator.compound_counter - allocator.initial_compound_counter
    log.info("Component PUA: %d", report.new_components)
    log.info("Compound PUA: %d", report.new_compounds)
    log.info("Total new characters: %d", len(records))

    return AllocationResult(
        records=tuple(records),
        report=report,
        component_range=(allocator.initial_component_counter, allocator.component_counter),
        compound_range=(allocator.initial_compound_counter, allocator.compound_counter),
    )


def allocate_from_source(
    read_result: IDSReadResult,
    repertoire: Sequence[Character],
    *,
    skip_existing: bool = True,
) -> AllocationResult:
    """``allocate_repertoire`` over a read IDS file, carrying its issues."""
    report = AllocationReport(
        total_lines=read_result.total_lines,
        total_descriptions=read_result.total_descriptions,
        issues=list(read_result.issues),
    )
    return allocate_repertoire(
        read_result.characters,
        repertoire,
        skip_existing=skip_existing,
        report=report,
    )
