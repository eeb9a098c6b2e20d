"""Reader for IDS source files.

One character per line::

    U+674E<TAB>李<TAB>⿰木子<TAB>⿱木子$J

Each description may end with ``$<source>``, a collection-source tag.
Blank lines and ``#`` comments are ignored. Line-level problems raise
``ConsistencyError``; a description that fails to lex or parse is dropped
and reported without affecting its siblings.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ids_repertoire.ids_parser import IDSError, IDSLexError, parse_ids
from ids_repertoire.ids_types import IDSNode
from ids_repertoire.unicode_blocks import get_block

log = logging.getLogger(__name__)


class ConsistencyError(IDSError):
    """The line's codepoint field disagrees with its character, or is unusable."""


@dataclass(frozen=True, slots=True)
class IDSDescription:
    text: str
    tree: IDSNode
    source: str | None = None


@dataclass(frozen=True, slots=True)
class IDSCharacter:
    unicode: int
    descriptions: tuple[IDSDescription, ...]
    line_number: int = 0

    @property
    def char(self) -> str:
        return chr(self.unicode)


@dataclass(frozen=True, slots=True)
class ParseIssue:
    """One skipped line or description."""

    kind: str  # "consistency" | "lex" | "syntax"
    message: str
    line_number: int = 0
    unicode: int | None = None
    description: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind,
            "message": self.message,
            "line": self.line_number,
            "unicode": f"U+{self.unicode:04X}" if self.unicode is not None else None,
            "description": self.description,
        }


@dataclass(slots=True)
class IDSReadResult:
    characters: list[IDSCharacter] = field(default_factory=list)
    issues: list[ParseIssue] = field(default_factory=list)
    total_lines: int = 0
    total_descriptions: int = 0

    @property
    def parsed_descriptions(self) -> int:
        return sum(len(c.descriptions) for c in self.characters)


def _issue_kind(exc: IDSError) -> str:
    return "lex" if isinstance(exc, IDSLexError) else "syntax"


def decode_codepoint(field_text: str) -> int:
    """Decode ``U+XXXX`` into an integer codepoint."""
    if not field_text.startswith("U+"):
        raise ConsistencyError(f"Invalid codepoint field: {field_text!r}")
    try:
        unicode = int(field_text[2:], 16)
    except ValueError:
        raise ConsistencyError(f"Invalid codepoint field: {field_text!r}") from None
    if not 0 <= unicode <= 0x10FFFF:
        raise ConsistencyError(f"Codepoint out of range: {field_text}")
    return unicode


def split_source(description: str) -> tuple[str, str | None]:
    """Split ``⿰木子$GT`` into (``⿰木子``, ``GT``)."""
    text, sep, source = description.partition("$")
    return text, (source or None) if sep else None


def parse_ids_line(
    line: str,
    *,
    line_number: int = 0,
) -> tuple[IDSCharacter, list[ParseIssue]]:
    """Parse one IDS source line.

    Raises ``ConsistencyError`` when the line itself is unusable. Returns the
    character (possibly with fewer descriptions than the line lists) and the
    issues for descriptions that were dropped.
    """
    fields = line.strip().split("\t") if "\t" in line else line.split()
    fields = [f for f in fields if f]
    if len(fields) < 2:
        raise ConsistencyError(f"Expected codepoint and character, got {line.strip()!r}")
    unicode_field, character, *raw_descriptions = fields
    unicode = decode_codepoint(unicode_field)
    if get_block(unicode) is None:
        raise ConsistencyError(f"Unknown character block: {character} {unicode_field}")
    if chr(unicode) != character:
        raise ConsistencyError(f"{character} does not match {unicode_field}")
    if not raw_descriptions:
        raise ConsistencyError(f"No description for {character} {unicode_field}")

    descriptions: list[IDSDescription] = []
    issues: list[ParseIssue] = []
    for raw in raw_descriptions:
        text, source = split_source(raw)
        try:
            tree = parse_ids(text)
        except IDSError as exc:
            issues.append(ParseIssue(
                kind=_issue_kind(exc),
                message=str(exc),
                line_number=line_number,
                unicode=unicode,
                description=raw,
            ))
            continue
        descriptions.append(IDSDescription(text=text, tree=tree, source=source))

    return (
        IDSCharacter(unicode=unicode, descriptions=tuple(descriptions), line_number=line_number),
        issues,
    )


def read_ids_lines(lines: Iterable[str]) -> IDSReadResult:
    """Parse every line, collecting issues instead of aborting."""
    result = IDSReadResult()
    for line_number, line in enumerate(lines, start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        result.total_lines += 1
        try:
            character, issues = parse_ids_line(line, line_number=line_number)
        except ConsistencyError as exc:
            result.issues.append(ParseIssue(
                kind="consistency",
                message=str(exc),
                line_number=line_number,
            ))
            continue
        result.total_descriptions += len(character.descriptions) + len(issues)
        result.issues.extend(issues)
        if character.descriptions:
            result.characters.append(character)
        else:
            log.debug("Line %d: every description of %s failed", line_number, character.char)
    log.info(
        "Read %d lines: %d characters, %d/%d descriptions parsed, %d issues",
        result.total_lines,
        len(result.characters),
        result.parsed_descriptions,
        result.total_descriptions,
        len(result.issues),
    )
    return result


def read_ids_file(path: Path) -> IDSReadResult:
    """Read an IDS source file (UTF-8)."""
    return read_ids_lines(path.read_text(encoding="utf-8").splitlines())
