"""IDS tree types: leaf components, operator compounds and structural keys."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


OPERATORS: tuple[str, ...] = (
    "⿰", "⿱", "⿲", "⿳", "⿴", "⿵", "⿶", "⿷",
    "⿸", "⿹", "⿺", "⿻", "⿼", "⿽", "⿾", "⿿",
)

TERNARY_OPERATORS: frozenset[str] = frozenset({"⿲", "⿳"})

# Appended to a one-character brace alias: "a variant form of X".
VARIANT_MARKER = "变"


def operator_arity(operator: str) -> int:
    """Number of operands *operator* takes."""
    if operator not in OPERATORS:
        raise ValueError(f"Unknown IDS operator: {operator!r}")
    return 3 if operator in TERNARY_OPERATORS else 2


@dataclass(frozen=True, slots=True)
class IDSComponent:
    """A leaf: one literal character, or a multi-character alias."""

    content: str
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.content:
            raise ValueError("IDSComponent content cannot be empty")

    @property
    def is_alias(self) -> bool:
        return len(self.content) != 1


@dataclass(frozen=True, slots=True)
class IDSCompound:
    """An interior node: operator plus its positioned operands."""

    operator: str
    operands: tuple[IDSNode, ...]
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        arity = operator_arity(self.operator)
        if len(self.operands) != arity:
            raise ValueError(
                f"Operator {self.operator} takes {arity} operands, "
                f"got {len(self.operands)}",
            )


IDSNode: TypeAlias = IDSComponent | IDSCompound

# str for a leaf alias, (operator, operand keys...) for a compound.
StructuralKey: TypeAlias = "str | tuple[str, tuple[StructuralKey, ...]]"


def structural_key(node: IDSNode) -> StructuralKey:
    """Pre-resolution dedup key of *node*. Tags never participate."""
    if isinstance(node, IDSComponent):
        return node.content
    return (node.operator, tuple(structural_key(op) for op in node.operands))


def strip_tags(node: IDSNode) -> IDSNode:
    """Return *node* with every tag removed, recursively."""
    if isinstance(node, IDSComponent):
        return IDSComponent(content=node.content)
    return IDSCompound(
        operator=node.operator,
        operands=tuple(strip_tags(op) for op in node.operands),
    )
