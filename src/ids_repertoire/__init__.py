"""IDS decomposition parsing and PUA allocation for the character repertoire."""

from ids_repertoire.glyph_types import (
    BasicComponent,
    Block,
    Character,
    Compound,
    DerivedComponent,
    Glyph,
    Identity,
    Reading,
    SplicedComponent,
)
from ids_repertoire.ids_parser import (
    IDSError,
    IDSLexError,
    IDSSyntaxError,
    parse_ids,
    serialize_ids,
    tokenize,
)
from ids_repertoire.ids_source import (
    ConsistencyError,
    IDSCharacter,
    IDSDescription,
    read_ids_file,
    read_ids_lines,
)
from ids_repertoire.ids_types import IDSComponent, IDSCompound, IDSNode, structural_key
from ids_repertoire.pua_allocator import (
    AllocationReport,
    AllocationResult,
    AllocatorInvariantError,
    PUAAllocator,
    allocate_from_source,
    allocate_repertoire,
    operand_suffix,
)

__all__ = [
    "AllocationReport",
    "AllocationResult",
    "AllocatorInvariantError",
    "BasicComponent",
    "Block",
    "Character",
    "Compound",
    "ConsistencyError",
    "DerivedComponent",
    "Glyph",
    "IDSCharacter",
    "IDSComponent",
    "IDSCompound",
    "IDSDescription",
    "IDSError",
    "IDSLexError",
    "IDSNode",
    "IDSSyntaxError",
    "Identity",
    "PUAAllocator",
    "Reading",
    "SplicedComponent",
    "allocate_from_source",
    "allocate_repertoire",
    "operand_suffix",
    "parse_ids",
    "read_ids_file",
    "read_ids_lines",
    "serialize_ids",
    "structural_key",
    "tokenize",
]
