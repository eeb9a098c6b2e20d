"""Unicode block table for the character repertoire.

Every codepoint the repertoire may hold falls in one of the named blocks
below. The PUA blocks additionally host two reserved sub-ranges for
synthesized characters:

    components  U+E200  – U+E3FF
    compounds   U+F0000 – U+FFFFD

The two sub-ranges never overlap.
"""
from __future__ import annotations


BLOCKS: dict[str, tuple[int, int]] = {
    "基本": (0x4E00, 0x9FFF),  # CJK Unified Ideographs
    "扩展A": (0x3400, 0x4DBF),
    "扩展B": (0x20000, 0x2A6DF),
    "扩展C": (0x2A700, 0x2B73F),
    "扩展D": (0x2B740, 0x2B81F),
    "扩展E": (0x2B820, 0x2CEAF),
    "扩展F": (0x2CEB0, 0x2EBEF),
    "扩展G": (0x30000, 0x3134F),
    "扩展H": (0x31350, 0x323AF),
    "扩展I": (0x2EBF0, 0x2EE5F),
    "扩展J": (0x323B0, 0x3347F),
    "部首补充": (0x2E80, 0x2EFF),
    "康熙部首": (0x2F00, 0x2FDF),
    "符号标点": (0x3000, 0x303F),
    "笔画": (0x31C0, 0x31EF),
    "兼容文字": (0xF900, 0xFAFF),
    "西夏文": (0x17000, 0x187FF),
    "西夏文部首": (0x18800, 0x18AFF),
    "契丹小字": (0x18B00, 0x18CFF),
    "西夏文补充": (0x18D00, 0x18D7F),
    "西夏文部件补充": (0x18D80, 0x18DFF),
    "PUA": (0xE000, 0xFFFF),
    "SPUA_A": (0xF0000, 0xFFFFD),
    "SPUA_B": (0x100000, 0x10FFFD),
}

# The BMP PUA overlaps the compatibility ideographs; lookup order decides.
_LOOKUP_ORDER: tuple[str, ...] = tuple(BLOCKS)

COMPONENT_START = 0xE200
COMPONENT_END = 0xE3FF
COMPOUND_START = 0xF0000
COMPOUND_END = 0xFFFFD


def get_block(unicode: int) -> str | None:
    """Return the block name holding *unicode*, or None when unknown."""
    for name in _LOOKUP_ORDER:
        start, end = BLOCKS[name]
        if start <= unicode <= end:
            return name
    return None


def is_pua(unicode: int) -> bool:
    """True for any codepoint in one of the private-use blocks."""
    block = get_block(unicode)
    return block is not None and "PUA" in block


def is_valid_character(char: str) -> bool:
    """True if *char* is a single character inside a known block."""
    return len(char) == 1 and get_block(ord(char)) is not None


def in_component_range(unicode: int) -> bool:
    return COMPONENT_START <= unicode <= COMPONENT_END


def in_compound_range(unicode: int) -> bool:
    return COMPOUND_START <= unicode <= COMPOUND_END
