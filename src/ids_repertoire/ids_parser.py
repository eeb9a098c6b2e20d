"""IDS expression lexer and recursive-descent parser.

Grammar::

    expr      := leaf TAGS? | OPERATOR operand{arity} TAGS?
    operand   := OPERATOR operand{arity} TAGS? | BRACE | CHAR
    leaf      := BRACE | CHAR
    OPERATOR  := one of ⿰ ⿱ ⿲ ⿳ ⿴ ⿵ ⿶ ⿷ ⿸ ⿹ ⿺ ⿻ ⿼ ⿽ ⿾ ⿿
    BRACE     := '{' [^}]* '}'      alias for a non-encoded component
    TAGS      := '[' [^]]* ']'      one tag per character
    CHAR      := any other single character

Arity is 3 for ⿲ and ⿳ and 2 for every other operator. Bare operands take
no tags; tags attach only where a leaf or compound expression completes.

Public API:

* ``tokenize(text)``: full token list (ending with EOF).
* ``parse_ids(text)``: parse one expression into an ``IDSNode``.
* ``serialize_ids(node)``: write a tree back to IDS text.
"""
from __future__ import annotations

from dataclasses import dataclass

from ids_repertoire.ids_types import (
    OPERATORS,
    VARIANT_MARKER,
    IDSComponent,
    IDSCompound,
    IDSNode,
    operator_arity,
)

_OPERATOR_SET: frozenset[str] = frozenset(OPERATORS)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class IDSError(ValueError):
    """Base class for errors local to one IDS description or input line."""


class IDSLexError(IDSError):
    """Raised on an unterminated ``{`` or ``[``, or an empty ``{}``."""

    def __init__(self, message: str, position: int) -> None:
        super().__init__(f"{message} at offset {position}")
        self.position = position


class IDSSyntaxError(IDSError):
    """Raised when a token appears where the grammar does not allow it."""

    def __init__(self, message: str, token: Token) -> None:
        super().__init__(f"{message} at offset {token.pos}")
        self.token = token


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Token:
    """A single lexical token."""

    kind: str  # "OPERATOR" | "BRACE" | "TAGS" | "CHAR" | "EOF"
    value: str
    pos: int


class _Lexer:
    """Forward-only token stream over one IDS expression."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def _read_until(self, closer: str) -> str:
        opener_pos = self._pos
        end = self._text.find(closer, opener_pos + 1)
        if end < 0:
            raise IDSLexError(f"Unterminated {self._text[opener_pos]!r}", opener_pos)
        self._pos = end + 1
        return self._text[opener_pos + 1:end]

    def next_token(self) -> Token:
        pos = self._pos
        if pos >= len(self._text):
            return Token(kind="EOF", value="", pos=pos)

        ch = self._text[pos]
        if ch in _OPERATOR_SET:
            self._pos += 1
            return Token(kind="OPERATOR", value=ch, pos=pos)

        if ch == "{":
            content = self._read_until("}")
            if not content:
                raise IDSLexError("Empty '{}'", pos)
            if len(content) == 1:
                content += VARIANT_MARKER
            return Token(kind="BRACE", value=content, pos=pos)

        if ch == "[":
            return Token(kind="TAGS", value=self._read_until("]"), pos=pos)

        self._pos += 1
        return Token(kind="CHAR", value=ch, pos=pos)


def tokenize(text: str) -> list[Token]:
    """Tokenize an IDS expression into a list of tokens ending with EOF."""
    lexer = _Lexer(text)
    tokens: list[Token] = []
    while True:
        tok = lexer.next_token()
        tokens.append(tok)
        if tok.kind == "EOF":
            return tokens


# ---------------------------------------------------------------------------
# Recursive descent parser
# ---------------------------------------------------------------------------

class _Parser:
    """Recursive descent parser with one token of lookahead."""

    def __init__(self, lexer: _Lexer) -> None:
        self._lexer = lexer
        self._lookahead = lexer.next_token()

    def _peek(self) -> Token:
        return self._lookahead

    def _eat(self, kind: str) -> Token:
        tok = self._lookahead
        if tok.kind != kind:
            raise IDSSyntaxError(f"Expected {kind}, got {tok.kind} ({tok.value!r})", tok)
        self._lookahead = self._lexer.next_token()
        return tok

    def _parse_tags(self) -> tuple[str, ...]:
        if self._peek().kind == "TAGS":
            return tuple(self._eat("TAGS").value)
        return ()

    def parse_expression(self) -> IDSNode:
        """expr := leaf TAGS? | OPERATOR operand{arity} TAGS?"""
        tok = self._peek()
        if tok.kind in ("CHAR", "BRACE"):
            content = self._eat(tok.kind).value
            return IDSComponent(content=content, tags=self._parse_tags())

        op_tok = self._eat("OPERATOR")
        arity = operator_arity(op_tok.value)
        operands: list[IDSNode] = []
        while len(operands) < arity:
            operands.append(self._parse_operand())
        return IDSCompound(
            operator=op_tok.value,
            operands=tuple(operands),
            tags=self._parse_tags(),
        )

    def _parse_operand(self) -> IDSNode:
        tok = self._peek()
        if tok.kind == "OPERATOR":
            return self.parse_expression()
        if tok.kind in ("BRACE", "CHAR"):
            return IDSComponent(content=self._eat(tok.kind).value)
        raise IDSSyntaxError(f"Unexpected token: {tok.kind} ({tok.value!r})", tok)

    def expect_end(self) -> None:
        tok = self._peek()
        if tok.kind != "EOF":
            raise IDSSyntaxError(
                f"Unexpected trailing input: {tok.kind} ({tok.value!r})", tok,
            )


def parse_ids(text: str) -> IDSNode:
    """Parse one IDS expression.

    Raises ``IDSLexError`` or ``IDSSyntaxError``; the whole input must form
    exactly one expression.
    """
    parser = _Parser(_Lexer(text))
    node = parser.parse_expression()
    parser.expect_end()
    return node


# ---------------------------------------------------------------------------
# Serializer: tree → IDS text
# ---------------------------------------------------------------------------

def serialize_ids(node: IDSNode) -> str:
    """Serialize an IDS tree back to text.

    Round-trip: ``parse_ids(serialize_ids(parse_ids(t)))`` equals
    ``parse_ids(t)``.
    """
    if isinstance(node, IDSComponent):
        return _serialize_content(node.content) + _serialize_tags(node.tags)
    body = "".join(_serialize_operand(op) for op in node.operands)
    return node.operator + body + _serialize_tags(node.tags)


def _serialize_operand(node: IDSNode) -> str:
    if isinstance(node, IDSComponent):
        # Bare operands carry no tags in the grammar.
        return _serialize_content(node.content)
    return serialize_ids(node)


def _serialize_content(content: str) -> str:
    if len(content) == 1:
        return content
    if len(content) == 2 and content.endswith(VARIANT_MARKER):
        return "{" + content[0] + "}"
    return "{" + content + "}"


def _serialize_tags(tags: tuple[str, ...]) -> str:
    return f"[{''.join(tags)}]" if tags else ""
