from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Union

from lark import Lark
from lark.exceptions import UnexpectedCharacters

from .errors import LexError

_GRAMMAR_PATH = Path(__file__).with_name("tokens.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_LEXER = Lark(
    _GRAMMAR_SRC,
    parser="lalr",
    lexer="basic",
    start="start",
)


class TokenKind(str, Enum):
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    NUMBER = "number"
    STRING = "string"
    PUNCTUATION = "punctuation"
    EOF = "end-of-input"


KEYWORDS = frozenset(
    {
        "const",
        "let",
        "var",
        "if",
        "else",
        "for",
        "switch",
        "case",
        "default",
        "break",
        "function",
        "async",
        "await",
        "return",
        "class",
        "implements",
        "interface",
        "type",
        "import",
        "from",
        "as",
        "extends",
        "new",
        "this",
        "true",
        "false",
        "void",
        "Promise",
        "while",
        "of",
        "continue",
        "try",
        "catch",
        "finally",
        "throw",
        "null",
        "undefined",
        "super",
    }
)

# Keywords that are also accepted where an identifier is expected (binding
# names, property keys, type names).
CONTEXTUAL_KEYWORDS = frozenset({"as", "from", "of", "type", "async", "Promise", "undefined"})

_ESCAPES = {'"': '"', "'": "'", "\\": "\\", "n": "\n"}


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: Union[str, float]
    line: int
    column: int
    newline_before: bool = False

    @property
    def text(self) -> str:
        """Source-like spelling, used in diagnostics."""
        if self.kind is TokenKind.EOF:
            return "end of input"
        if self.kind is TokenKind.STRING:
            return f'"{self.value}"'
        if self.kind is TokenKind.NUMBER:
            return format_number(self.value)
        return str(self.value)

    def is_punct(self, value: str) -> bool:
        return self.kind is TokenKind.PUNCTUATION and self.value == value

    def is_keyword(self, value: str) -> bool:
        return self.kind is TokenKind.KEYWORD and self.value == value


def format_number(value: float) -> str:
    if value != value:
        return "NaN"
    if value in (float("inf"), float("-inf")):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def unescape(body: str) -> str:
    out: list[str] = []
    idx = 0
    while idx < len(body):
        ch = body[idx]
        if ch == "\\" and idx + 1 < len(body):
            nxt = body[idx + 1]
            if nxt in _ESCAPES:
                out.append(_ESCAPES[nxt])
            else:
                out.append(ch + nxt)
            idx += 2
            continue
        out.append(ch)
        idx += 1
    return "".join(out)


def tokenize(source: str) -> Iterator[Token]:
    """
    Lazily lex `source`, ending with a single EOF token.

    Lex errors surface when iteration reaches the offending character.
    Each call starts over from the beginning of the source.
    """
    prev_end = 0
    try:
        for raw in _LEXER.lex(source):
            # Line breaks may hide inside skipped comments too.
            newline_before = "\n" in source[prev_end : raw.start_pos]
            prev_end = raw.end_pos
            line, column = raw.line, raw.column
            if raw.type == "NAME":
                kind = TokenKind.KEYWORD if raw.value in KEYWORDS else TokenKind.IDENTIFIER
                yield Token(kind, raw.value, line, column, newline_before)
            elif raw.type == "NUMBER":
                yield Token(TokenKind.NUMBER, float(raw.value), line, column, newline_before)
            elif raw.type == "STRING":
                yield Token(TokenKind.STRING, unescape(raw.value[1:-1]), line, column, newline_before)
            else:
                if raw.value == "/" and source[raw.start_pos + 1 : raw.start_pos + 2] == "*":
                    raise LexError("unterminated block comment", line, column)
                yield Token(TokenKind.PUNCTUATION, raw.value, line, column, newline_before)
    except UnexpectedCharacters as exc:
        if exc.char in ("'", '"'):
            raise LexError("unterminated string literal", exc.line, exc.column) from None
        raise LexError(f"unexpected character {exc.char!r}", exc.line, exc.column) from None
    end_line = source.count("\n") + 1
    end_column = len(source) - (source.rfind("\n") + 1) + 1
    yield Token(TokenKind.EOF, "", end_line, end_column, True)
