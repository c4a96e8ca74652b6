"""Token tags, data structures, and character classification helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto


class Tag(Enum):
    # Structural
    TERMINATOR = auto()  # newline or ;
    INDENT = auto()  # indentation or { (generic block open)
    OUTDENT = auto()  # dedent or } (generic block close)

    # Delimiters
    LPAREN = auto()  # (
    RPAREN = auto()  # )
    LBRACKET = auto()  # [
    RBRACKET = auto()  # ]
    MAPPING_START = auto()  # { of a mapping literal
    MAPPING_END = auto()  # } of a mapping literal
    CALL_START = auto()
    CALL_END = auto()
    PARAM_START = auto()
    PARAM_END = auto()
    INDEX_START = auto()
    INDEX_END = auto()
    STRING_START = auto()  # opening " of an interpolated string
    STRING_END = auto()
    REGEX_START = auto()
    REGEX_END = auto()

    # Keywords
    IF = auto()  # if, unless
    POST_IF = auto()  # if/unless modifying the preceding statement
    ELSE = auto()
    THEN = auto()
    TRY = auto()
    CATCH = auto()
    FINALLY = auto()
    WHEN = auto()
    LEADING_WHEN = auto()  # when as the first token on its line
    SWITCH = auto()
    WHILE = auto()  # while, until
    FOR = auto()
    CLASS = auto()
    EXTENDS = auto()
    RETURN = auto()
    THROW = auto()
    STATEMENT = auto()  # break, continue, debugger
    THIS = auto()  # this, @
    BOOL = auto()
    NULL = auto()

    # Operators
    ARROW = auto()  # -> =>
    ASSIGN = auto()  # =
    COMPOUND_ASSIGN = auto()  # += -= *= /= %= ||= &&= ?=
    COMPARE = auto()  # == != < > <= >= is isnt
    LOGIC = auto()  # && || and or
    PLUS = auto()
    MINUS = auto()
    MATH = auto()  # * / %
    UNARY = auto()  # ! not typeof delete new
    RELATION = auto()  # in of instanceof
    QUESTION = auto()  # ?
    ACCESSOR = auto()  # .
    RANGE = auto()  # .. ...
    COMMA = auto()
    COLON = auto()

    # Literals
    IDENTIFIER = auto()
    NUMBER = auto()
    STRING = auto()
    REGEX = auto()


@dataclass(frozen=True, slots=True)
class Position:
    """Source position, 1-based line and column, 0-based offset."""

    line: int
    column: int
    offset: int


@dataclass(frozen=True, slots=True)
class Span:
    """Source range from start to end position."""

    start: Position
    end: Position


# Location given to synthetic tokens with no real neighbour to borrow from.
NO_POSITION = Position(0, 0, 0)
NO_SPAN = Span(NO_POSITION, NO_POSITION)


@dataclass(slots=True)
class Token:
    """A single token. Mutable: rewrite passes retag tokens in place."""

    tag: Tag
    value: str
    span: Span | None = None
    generated: bool = False
    explicit: bool = False
    origin: Token | None = field(default=None, repr=False, compare=False)
    from_then: bool = False


def is_ident_start(ch: str) -> bool:
    """Return True if ch may start an identifier."""
    return ch != "" and (ch.isalpha() or ch in "_$")


def is_ident_char(ch: str) -> bool:
    """Return True if ch is a valid identifier character."""
    return ch != "" and (ch.isalnum() or ch in "_$")


def is_hex_digit(ch: str) -> bool:
    """Return True if ch is a hexadecimal digit."""
    return ch != "" and ch in "0123456789abcdefABCDEF"
