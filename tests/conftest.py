"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from kettle import lex as lex_and_rewrite
from kettle.lexer import tokenize
from kettle.tables import EXPRESSION_END, EXPRESSION_START, INVERSES
from kettle.tokens import Position, Span, Tag, Token

_DEFAULT_VALUES: dict[Tag, str] = {
    Tag.TERMINATOR: "\n",
    Tag.INDENT: "2",
    Tag.OUTDENT: "2",
    Tag.LPAREN: "(",
    Tag.RPAREN: ")",
    Tag.LBRACKET: "[",
    Tag.RBRACKET: "]",
    Tag.CALL_START: "(",
    Tag.CALL_END: ")",
    Tag.INDEX_START: "[",
    Tag.INDEX_END: "]",
    Tag.MAPPING_START: "{",
    Tag.MAPPING_END: "}",
    Tag.COLON: ":",
    Tag.COMMA: ",",
    Tag.ARROW: "->",
    Tag.IDENTIFIER: "x",
    Tag.NUMBER: "1",
}


@pytest.fixture
def lex():
    """Return a helper that tokenizes source without rewriting it."""

    def _lex(source: str) -> list[Token]:
        return tokenize(source)

    return _lex


@pytest.fixture
def rewrite():
    """Return a helper that tokenizes and rewrites source."""

    def _rewrite(source: str) -> list[Token]:
        return lex_and_rewrite(source)

    return _rewrite


def toks(*items: Tag | tuple[Tag, str] | Token) -> list[Token]:
    """Build a token list on line 1, one column gap between tokens.

    Items are a Tag (default value), a (Tag, value) pair, or a ready-made
    Token which is used as is.
    """
    tokens: list[Token] = []
    col = 1
    for item in items:
        if isinstance(item, Token):
            tokens.append(item)
            continue
        if isinstance(item, tuple):
            tag, value = item
        else:
            tag, value = item, _DEFAULT_VALUES.get(item, item.name.lower())
        start = Position(1, col, col - 1)
        col += max(1, len(value))
        tokens.append(Token(tag, value, Span(start, Position(1, col, col - 1))))
        col += 1
    return tokens


def gen(tag: Tag, value: str = "2", *, from_then: bool = False) -> Token:
    """A generated token without a location."""
    return Token(tag, value, generated=True, from_then=from_then)


def tags(tokens: list[Token]) -> list[Tag]:
    return [t.tag for t in tokens]


def assert_tags(tokens: list[Token], expected: list[Tag]) -> None:
    """Assert that the token tags match the expected list."""
    actual = tags(tokens)
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_values(tokens: list[Token], expected: list[str]) -> None:
    """Assert that the token values match the expected list."""
    actual = [t.value for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_nested(tokens: list[Token]) -> None:
    """Assert that every closer matches the innermost open opener and all are closed."""
    stack: list[tuple[int, Tag]] = []
    for i, tok in enumerate(tokens):
        if tok.tag in EXPRESSION_START:
            stack.append((i, tok.tag))
        elif tok.tag in EXPRESSION_END:
            assert stack, f"unopened {tok.tag.name} at {i}"
            j, opener = stack.pop()
            assert INVERSES[tok.tag] == opener, (
                f"{tok.tag.name} at {i} closes {opener.name} at {j}"
            )
    assert not stack, f"unclosed {[t.name for _, t in stack]}"


def snapshot(tokens: list[Token]) -> list[tuple]:
    return [(t.tag, t.value, t.span, t.generated, t.explicit, t.from_then) for t in tokens]
