"""Cursor scan engine and balanced-region scanner over a mutable token list."""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from kettle.tables import EXPRESSION_END, EXPRESSION_START
from kettle.tokens import Token

T = TypeVar("T")

Visitor = Callable[[Token, int, list[Token]], int]
Condition = Callable[[Token, int], bool]


class RegionNotClosed(Exception):
    """Raised by detect_end when the tokens run out inside an open region."""

    def __init__(self, start: int) -> None:
        self.start = start
        super().__init__(f"region starting at token {start} is never closed")


def scan_tokens(tokens: list[Token], visit: Visitor) -> None:
    """Walk *tokens* from the front, letting *visit* edit the list in place.

    The visitor returns how far to move the cursor: 1 for the next token,
    more to skip tokens it inserted, 0 or less after deleting tokens.
    """
    i = 0
    while i < len(tokens):
        i += visit(tokens[i], i, tokens)


def detect_end(
    tokens: list[Token],
    start: int,
    condition: Condition,
    on_stop: Callable[[Token, int], T],
) -> T:
    """Find the end of the region beginning at *start* and hand it to *on_stop*.

    Nested regions are skipped using the opener/closer tables. The region
    ends at the first token where *condition* holds at nesting level 0, or
    right after a closer that has no opener inside the region (an implicit
    close, e.g. a dedent), in which case *on_stop* receives that closer.

    Raises RegionNotClosed when the tokens run out first.
    """
    levels = 0
    i = start
    while i < len(tokens):
        token = tokens[i]
        if levels == 0 and condition(token, i):
            return on_stop(token, i)
        if levels < 0:
            return on_stop(tokens[i - 1], i - 1)
        if token.tag in EXPRESSION_START:
            levels += 1
        elif token.tag in EXPRESSION_END:
            levels -= 1
        i += 1
    if levels < 0:
        return on_stop(tokens[i - 1], i - 1)
    raise RegionNotClosed(start)
