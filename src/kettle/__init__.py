"""Kettle language front end: lexer and token-stream rewriter."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kettle.tokens import Token

__version__ = "0.1.0"


def lex(
    source: str,
    filename: str = "input.ktl",
    *,
    rewrite: bool = True,
    tab_width: int = 2,
) -> list[Token]:
    """Tokenize Kettle source and, unless told otherwise, rewrite the stream for the parser."""
    from kettle.lexer import tokenize
    from kettle.rewriter import Rewriter

    tokens = tokenize(source, filename, tab_width)
    if rewrite:
        tokens = Rewriter(tokens, source, filename).rewrite()
    return tokens
