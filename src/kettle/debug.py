"""Token stream dumps for --debug and the CLI output formats."""

from __future__ import annotations

import json
import sys
from typing import Any, TextIO

from kettle.tokens import Span, Token


def dump_tokens(tokens: list[Token], *, file: TextIO = sys.stderr, locations: bool = True) -> None:
    """Print one line per token to *file*."""
    file.write(format_tokens(tokens, locations=locations))


def format_tokens(tokens: list[Token], *, locations: bool = True) -> str:
    return "".join(format_token(tok, locations=locations) + "\n" for tok in tokens)


def format_token(tok: Token, *, locations: bool = True) -> str:
    parts = []
    if locations:
        parts.append(f"{_format_span(tok.span):<12}")
    parts.append(f"{tok.tag.name:<14}")
    parts.append(repr(tok.value))
    flags = _flags(tok)
    if flags:
        parts.append(f"({', '.join(flags)})")
    return " ".join(parts).rstrip()


def tokens_to_json(tokens: list[Token], *, locations: bool = True) -> str:
    """Render tokens as a JSON array; flags are only present when set."""
    return json.dumps([_token_dict(tok, locations) for tok in tokens], indent=2) + "\n"


def _token_dict(tok: Token, locations: bool) -> dict[str, Any]:
    d: dict[str, Any] = {"tag": tok.tag.name, "value": tok.value}
    if locations and tok.span is not None:
        d["span"] = {
            "first_line": tok.span.start.line,
            "first_column": tok.span.start.column,
            "last_line": tok.span.end.line,
            "last_column": tok.span.end.column,
        }
    if tok.generated:
        d["generated"] = True
    if tok.explicit:
        d["explicit"] = True
    if tok.from_then:
        d["from_then"] = True
    return d


def _format_span(span: Span | None) -> str:
    if span is None:
        return "-"
    return f"{span.start.line}:{span.start.column}-{span.end.line}:{span.end.column}"


def _flags(tok: Token) -> list[str]:
    flags = []
    if tok.generated:
        flags.append("generated")
    if tok.explicit:
        flags.append("explicit")
    if tok.from_then:
        flags.append("from then")
    return flags
