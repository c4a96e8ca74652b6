"""Structural classification tables shared by the rewrite passes."""

from __future__ import annotations

from types import MappingProxyType

from kettle.tokens import Tag

# Tag pairs that must nest correctly in the rewritten stream.
BALANCED_PAIRS: tuple[tuple[Tag, Tag], ...] = (
    (Tag.LPAREN, Tag.RPAREN),
    (Tag.LBRACKET, Tag.RBRACKET),
    (Tag.INDENT, Tag.OUTDENT),
    (Tag.MAPPING_START, Tag.MAPPING_END),
    (Tag.CALL_START, Tag.CALL_END),
    (Tag.PARAM_START, Tag.PARAM_END),
    (Tag.INDEX_START, Tag.INDEX_END),
    (Tag.STRING_START, Tag.STRING_END),
    (Tag.REGEX_START, Tag.REGEX_END),
)

INVERSES: MappingProxyType[Tag, Tag] = MappingProxyType(
    {
        **{left: right for left, right in BALANCED_PAIRS},
        **{right: left for left, right in BALANCED_PAIRS},
    }
)

EXPRESSION_START: frozenset[Tag] = frozenset(left for left, _ in BALANCED_PAIRS)
EXPRESSION_END: frozenset[Tag] = frozenset(right for _, right in BALANCED_PAIRS)

# Tags that open a block on the same logical line without a real indent.
SINGLE_LINERS: frozenset[Tag] = frozenset(
    {Tag.ELSE, Tag.ARROW, Tag.TRY, Tag.FINALLY, Tag.THEN}
)

# After a block close these already separate or continue the statement.
SINGLE_CLOSERS: frozenset[Tag] = frozenset(
    {
        Tag.TERMINATOR,
        Tag.CATCH,
        Tag.FINALLY,
        Tag.ELSE,
        Tag.OUTDENT,
        Tag.LEADING_WHEN,
    }
)

OPERATORS: frozenset[Tag] = frozenset(
    {
        Tag.ASSIGN,
        Tag.COMPOUND_ASSIGN,
        Tag.COMPARE,
        Tag.LOGIC,
        Tag.PLUS,
        Tag.MINUS,
        Tag.MATH,
        Tag.UNARY,
        Tag.RELATION,
        Tag.QUESTION,
    }
)

# After a block close these continue the surrounding expression.
BLOCK_NO_TERM: frozenset[Tag] = (
    frozenset(
        {
            Tag.RPAREN,
            Tag.RBRACKET,
            Tag.CALL_END,
            Tag.PARAM_END,
            Tag.INDEX_END,
            Tag.MAPPING_END,
            Tag.STRING_END,
            Tag.REGEX_END,
            Tag.COMMA,
        }
    )
    | OPERATORS
)


def is_brace(tag: Tag, value: str, brace: str) -> bool:
    """Return True if a token is a literal brace, generic or already retagged."""
    if value != brace:
        return False
    if brace == "{":
        return tag in (Tag.INDENT, Tag.MAPPING_START)
    return tag in (Tag.OUTDENT, Tag.MAPPING_END)
