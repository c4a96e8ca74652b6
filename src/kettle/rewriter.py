"""Kettle rewriter: turns the lexer's token stream into an unambiguous one.

The lexer marks calls, indexes and blocks with opening tags only and cannot
tell a mapping literal's braces from a block's. The passes below resolve
those ambiguities in a fixed order, each one relying on the invariants left
by the passes before it, and finally give every synthetic token a location.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from kettle.errors import RewriteError
from kettle.scan import Condition, RegionNotClosed, detect_end, scan_tokens
from kettle.tables import BLOCK_NO_TERM, SINGLE_CLOSERS, SINGLE_LINERS, is_brace
from kettle.tokens import NO_SPAN, Span, Tag, Token

logger = logging.getLogger(__name__)


class Rewriter:
    """Run the rewrite passes over a token list, editing it in place."""

    def __init__(self, tokens: list[Token], source: str = "", filename: str = "input.ktl") -> None:
        self._tokens = tokens
        self._source = source
        self._filename = filename

    def rewrite(self) -> list[Token]:
        """Apply every pass in order and return the (same) token list."""
        for rewrite_pass in (
            self.remove_leading_newlines,
            self.close_open_calls,
            self.close_open_indexes,
            self.tag_postfix_conditionals,
            self.tag_mapping_braces,
            self.add_implicit_terminators,
            self.add_locations_to_generated_tokens,
        ):
            rewrite_pass()
            logger.debug(
                "%s: %s done, %d tokens", self._filename, rewrite_pass.__name__, len(self._tokens)
            )
        return self._tokens

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _error(self, message: str, token: Token) -> RewriteError:
        return RewriteError(message, token.span or NO_SPAN, self._source)

    def _tag(self, i: int) -> Tag | None:
        if 0 <= i < len(self._tokens):
            return self._tokens[i].tag
        return None

    def _detect_end(
        self,
        opener: int,
        condition: Condition,
        on_stop: Callable[[Token, int], None],
        what: str,
    ) -> None:
        try:
            detect_end(self._tokens, opener + 1, condition, on_stop)
        except RegionNotClosed:
            raise self._error(f"unclosed {what}", self._tokens[opener]) from None

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def remove_leading_newlines(self) -> None:
        """Drop terminators before the first statement."""
        for i, token in enumerate(self._tokens):
            if token.tag != Tag.TERMINATOR:
                break
        else:
            i = len(self._tokens)
        if i:
            del self._tokens[:i]

    def close_open_calls(self) -> None:
        """Match every CALL_START with the paren that closes it."""

        def condition(token: Token, i: int) -> bool:
            return token.tag in (Tag.RPAREN, Tag.CALL_END) or (
                token.tag == Tag.OUTDENT and self._tag(i - 1) == Tag.RPAREN
            )

        def visit(token: Token, i: int, tokens: list[Token]) -> int:
            if token.tag != Tag.CALL_START:
                return 1

            def on_stop(end: Token, j: int) -> None:
                if end.tag == Tag.OUTDENT:
                    j -= 1
                if tokens[j].tag not in (Tag.RPAREN, Tag.CALL_END):
                    raise self._error("missing ')' for call", token)
                tokens[j].tag = Tag.CALL_END

            self._detect_end(i, condition, on_stop, "call")
            return 1

        scan_tokens(self._tokens, visit)

    def close_open_indexes(self) -> None:
        """Match every INDEX_START with the bracket that closes it."""

        def condition(token: Token, i: int) -> bool:
            return token.tag in (Tag.RBRACKET, Tag.INDEX_END)

        def visit(token: Token, i: int, tokens: list[Token]) -> int:
            if token.tag != Tag.INDEX_START:
                return 1

            def on_stop(end: Token, j: int) -> None:
                if end.tag not in (Tag.RBRACKET, Tag.INDEX_END):
                    raise self._error("missing ']' for index", token)
                end.tag = Tag.INDEX_END

            self._detect_end(i, condition, on_stop, "index")
            return 1

        scan_tokens(self._tokens, visit)

    def tag_postfix_conditionals(self) -> None:
        """Retag an IF that modifies the statement before it as POST_IF.

        A leading conditional reaches a block of its own before the end of
        the clause; a postfix one reaches a terminator (or the implicit end
        of the block it sits in) first.
        """

        def condition(token: Token, i: int) -> bool:
            if token.tag == Tag.TERMINATOR:
                return True
            return token.tag == Tag.INDENT and self._tag(i - 1) not in SINGLE_LINERS

        def visit(token: Token, i: int, tokens: list[Token]) -> int:
            if token.tag != Tag.IF:
                return 1

            def on_stop(end: Token, j: int) -> None:
                if end.tag != Tag.INDENT or (end.generated and not end.from_then):
                    token.tag = Tag.POST_IF

            self._detect_end(i, condition, on_stop, "conditional")
            return 1

        scan_tokens(self._tokens, visit)

    def tag_mapping_braces(self) -> None:
        """Retag the braces around each colon as a mapping literal.

        A brace body directly after ``class X`` or ``extends Y`` is a class
        body and gets wrapped in a generated block as well.
        """
        scan_tokens(self._tokens, self._tag_mapping_at_colon)

    def _tag_mapping_at_colon(self, token: Token, i: int, tokens: list[Token]) -> int:
        if token.tag != Tag.COLON:
            return 1

        prev = tokens[i - 1] if i > 0 else None
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        if (
            prev is not None
            and nxt is not None
            and is_brace(prev.tag, prev.value, "{")
            and is_brace(nxt.tag, nxt.value, "}")
        ):
            prev.tag = Tag.MAPPING_START
            nxt.tag = Tag.MAPPING_END
            del tokens[i]
            return 1

        open_idx = self._find_open_brace(i)
        brace = tokens[open_idx]
        wrapper: Token | None = None
        if brace.tag == Tag.INDENT:
            brace.tag = Tag.MAPPING_START
            if any(self._tag(k) in (Tag.CLASS, Tag.EXTENDS) for k in (open_idx - 2, open_idx - 1)):
                wrapper = Token(Tag.INDENT, "2", generated=True, origin=brace)
                tokens.insert(open_idx, wrapper)
                i += 1

        close_idx = self._find_close_brace(i, brace)
        closer = tokens[close_idx]
        if closer.tag == Tag.OUTDENT:
            closer.tag = Tag.MAPPING_END
        if wrapper is not None:
            tokens.insert(close_idx + 1, Token(Tag.OUTDENT, "2", generated=True, origin=closer))
            return 2
        return 1

    def _find_open_brace(self, colon: int) -> int:
        depth = 0
        for j in range(colon - 1, -1, -1):
            token = self._tokens[j]
            if is_brace(token.tag, token.value, "}"):
                depth += 1
            elif is_brace(token.tag, token.value, "{"):
                if depth == 0:
                    return j
                depth -= 1
        raise self._error("':' outside of a mapping literal", self._tokens[colon])

    def _find_close_brace(self, colon: int, opener: Token) -> int:
        depth = 0
        for j in range(colon + 1, len(self._tokens)):
            token = self._tokens[j]
            if is_brace(token.tag, token.value, "{"):
                depth += 1
            elif is_brace(token.tag, token.value, "}"):
                if depth == 0:
                    return j
                depth -= 1
        raise self._error("unterminated mapping literal", opener)

    def add_implicit_terminators(self) -> None:
        """Separate a closed block from a statement following it on the same line."""

        def visit(token: Token, i: int, tokens: list[Token]) -> int:
            if token.tag != Tag.OUTDENT or i + 1 >= len(tokens):
                return 1
            following = tokens[i + 1].tag
            if following in SINGLE_CLOSERS or following in BLOCK_NO_TERM:
                return 1
            tokens.insert(i + 1, Token(Tag.TERMINATOR, "\n", explicit=True, origin=token))
            return 2

        scan_tokens(self._tokens, visit)

    def add_locations_to_generated_tokens(self) -> None:
        """Give every synthetic token a zero-width span next to a real neighbour."""

        def visit(token: Token, i: int, tokens: list[Token]) -> int:
            if token.span is not None or not (token.generated or token.explicit):
                return 1
            nxt = tokens[i + 1] if i + 1 < len(tokens) else None
            prev = tokens[i - 1] if i > 0 else None
            if token.tag == Tag.MAPPING_START and nxt is not None and nxt.span is not None:
                at = nxt.span.start
                token.span = Span(at, at)
            elif prev is not None and prev.span is not None:
                at = prev.span.end
                token.span = Span(at, at)
            else:
                token.span = NO_SPAN
            return 1

        scan_tokens(self._tokens, visit)


def rewrite(tokens: list[Token], source: str = "", filename: str = "input.ktl") -> list[Token]:
    """Convenience function: rewrite a lexer token list in place and return it."""
    return Rewriter(tokens, source, filename).rewrite()
