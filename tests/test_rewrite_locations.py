"""Tests for giving synthetic tokens a location."""

from __future__ import annotations

from kettle.rewriter import Rewriter
from kettle.tokens import NO_SPAN, Position, Span, Tag, Token

from .conftest import gen, toks


def _located(*items) -> list[Token]:
    tokens = toks(*items)
    Rewriter(tokens).add_locations_to_generated_tokens()
    return tokens


class TestAddLocations:
    def test_borrows_previous_end(self):
        tokens = _located(Tag.IDENTIFIER, gen(Tag.INDENT), Tag.IDENTIFIER)
        at = tokens[0].span.end
        assert tokens[1].span == Span(at, at)

    def test_mapping_start_borrows_next_start(self):
        tokens = _located(Tag.IDENTIFIER, gen(Tag.MAPPING_START, "{"), Tag.IDENTIFIER)
        at = tokens[2].span.start
        assert tokens[1].span == Span(at, at)

    def test_mapping_start_at_end_falls_back_to_previous(self):
        tokens = _located(Tag.IDENTIFIER, gen(Tag.MAPPING_START, "{"))
        at = tokens[0].span.end
        assert tokens[1].span == Span(at, at)

    def test_chain_of_generated_tokens(self):
        tokens = _located(Tag.IDENTIFIER, gen(Tag.OUTDENT), gen(Tag.OUTDENT))
        at = tokens[0].span.end
        assert tokens[1].span == Span(at, at)
        assert tokens[2].span == Span(at, at)

    def test_origin_location_not_borrowed(self):
        origin = Token(Tag.OUTDENT, "2", Span(Position(3, 4, 20), Position(3, 4, 20)))
        tokens = [Token(Tag.INDENT, "2", generated=True, origin=origin)]
        Rewriter(tokens).add_locations_to_generated_tokens()
        assert tokens[0].span == NO_SPAN

    def test_no_neighbour_no_origin(self):
        tokens = [gen(Tag.INDENT), gen(Tag.OUTDENT)]
        Rewriter(tokens).add_locations_to_generated_tokens()
        assert tokens[0].span == NO_SPAN
        assert tokens[1].span == NO_SPAN

    def test_existing_location_kept(self):
        here = Span(Position(3, 4, 20), Position(3, 5, 21))
        tok = Token(Tag.INDENT, "2", here, generated=True)
        tokens = toks(Tag.IDENTIFIER, tok)
        Rewriter(tokens).add_locations_to_generated_tokens()
        assert tokens[1].span == here

    def test_real_tokens_untouched(self):
        tokens = [Token(Tag.IDENTIFIER, "x")]
        Rewriter(tokens).add_locations_to_generated_tokens()
        assert tokens[0].span is None


class TestFromSource:
    def test_every_token_located(self, rewrite):
        source = "class A {a: 1}\nif a then b else c\nf = -> x if y\n"
        for tok in rewrite(source):
            assert tok.span is not None, tok

    def test_class_wrapper_locations(self, rewrite):
        tokens = rewrite("class A {a: 1}")
        name, wrapper_open = tokens[1], tokens[2]
        closer, wrapper_close = tokens[7], tokens[8]
        assert wrapper_open.span == Span(name.span.end, name.span.end)
        assert wrapper_close.span == Span(closer.span.end, closer.span.end)
        assert wrapper_open.span.start.line == 1
        assert wrapper_open.span.start.column == 8

    def test_inserted_terminator_location(self, rewrite):
        tokens = rewrite("if a { b } c")
        brace, term = tokens[4], tokens[5]
        assert term.span == Span(brace.span.end, brace.span.end)
