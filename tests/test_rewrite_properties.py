"""Whole-pipeline properties of the rewritten stream."""

from __future__ import annotations

import logging

import pytest

from kettle.rewriter import Rewriter
from kettle.rewriter import rewrite as rewrite_tokens
from kettle.tables import BLOCK_NO_TERM, SINGLE_CLOSERS
from kettle.tokens import Span, Tag

from .conftest import assert_nested, assert_tags, snapshot, toks

SOURCES = [
    "foo(a, b)",
    "a[b[0]]",
    "x = 1 if y",
    "if y\n  x = 1\n",
    "if a then b else c",
    "f = -> x if y",
    "if a { b } c",
    "x = {a: {b: 1}}",
    "x = {:}",
    "class A {a: 1}",
    "class Animal {\n  move: (meters) ->\n    alert meters\n  name: 'x'\n}\n",
    "foo(a, ->\n  b)\n",
    "g(\n  a)\n",
    "a[->\n  b]\n",
    "x = [\n  1\n  2]\n",
    "x = {\n  a: 1\n  b: ->\n    c}\n",
    "switch x\n  when 1 then a\n  when 2 then b\n",
    "try a catch e then b",
    "x = [\n  1\n  2\n]\n",
    '"a#{f(b)}c"',
]


@pytest.mark.parametrize("source", SOURCES)
class TestProperties:
    def test_rewrite_is_idempotent(self, rewrite, source: str):
        tokens = rewrite(source)
        before = snapshot(tokens)
        Rewriter(tokens, source).rewrite()
        assert snapshot(tokens) == before

    def test_pairs_nested(self, rewrite, source: str):
        assert_nested(rewrite(source))

    def test_calls_and_indexes_closed(self, rewrite, source: str):
        found = [t.tag for t in rewrite(source)]
        assert found.count(Tag.CALL_START) == found.count(Tag.CALL_END)
        assert found.count(Tag.INDEX_START) == found.count(Tag.INDEX_END)

    def test_block_close_followed_by_separator(self, rewrite, source: str):
        tokens = rewrite(source)
        for i, tok in enumerate(tokens[:-1]):
            if tok.tag == Tag.OUTDENT:
                following = tokens[i + 1].tag
                assert following in SINGLE_CLOSERS or following in BLOCK_NO_TERM

    def test_every_token_located(self, rewrite, source: str):
        assert all(tok.span is not None for tok in rewrite(source))


class TestCallPairing:
    def test_every_call_start_has_call_end(self, rewrite):
        tokens = rewrite("foo(bar(1), baz[2](3))")
        starts = [t for t in tokens if t.tag == Tag.CALL_START]
        ends = [t for t in tokens if t.tag == Tag.CALL_END]
        assert len(starts) == len(ends) == 3
        assert [t for t in tokens if t.tag == Tag.RPAREN] == []


class TestPipeline:
    def test_arrow_block_followed_by_statement(self):
        tokens = toks(
            Tag.IDENTIFIER, Tag.ARROW, Tag.INDENT, Tag.IDENTIFIER, Tag.OUTDENT, Tag.IDENTIFIER
        )
        rewrite_tokens(tokens)
        assert_tags(
            tokens,
            [
                Tag.IDENTIFIER,
                Tag.ARROW,
                Tag.INDENT,
                Tag.IDENTIFIER,
                Tag.OUTDENT,
                Tag.TERMINATOR,
                Tag.IDENTIFIER,
            ],
        )
        assert tokens[5].explicit
        assert tokens[5].span == Span(tokens[4].span.end, tokens[4].span.end)

    def test_returns_same_list(self):
        tokens = toks(Tag.TERMINATOR, Tag.IDENTIFIER, Tag.TERMINATOR)
        assert rewrite_tokens(tokens) is tokens
        assert_tags(tokens, [Tag.IDENTIFIER, Tag.TERMINATOR])

    def test_empty_stream(self):
        assert rewrite_tokens([]) == []

    def test_passes_logged(self, caplog):
        tokens = toks(Tag.IDENTIFIER, Tag.TERMINATOR)
        with caplog.at_level(logging.DEBUG, logger="kettle.rewriter"):
            Rewriter(tokens, filename="demo.ktl").rewrite()
        messages = [r.getMessage() for r in caplog.records]
        assert any("demo.ktl: tag_postfix_conditionals done" in m for m in messages)
        assert len(messages) == 7
