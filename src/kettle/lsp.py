"""Minimal LSP server for Kettle: diagnostics only."""

from __future__ import annotations

from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_OPEN,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidOpenTextDocumentParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentSyncKind,
)
from pygls.lsp.server import LanguageServer

from kettle import __version__
from kettle.errors import LexError, RewriteError
from kettle.lexer import tokenize
from kettle.rewriter import Rewriter
from kettle.tokens import Span

server = LanguageServer("kettle-lsp", __version__, text_document_sync_kind=TextDocumentSyncKind.Full)


def _error_range(span: Span) -> Range:
    """Convert a 1-based span to a 0-based LSP range at least one character wide."""
    # Synthetic tokens report line 0; clamp to the first line
    start = Position(line=max(0, span.start.line - 1), character=max(0, span.start.column - 1))
    end = Position(line=max(0, span.end.line - 1), character=max(0, span.end.column - 1))
    if end.line <= start.line:
        end = Position(line=start.line, character=max(start.character + 1, end.character))
    return Range(start=start, end=end)


def _check(source: str, filename: str) -> Diagnostic | None:
    try:
        Rewriter(tokenize(source, filename), source, filename).rewrite()
    except LexError as exc:
        span = Span(exc.position, exc.position)
        message = exc.message
    except RewriteError as exc:
        span = exc.span
        message = exc.message
    else:
        return None
    return Diagnostic(
        range=_error_range(span),
        message=message,
        severity=DiagnosticSeverity.Error,
        source="kettle",
    )


def _validate(ls: LanguageServer, uri: str) -> None:
    """Lex and rewrite the open document and publish the first error, if any."""
    source = ls.workspace.get_text_document(uri).source
    diagnostic = _check(source, uri.rpartition("/")[2])
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=[diagnostic] if diagnostic else [])
    )


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


def main() -> None:
    server.start_io()
