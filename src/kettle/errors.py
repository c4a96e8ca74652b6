"""Error types with formatted source context."""

from __future__ import annotations

from kettle.tokens import Position, Span


def _snippet(
    message: str, filename: str, source: str, line: int, col: int, underline_len: int
) -> str:
    """Render an error header, location arrow, source line and caret underline."""
    lines = source.splitlines(keepends=True)
    line_idx = line - 1

    # Build the source line (strip trailing newline for display)
    if 0 <= line_idx < len(lines):
        source_line = lines[line_idx].rstrip("\n").rstrip("\r")
    else:
        source_line = ""

    pad = " " * max(0, col - 1)
    carets = "^" * underline_len

    line_num = str(line)
    gutter_width = len(line_num) + 1

    blank_gutter = " " * gutter_width + "|"
    line_gutter = f"{line_num:>{gutter_width - 1}} |"

    return (
        f"error: {message}\n"
        f"{' ' * gutter_width}--> {filename}:{line}:{col}\n"
        f"{blank_gutter}\n"
        f"{line_gutter} {source_line}\n"
        f"{blank_gutter} {pad}{carets}"
    )


class LexError(Exception):
    """Raised on the first lexing error, with position and source context."""

    def __init__(self, message: str, position: Position, source: str) -> None:
        self.message = message
        self.position = position
        self.source = source
        super().__init__(self.format())

    def format(self, filename: str = "input.ktl") -> str:
        return _snippet(
            self.message, filename, self.source, self.position.line, self.position.column, 1
        )


class RewriteError(Exception):
    """Raised when the token stream cannot be rewritten into a well-formed one.

    The span points at the token that opened the offending region. Synthetic
    tokens that never received a location report line 0, column 0.
    """

    def __init__(self, message: str, span: Span, source: str) -> None:
        self.message = message
        self.span = span
        self.source = source
        super().__init__(self.format())

    def format(self, filename: str = "input.ktl") -> str:
        col = self.span.start.column
        # Underline the full span when on one line, otherwise a single caret
        if self.span.end.line == self.span.start.line:
            underline_len = max(1, self.span.end.column - col)
        else:
            underline_len = 1
        return _snippet(
            self.message, filename, self.source, self.span.start.line, col, underline_len
        )
