"""Kettle lexer: converts source text into the token stream the rewriter expects.

Calls, indexes and braces are only marked by their opening tags here; every
``)`` is an RPAREN, every ``]`` an RBRACKET and every brace a generic block
marker. Resolving those is the rewriter's job.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto

from kettle.errors import LexError
from kettle.tables import OPERATORS
from kettle.tokens import (
    Position,
    Span,
    Tag,
    Token,
    is_hex_digit,
    is_ident_char,
    is_ident_start,
)

logger = logging.getLogger(__name__)


class _State(Enum):
    NORMAL = auto()
    STRING = auto()  # inside a double-quoted string with interpolations


@dataclass(slots=True)
class _InlineBlock:
    """A block opened on the same line by ->, then, else, try or finally."""

    depth: int  # open explicit delimiters when the block started
    indent: int  # indentation of the line it started on
    opener: str


_KEYWORDS: dict[str, Tag] = {
    "if": Tag.IF,
    "unless": Tag.IF,
    "else": Tag.ELSE,
    "try": Tag.TRY,
    "catch": Tag.CATCH,
    "finally": Tag.FINALLY,
    "switch": Tag.SWITCH,
    "while": Tag.WHILE,
    "until": Tag.WHILE,
    "for": Tag.FOR,
    "class": Tag.CLASS,
    "extends": Tag.EXTENDS,
    "return": Tag.RETURN,
    "throw": Tag.THROW,
    "break": Tag.STATEMENT,
    "continue": Tag.STATEMENT,
    "debugger": Tag.STATEMENT,
    "this": Tag.THIS,
    "true": Tag.BOOL,
    "false": Tag.BOOL,
    "yes": Tag.BOOL,
    "no": Tag.BOOL,
    "on": Tag.BOOL,
    "off": Tag.BOOL,
    "null": Tag.NULL,
    "undefined": Tag.NULL,
    "in": Tag.RELATION,
    "of": Tag.RELATION,
    "instanceof": Tag.RELATION,
    "and": Tag.LOGIC,
    "or": Tag.LOGIC,
    "is": Tag.COMPARE,
    "isnt": Tag.COMPARE,
    "not": Tag.UNARY,
    "typeof": Tag.UNARY,
    "delete": Tag.UNARY,
    "new": Tag.UNARY,
}

# Longest first.
_OPERATORS: tuple[tuple[str, Tag], ...] = (
    ("...", Tag.RANGE),
    ("||=", Tag.COMPOUND_ASSIGN),
    ("&&=", Tag.COMPOUND_ASSIGN),
    ("->", Tag.ARROW),
    ("=>", Tag.ARROW),
    ("==", Tag.COMPARE),
    ("!=", Tag.COMPARE),
    ("<=", Tag.COMPARE),
    (">=", Tag.COMPARE),
    ("&&", Tag.LOGIC),
    ("||", Tag.LOGIC),
    ("+=", Tag.COMPOUND_ASSIGN),
    ("-=", Tag.COMPOUND_ASSIGN),
    ("*=", Tag.COMPOUND_ASSIGN),
    ("%=", Tag.COMPOUND_ASSIGN),
    ("?=", Tag.COMPOUND_ASSIGN),
    ("..", Tag.RANGE),
    ("=", Tag.ASSIGN),
    ("<", Tag.COMPARE),
    (">", Tag.COMPARE),
    ("+", Tag.PLUS),
    ("-", Tag.MINUS),
    ("*", Tag.MATH),
    ("%", Tag.MATH),
    ("!", Tag.UNARY),
    ("?", Tag.QUESTION),
    (".", Tag.ACCESSOR),
    (",", Tag.COMMA),
    (":", Tag.COLON),
    (";", Tag.TERMINATOR),
    ("@", Tag.THIS),
)

_CALLABLE = frozenset(
    {Tag.IDENTIFIER, Tag.THIS, Tag.RPAREN, Tag.RBRACKET, Tag.QUESTION, Tag.STRING}
)
_INDEXABLE = _CALLABLE | {Tag.STRING_END}

# A / after one of these is division, not the start of a regex.
_VALUES = frozenset(
    {
        Tag.IDENTIFIER,
        Tag.NUMBER,
        Tag.STRING,
        Tag.STRING_END,
        Tag.REGEX,
        Tag.REGEX_END,
        Tag.RPAREN,
        Tag.RBRACKET,
        Tag.BOOL,
        Tag.NULL,
        Tag.THIS,
    }
)

# A line ending in one of these continues on the next line.
_CONTINUES_LINE = (OPERATORS - {Tag.QUESTION}) | {Tag.COMMA, Tag.ACCESSOR, Tag.COLON}

# No terminator directly after an opener.
_NO_TERMINATOR_AFTER = frozenset(
    {Tag.TERMINATOR, Tag.LPAREN, Tag.LBRACKET, Tag.CALL_START, Tag.INDEX_START, Tag.INDENT}
)

# Words that continue the statement on the previous line.
_CONTINUATION_WORDS = frozenset({"else", "catch", "finally", "when"})

_CLOSERS: dict[str, tuple[str, Tag]] = {
    ")": ("(", Tag.RPAREN),
    "]": ("[", Tag.RBRACKET),
    "}": ("{", Tag.OUTDENT),
}


class Lexer:
    """Tokenize Kettle source text into a list of Token objects."""

    def __init__(self, source: str, filename: str = "input.ktl", tab_width: int = 2) -> None:
        self._source = source
        self._filename = filename
        self._tab_width = tab_width
        self._pos = 0
        self._line = 1
        self._col = 1
        self._tokens: list[Token] = []
        self._state_stack: list[_State] = []
        self._state = _State.NORMAL
        # (token, "(" | "[" | "{" | "#{", indent stack height when opened)
        self._openers: list[tuple[Token, str, int]] = []
        self._indents = [0]
        self._line_indent = 0
        self._inline: list[_InlineBlock] = []
        self._spaced = False  # whitespace directly before the next token
        self._line_start = True  # no token emitted yet on this line

    def tokenize(self) -> list[Token]:
        """Tokenize the full source and return the token list."""
        if self._next_line_indent():
            raise self._error("unexpected indentation")

        while self._pos < len(self._source):
            if self._state == _State.NORMAL:
                self._lex_normal()
            else:
                self._lex_string_part()

        self._close_all()
        logger.debug("%s: lexed %d tokens", self._filename, len(self._tokens))
        return self._tokens

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    @property
    def _depth(self) -> int:
        return len(self._openers)

    def _current_pos(self) -> Position:
        return Position(self._line, self._col, self._pos)

    def _peek(self, offset: int = 0) -> str:
        idx = self._pos + offset
        if idx < len(self._source):
            return self._source[idx]
        return ""

    def _advance(self) -> str:
        ch = self._source[self._pos]
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._col = 1
        else:
            self._col += 1
        return ch

    def _at_newline(self) -> bool:
        ch = self._peek()
        return ch == "\n" or (ch == "\r" and self._peek(1) == "\n")

    def _emit(self, tag: Tag, value: str, start: Position | None = None) -> Token:
        end = self._current_pos()
        if start is None:
            start = end
        tok = Token(tag, value, Span(start, end))
        self._tokens.append(tok)
        self._spaced = False
        self._line_start = False
        return tok

    def _generate(self, tag: Tag, value: str, from_then: bool = False) -> Token:
        """Append a synthetic token; the rewriter gives it a location later."""
        tok = Token(tag, value, generated=True, from_then=from_then)
        self._tokens.append(tok)
        return tok

    def _last(self) -> Token | None:
        return self._tokens[-1] if self._tokens else None

    def _error(self, message: str, pos: Position | None = None) -> LexError:
        if pos is None:
            pos = self._current_pos()
        return LexError(message, pos, self._source)

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def _push_state(self, state: _State) -> None:
        self._state_stack.append(self._state)
        self._state = state

    def _pop_state(self) -> None:
        self._state = self._state_stack.pop()

    # ------------------------------------------------------------------
    # Normal mode
    # ------------------------------------------------------------------

    def _lex_normal(self) -> None:
        ch = self._peek()

        if ch in " \t":
            self._advance()
            self._spaced = True
            return

        if ch == "#":
            while self._pos < len(self._source) and not self._at_newline():
                self._advance()
            return

        if self._at_newline():
            self._lex_newline()
            return

        if ch == "\\" and self._peek(1) == "\n":
            # Explicit line continuation
            self._advance()
            self._advance()
            self._spaced = True
            return

        if ch.isdigit():
            self._lex_number()
            return

        if is_ident_start(ch):
            self._lex_word()
            return

        if ch == "'":
            self._lex_single_string()
            return

        if ch == '"':
            self._lex_double_string()
            return

        if ch == "/":
            self._lex_slash()
            return

        if ch in "([{":
            self._lex_open(ch)
            return

        if ch in ")]}":
            self._lex_close(ch)
            return

        self._lex_operator()

    def _lex_number(self) -> None:
        start = self._current_pos()
        chars = []
        if self._peek() == "0" and self._peek(1) in ("x", "X"):
            chars.append(self._advance())
            chars.append(self._advance())
            if not is_hex_digit(self._peek()):
                raise self._error("invalid hexadecimal literal", start)
            while is_hex_digit(self._peek()):
                chars.append(self._advance())
        else:
            while self._peek().isdigit():
                chars.append(self._advance())
            # A second dot makes it a range, not a fraction
            if self._peek() == "." and self._peek(1).isdigit():
                chars.append(self._advance())
                while self._peek().isdigit():
                    chars.append(self._advance())
            if self._peek() in ("e", "E") and (
                self._peek(1).isdigit() or (self._peek(1) in "+-" and self._peek(2).isdigit())
            ):
                chars.append(self._advance())
                if self._peek() in "+-":
                    chars.append(self._advance())
                while self._peek().isdigit():
                    chars.append(self._advance())
        if is_ident_start(self._peek()):
            raise self._error("invalid number literal", start)
        self._emit(Tag.NUMBER, "".join(chars), start)

    def _lex_word(self) -> None:
        start = self._current_pos()
        chars = []
        while is_ident_char(self._peek()):
            chars.append(self._advance())
        word = "".join(chars)

        last = self._last()
        if last is not None and last.tag == Tag.ACCESSOR:
            # Property names may be reserved words
            self._emit(Tag.IDENTIFIER, word, start)
            return

        if word == "then":
            self._open_inline("then")
            return

        if word == "when":
            self._emit(Tag.LEADING_WHEN if self._line_start else Tag.WHEN, word, start)
            return

        if word == "else":
            self._close_inline_through({"then"})
            self._emit(Tag.ELSE, word, start)
            if self._peek_word() not in ("if", "unless"):
                self._open_inline("else")
            return

        if word in ("catch", "finally"):
            self._close_inline_through({"try", "then"})

        self._emit(_KEYWORDS.get(word, Tag.IDENTIFIER), word, start)
        if word in ("try", "finally"):
            self._open_inline(word)

    def _lex_open(self, ch: str) -> None:
        start = self._current_pos()
        last = self._last()
        adjacent = last is not None and not self._spaced
        self._advance()
        if ch == "(":
            tag = Tag.CALL_START if adjacent and last.tag in _CALLABLE else Tag.LPAREN
        elif ch == "[":
            tag = Tag.INDEX_START if adjacent and last.tag in _INDEXABLE else Tag.LBRACKET
        else:
            tag = Tag.INDENT
        tok = self._emit(tag, ch, start)
        self._openers.append((tok, ch, len(self._indents)))

    def _lex_close(self, ch: str) -> None:
        start = self._current_pos()
        if ch == "}" and self._openers and self._openers[-1][1] == "#{":
            self._end_interpolation()
            return
        expected, tag = _CLOSERS[ch]
        if not self._openers or self._openers[-1][1] != expected:
            raise self._error(f"unmatched '{ch}'", start)
        self._close_nested_blocks(start)
        self._openers.pop()
        self._advance()
        self._emit(tag, ch, start)

    def _lex_operator(self) -> None:
        start = self._current_pos()
        for text, tag in _OPERATORS:
            if self._source.startswith(text, self._pos):
                break
        else:
            raise self._error(f"unexpected character '{self._peek()}'", start)

        if tag == Tag.TERMINATOR:
            self._close_inline(lambda b: b.depth >= self._depth)
        elif tag == Tag.COMMA:
            self._close_inline(lambda b: b.depth >= self._depth)
        elif tag == Tag.ARROW:
            last = self._last()
            if last is not None and last.tag == Tag.RPAREN:
                self._tag_parameters()

        for _ in text:
            self._advance()
        self._emit(tag, text, start)

        if tag == Tag.ARROW:
            self._open_inline(text)

    def _tag_parameters(self) -> None:
        """Retag the parenthesised list before an arrow as a parameter list."""
        level = 0
        for tok in reversed(self._tokens):
            if tok.tag == Tag.RPAREN:
                level += 1
            elif tok.tag in (Tag.LPAREN, Tag.CALL_START):
                level -= 1
                if level == 0:
                    tok.tag = Tag.PARAM_START
                    self._tokens[-1].tag = Tag.PARAM_END
                    return

    def _lex_slash(self) -> None:
        start = self._current_pos()
        last = self._last()
        if last is None or last.tag not in _VALUES:
            end = self._regex_end()
            if end is not None:
                while self._pos < end:
                    self._advance()
                while self._peek() in ("g", "i", "m", "s", "u", "y"):
                    self._advance()
                self._emit(Tag.REGEX, self._source[start.offset : self._pos], start)
                return
        if self._peek(1) == "=":
            self._advance()
            self._advance()
            self._emit(Tag.COMPOUND_ASSIGN, "/=", start)
            return
        self._advance()
        self._emit(Tag.MATH, "/", start)

    def _regex_end(self) -> int | None:
        """Return the offset just past a regex starting at the cursor, if any."""
        j = self._pos + 1
        in_class = False
        while j < len(self._source):
            c = self._source[j]
            if c == "\n":
                return None
            if c == "\\":
                j += 2
                continue
            if c == "[":
                in_class = True
            elif c == "]":
                in_class = False
            elif c == "/" and not in_class:
                return None if j == self._pos + 1 else j + 1
            j += 1
        return None

    # ------------------------------------------------------------------
    # Strings
    # ------------------------------------------------------------------

    def _lex_single_string(self) -> None:
        start = self._current_pos()
        self._advance()  # consume opening quote
        while True:
            if self._pos >= len(self._source) or self._at_newline():
                raise self._error("unterminated string", start)
            ch = self._advance()
            if ch == "\\":
                if self._pos >= len(self._source) or self._at_newline():
                    raise self._error("unterminated string", start)
                self._advance()
            elif ch == "'":
                break
        self._emit(Tag.STRING, self._source[start.offset : self._pos], start)

    def _lex_double_string(self) -> None:
        start = self._current_pos()
        # Look ahead: a string without interpolation is a single token
        j = self._pos + 1
        while j < len(self._source) and self._source[j] not in '"\n':
            if self._source[j] == "\\":
                j += 2
                continue
            if self._source.startswith("#{", j):
                break
            j += 1
        else:
            if j >= len(self._source) or self._source[j] == "\n":
                raise self._error("unterminated string", start)
            while self._pos <= j:
                self._advance()
            self._emit(Tag.STRING, self._source[start.offset : self._pos], start)
            return

        self._advance()
        self._emit(Tag.STRING_START, '"', start)
        self._push_state(_State.STRING)

    def _lex_string_part(self) -> None:
        start = self._current_pos()
        ch = self._peek()

        if ch == '"':
            self._advance()
            self._emit(Tag.STRING_END, '"', start)
            self._pop_state()
            return

        if ch == "#" and self._peek(1) == "{":
            self._advance()
            self._advance()
            tok = self._emit(Tag.LPAREN, "(", start)
            self._openers.append((tok, "#{", len(self._indents)))
            self._push_state(_State.NORMAL)
            return

        chars = []
        while self._pos < len(self._source):
            c = self._peek()
            if c in '"\n' or (c == "#" and self._peek(1) == "{"):
                break
            if c == "\\":
                chars.append(self._advance())
                if self._pos >= len(self._source) or self._at_newline():
                    break
            chars.append(self._advance())
        if self._pos >= len(self._source) or self._at_newline():
            raise self._error("unterminated string", start)
        text = "".join(chars)
        self._emit(Tag.STRING, f'"{text}"', start)

    def _end_interpolation(self) -> None:
        start = self._current_pos()
        self._close_nested_blocks(start)
        self._openers.pop()
        self._advance()
        self._emit(Tag.RPAREN, ")", start)
        self._pop_state()

    # ------------------------------------------------------------------
    # Lines and indentation
    # ------------------------------------------------------------------

    def _lex_newline(self) -> None:
        if self._state_stack:
            raise self._error("unterminated string interpolation")
        newline = self._current_pos()
        if self._advance() == "\r":
            self._advance()
        indent = self._next_line_indent()
        if indent is None:
            return
        self._change_indent(indent, newline)
        self._line_start = True
        self._spaced = True

    def _next_line_indent(self) -> int | None:
        """Skip blank and comment lines; return the next line's indent, None at EOF."""
        while True:
            width = 0
            while self._peek() in (" ", "\t"):
                width += self._tab_width if self._advance() == "\t" else 1
            if self._pos >= len(self._source):
                return None
            if self._peek() == "#":
                while self._pos < len(self._source) and not self._at_newline():
                    self._advance()
                if self._pos >= len(self._source):
                    return None
            if self._at_newline():
                if self._advance() == "\r":
                    self._advance()
                continue
            return width

    def _change_indent(self, indent: int, newline: Position) -> None:
        last = self._last()
        top = self._indents[-1]
        if last is not None and last.tag in _CONTINUES_LINE and indent >= top:
            return
        if indent > top:
            self._emit_at(Tag.INDENT, str(indent - top), newline)
            self._indents.append(indent)
            self._line_indent = indent
            return
        self._dedent_to(indent, newline)
        self._terminate_line(newline)

    def _dedent_to(self, indent: int, at: Position) -> None:
        while indent < self._indents[-1]:
            level = self._indents.pop()
            self._close_inline(lambda b: b.indent >= level and b.depth >= self._depth)
            self._emit_at(Tag.OUTDENT, str(level - self._indents[-1]), at)
        if indent != self._indents[-1]:
            raise self._error("inconsistent indentation")
        self._close_inline(lambda b: b.indent >= indent and b.depth >= self._depth)
        self._line_indent = indent

    def _terminate_line(self, at: Position) -> None:
        last = self._last()
        if last is None or last.tag in _NO_TERMINATOR_AFTER:
            return
        if self._peek() in (")", "]", "}") or self._peek_word() in _CONTINUATION_WORDS:
            return
        self._emit_at(Tag.TERMINATOR, "\n", at)

    def _emit_at(self, tag: Tag, value: str, at: Position) -> Token:
        tok = Token(tag, value, Span(at, at))
        self._tokens.append(tok)
        return tok

    def _peek_word(self) -> str:
        """Return the identifier after any spaces at the cursor, without consuming it."""
        j = self._pos
        while j < len(self._source) and self._source[j] in " \t":
            j += 1
        k = j
        while k < len(self._source) and is_ident_char(self._source[k]):
            k += 1
        return self._source[j:k]

    # ------------------------------------------------------------------
    # Single-line blocks
    # ------------------------------------------------------------------

    def _code_follows(self) -> bool:
        j = self._pos
        while j < len(self._source) and self._source[j] in " \t":
            j += 1
        return j < len(self._source) and self._source[j] not in "\r\n#{)]},;"

    def _open_inline(self, opener: str) -> None:
        if not self._code_follows():
            return
        self._generate(Tag.INDENT, "2", from_then=opener == "then")
        self._inline.append(_InlineBlock(self._depth, self._line_indent, opener))

    def _close_inline(self, should_close: Callable[[_InlineBlock], bool]) -> None:
        while self._inline and should_close(self._inline[-1]):
            self._inline.pop()
            self._generate(Tag.OUTDENT, "2")

    def _close_inline_through(self, openers: set[str]) -> None:
        """Close single-line blocks up to and including the nearest one from *openers*."""
        for k in range(len(self._inline) - 1, -1, -1):
            block = self._inline[k]
            if block.depth < self._depth:
                return
            if block.opener in openers:
                while len(self._inline) > k:
                    self._inline.pop()
                    self._generate(Tag.OUTDENT, "2")
                return

    def _close_nested_blocks(self, at: Position) -> None:
        """Close every block opened inside the innermost delimiter, innermost first.

        Indentation levels pushed since the delimiter opened are popped here so
        their OUTDENTs come before the closing token and the next line does not
        dedent them again.
        """
        height = self._openers[-1][2]
        while len(self._indents) > height:
            level = self._indents.pop()
            self._close_inline(lambda b: b.indent >= level and b.depth >= self._depth)
            self._emit_at(Tag.OUTDENT, str(level - self._indents[-1]), at)
        self._close_inline(lambda b: b.depth >= self._depth)
        self._line_indent = min(self._line_indent, self._indents[-1])

    def _close_all(self) -> None:
        if self._state_stack or self._state != _State.NORMAL:
            raise self._error("unterminated string")
        if self._openers:
            tok, ch, _ = self._openers[-1]
            raise self._error(
                f"missing closing delimiter for '{ch}'", tok.span.start if tok.span else None
            )
        end = self._current_pos()
        self._dedent_to(0, end)
        self._close_inline(lambda b: True)
        last = self._last()
        if last is not None and last.tag != Tag.TERMINATOR:
            self._emit_at(Tag.TERMINATOR, "\n", end)


def tokenize(source: str, filename: str = "input.ktl", tab_width: int = 2) -> list[Token]:
    """Convenience function: tokenize source text and return token list."""
    return Lexer(source, filename, tab_width).tokenize()
