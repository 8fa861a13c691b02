from __future__ import annotations

"""
Lua Tokenizer.

Hand-written scanner for Lua source text, plugged into lark as a custom
lexer. Long brackets ([[...]], [==[...]==]) need a matching closing level,
which a regular-expression terminal cannot express, so scanning is done here
and the grammar only declares terminal names.

Comments are not part of the token stream; they are collected on the
LuaSource wrapper handed to the parser.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from lark.lexer import Lexer, Token

# -----------------------------------------------------------------------------
# TOKEN TABLES
# -----------------------------------------------------------------------------

KEYWORDS: Dict[str, str] = {
    "and": "AND",
    "break": "_BREAK",
    "do": "_DO",
    "else": "_ELSE",
    "elseif": "_ELSEIF",
    "end": "_END",
    "false": "FALSE",
    "for": "_FOR",
    "function": "_FUNCTION",
    "goto": "_GOTO",
    "if": "_IF",
    "in": "_IN",
    "local": "_LOCAL",
    "nil": "NIL",
    "not": "NOT",
    "or": "OR",
    "repeat": "_REPEAT",
    "return": "_RETURN",
    "then": "_THEN",
    "true": "TRUE",
    "until": "_UNTIL",
    "while": "_WHILE",
}

# Longest symbols first so that '...' wins over '..' and '.'
SYMBOLS: Tuple[Tuple[str, str], ...] = (
    ("...", "VARARG"),
    ("..", "CONCAT"),
    ("==", "CMP"),
    ("~=", "CMP"),
    ("<=", "CMP"),
    (">=", "CMP"),
    ("::", "_DBCOLON"),
    ("<", "CMP"),
    (">", "CMP"),
    ("=", "_ASSIGN"),
    ("+", "PLUS"),
    ("-", "MINUS"),
    ("*", "STAR"),
    ("/", "SLASH"),
    ("%", "PERCENT"),
    ("^", "CARET"),
    ("#", "HASH"),
    ("(", "_LPAR"),
    (")", "_RPAR"),
    ("{", "_LBRACE"),
    ("}", "_RBRACE"),
    ("[", "_LSQB"),
    ("]", "_RSQB"),
    (";", "_SEMI"),
    (":", "_COLON"),
    (",", "_COMMA"),
    (".", "_DOT"),
)

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_HEX_NUMBER_RE = re.compile(r"0[xX](?:[0-9a-fA-F]+(?:\.[0-9a-fA-F]*)?|\.[0-9a-fA-F]+)(?:[pP][+-]?[0-9]+)?")
_DEC_NUMBER_RE = re.compile(r"(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_LONG_OPEN_RE = re.compile(r"\[(=*)\[")
_DIGITS = "0123456789"
_DIGITS_NONEMPTY = tuple(_DIGITS)


# -----------------------------------------------------------------------------
# ERRORS & INPUT
# -----------------------------------------------------------------------------

class LuaSyntaxError(Exception):
    """Malformed Lua source, with the 1-based position of the fault."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line}, column {self.column})"


@dataclass
class LuaSource:
    """Source text handed to the parser; the scanner fills 'comments'."""
    text: str
    comments: List[Dict[str, str]] = field(default_factory=list)


# -----------------------------------------------------------------------------
# SCANNER
# -----------------------------------------------------------------------------

class _Scanner:
    """Single-pass scanner producing lark tokens with line/column metadata."""

    def __init__(self, source: LuaSource) -> None:
        self.source = source
        self.text = source.text
        self.pos = 0
        self.line = 1
        self.line_start = 0

    # --- position helpers ---

    def _column(self, pos: int) -> int:
        return pos - self.line_start + 1

    def _advance_to(self, end: int) -> None:
        """Move to 'end', keeping the line counter in sync."""
        segment_newlines = self.text.count("\n", self.pos, end)
        if segment_newlines:
            self.line += segment_newlines
            self.line_start = self.text.rfind("\n", self.pos, end) + 1
        self.pos = end

    def _error(self, message: str, pos: Optional[int] = None) -> LuaSyntaxError:
        at = self.pos if pos is None else pos
        return LuaSyntaxError(message, self.line, self._column(at))

    def _token(self, kind: str, value: str, start: int) -> Token:
        line, column = self.line, self._column(start)
        self._advance_to(start + len(value))
        return Token(
            kind,
            value,
            start_pos=start,
            line=line,
            column=column,
            end_line=self.line,
            end_column=self._column(self.pos),
            end_pos=self.pos,
        )

    # --- main loop ---

    def tokens(self) -> Iterator[Token]:
        text = self.text
        length = len(text)

        if text.startswith("#"):
            # Shebang line
            newline = text.find("\n")
            self._advance_to(length if newline == -1 else newline)

        while self.pos < length:
            char = text[self.pos]

            if char in " \t\r\f\v\n":
                self._advance_to(self.pos + 1)
                continue

            start = self.pos

            if text.startswith("--", start):
                self._scan_comment(start)
                continue

            name = _NAME_RE.match(text, start)
            if name:
                word = name.group(0)
                yield self._token(KEYWORDS.get(word, "NAME"), word, start)
                continue

            if char in _DIGITS or (char == "." and text[start + 1:start + 2] in _DIGITS_NONEMPTY):
                yield self._token("NUMBER", self._scan_number(start), start)
                continue

            if char in "\"'":
                yield self._token("STRING", self._scan_quoted(start), start)
                continue

            if char == "[":
                long_open = _LONG_OPEN_RE.match(text, start)
                if long_open:
                    raw = self._scan_long_bracket(start, len(long_open.group(1)), "string")
                    yield self._token("STRING", raw, start)
                    continue
                if text.startswith("[=", start):
                    raise self._error("invalid long string delimiter")

            for symbol, kind in SYMBOLS:
                if text.startswith(symbol, start):
                    yield self._token(kind, symbol, start)
                    break
            else:
                raise self._error(f"unexpected symbol '{char}'")

    # --- token scanners ---

    def _scan_comment(self, start: int) -> None:
        text = self.text
        body_start = start + 2
        long_open = _LONG_OPEN_RE.match(text, body_start)
        if long_open:
            raw_body = self._scan_long_bracket(body_start, len(long_open.group(1)), "comment")
            raw = "--" + raw_body
            level = len(long_open.group(1))
            value = raw_body[level + 2:len(raw_body) - level - 2]
        else:
            newline = text.find("\n", body_start)
            end = len(text) if newline == -1 else newline
            raw = text[start:end]
            value = raw[2:]
        self.source.comments.append({"type": "Comment", "value": value, "raw": raw})
        self._advance_to(start + len(raw))

    def _scan_number(self, start: int) -> str:
        match = _HEX_NUMBER_RE.match(self.text, start) or _DEC_NUMBER_RE.match(self.text, start)
        if match is None:
            raise self._error("malformed number", start)
        end = match.end()
        if end < len(self.text) and (self.text[end].isalnum() or self.text[end] in "._"):
            raise self._error(f"malformed number near '{self.text[start:end + 1]}'", start)
        return match.group(0)

    def _scan_quoted(self, start: int) -> str:
        text = self.text
        quote = text[start]
        pos = start + 1
        length = len(text)
        while pos < length:
            char = text[pos]
            if char == quote:
                return text[start:pos + 1]
            if char == "\n":
                break
            if char == "\\":
                pos += 2
                continue
            pos += 1
        raise self._error("unfinished string", start)

    def _scan_long_bracket(self, start: int, level: int, what: str) -> str:
        closing = "]" + "=" * level + "]"
        body_start = start + level + 2
        end = self.text.find(closing, body_start)
        if end == -1:
            raise self._error(f"unfinished long {what}", start)
        return self.text[start:end + len(closing)]


# -----------------------------------------------------------------------------
# LARK INTEGRATION
# -----------------------------------------------------------------------------

class LuaLexer(Lexer):
    """Custom lark lexer delegating to the hand-written scanner."""

    def __init__(self, lexer_conf) -> None:
        pass

    def lex(self, data: LuaSource) -> Iterator[Token]:
        return _Scanner(data).tokens()
