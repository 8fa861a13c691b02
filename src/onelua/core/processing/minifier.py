from __future__ import annotations

"""
Lua Minifier Back End.

Produces compact Lua from a syntax tree. It shares every structural and
parenthesization rule with the pretty printer and only changes how tokens
are joined: whitespace is emitted only where two neighbouring tokens would
otherwise lex differently. Identifiers are never renamed.
"""

import logging
import re
from typing import Final

from onelua.core.processing.printer import LuaPrinter
from onelua.core.syntax.nodes import Node

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# TOKEN BOUNDARY RULES
# -----------------------------------------------------------------------------

_WORD_CHARS: Final[frozenset] = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_")
_NUMBER_CHARS: Final[frozenset] = frozenset("0123456789.")
# A hex numeral may end in a letter, which the character rules cannot see
_HEX_NUMERAL_END: Final[re.Pattern] = re.compile(r"(?<![\w.])0[xX][0-9a-fA-F.]*(?:[pP][+-]?[0-9]+)?$")


def needs_separator(last: str, first: str) -> bool:
    """
    Decide whether a space is required between two adjacent characters.

    Args:
        last: Final character of the left-hand text.
        first: First character of the right-hand text.
    """
    if last in _WORD_CHARS and first in _WORD_CHARS:
        return True
    # '--' starts a comment
    if last == "-" and first == "-":
        return True
    # '1 ..', '.. .5' and '... ..' must not merge into one numeral or operator
    if (last == "." and first in _NUMBER_CHARS) or (first == "." and last in _NUMBER_CHARS):
        return True
    # '[[' and '[=' open long strings
    if last == "[" and first in "[=":
        return True
    return False


# -----------------------------------------------------------------------------
# MINIFIER
# -----------------------------------------------------------------------------

class LuaMinifier(LuaPrinter):
    """LuaPrinter variant emitting the shortest token separation."""

    COMMA = ","
    ASSIGN = "="

    def join_tokens(self, a: str, b: str) -> str:
        if not a or not b:
            return a + b
        if needs_separator(a[-1], b[0]):
            return a + " " + b
        if b[0] == "." and _HEX_NUMERAL_END.search(a):
            return a + " " + b
        return a + b

    def join_lines(self, a: str, b: str) -> str:
        # Statements and block bodies are separated by a single space
        if not a or not b:
            return a + b
        return a + " " + b

    def _table(self, expression: Node) -> str:
        fields = [self._field(item) for item in expression["fields"]]
        return "{" + self.COMMA.join(fields) + "}"


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def minify_tree(tree: Node) -> str:
    """Serialize a syntax tree as compact Lua source (newline terminated)."""
    text = LuaMinifier().format(tree)
    logger.debug(f"Minified tree: {len(text)} chars")
    return text
