from __future__ import annotations

"""
Unit tests for the Lua pretty printer.

Verifies:
1. Minimal, structure-preserving parenthesization.
2. Truncating parentheses around calls and varargs are kept.
3. Statement layout and indentation.
4. Printing is idempotent.
"""

import pytest

from onelua.core.processing.printer import LuaPrinter, needs_binary_parens, print_tree
from onelua.core.syntax.parser import parse_chunk


def print_source(text: str) -> str:
    return print_tree(parse_chunk(text))


# -----------------------------------------------------------------------------
# Parenthesization
# -----------------------------------------------------------------------------

@pytest.mark.parametrize("source, expected", [
    ("x = 1 - (2 - 3)", "x = 1 - (2 - 3)"),
    ("x = (1 - 2) - 3", "x = 1 - 2 - 3"),
    ("x = ((1 + 2))", "x = 1 + 2"),
    ("x = (1 + 2) * 3", "x = (1 + 2) * 3"),
    ("x = 1 + (2 * 3)", "x = 1 + 2 * 3"),
    ("x = a + (b - c)", "x = a + b - c"),
    ("x = a * (b / c)", "x = a * b / c"),
    ("x = a / (b * c)", "x = a / (b * c)"),
    ("x = a - (b + c)", "x = a - (b + c)"),
    ("x = 2 ^ 3 ^ 4", "x = 2 ^ 3 ^ 4"),
    ("x = (2 ^ 3) ^ 4", "x = (2 ^ 3) ^ 4"),
    ("x = a .. (b .. c)", "x = a .. b .. c"),
    ("x = (a .. b) .. c", "x = (a .. b) .. c"),
    ("x = (a or b) and c", "x = (a or b) and c"),
    ("x = a or (b and c)", "x = a or b and c"),
    ("x = not (a == b)", "x = not (a == b)"),
    ("x = -(y ^ 2)", "x = -y ^ 2"),
    ("x = (-y) ^ 2", "x = (-y) ^ 2"),
    ("x = 2 ^ -3", "x = 2 ^ -3"),
    ("x = - -y", "x = - -y"),
    ("x = #t + 1", "x = #t + 1"),
    ("x = -(a + b)", "x = -(a + b)"),
])
def test_parenthesization(source: str, expected: str) -> None:
    """TC-01: Parentheses are re-derived from precedence and associativity."""
    assert print_source(source) == expected + "\n"


@pytest.mark.parametrize("source, expected", [
    ("return (f())", "return (f())"),
    ("return (...)", "return (...)"),
    ("return (x)", "return x"),
    ('return ("s")', 'return "s"'),
    ("return (f{})", "return (f{})"),
])
def test_truncating_parentheses(source: str, expected: str) -> None:
    """TC-02: Parentheses that limit a call or vararg to one value stay."""
    assert print_source(source) == expected + "\n"


def test_non_prefix_base_is_wrapped() -> None:
    assert print_source('x = ("abc"):upper()') == 'x = ("abc"):upper()\n'
    assert print_source("x = ({1})[1]") == "x = ({\n    1\n})[1]\n"


def test_semicolon_before_parenthesized_statement() -> None:
    """TC-03: A statement starting with '(' is not merged with the previous line."""
    text = print_source('local a = 1\n("abc"):upper()')
    assert text == 'local a = 1;\n("abc"):upper()\n'


def test_long_string_index_gets_space() -> None:
    assert print_source("x = t[ [[k]] ]") == "x = t[ [[k]]]\n"


def test_needs_binary_parens_rules() -> None:
    assert needs_binary_parens("+", 7, "left", "*") is True
    assert needs_binary_parens("*", 6, "right", "+") is False
    assert needs_binary_parens("-", 6, "right", "+") is False
    assert needs_binary_parens("-", 6, "right", "-") is True
    assert needs_binary_parens("..", 5, "right", "..") is False


# -----------------------------------------------------------------------------
# Statements
# -----------------------------------------------------------------------------

def test_local_function_layout() -> None:
    assert print_source("local function f(a, ...) return a end") == (
        "local function f(a, ...)\n"
        "    return a\n"
        "end\n"
    )


def test_if_chain_layout() -> None:
    source = "if a then x() elseif b then y() else z() end"
    assert print_source(source) == (
        "if a then\n"
        "    x()\n"
        "elseif b then\n"
        "    y()\n"
        "else\n"
        "    z()\n"
        "end\n"
    )


def test_loops_layout() -> None:
    source = "for i = 1, 10, 2 do print(i) end while true do break end repeat n = n + 1 until n > 3"
    assert print_source(source) == (
        "for i = 1, 10, 2 do\n"
        "    print(i)\n"
        "end\n"
        "while true do\n"
        "    break\n"
        "end\n"
        "repeat\n"
        "    n = n + 1\n"
        "until n > 3\n"
    )


def test_generic_for_and_nesting() -> None:
    source = "for k, v in pairs(t) do if v then do goto done end end end ::done::"
    assert print_source(source) == (
        "for k, v in pairs(t) do\n"
        "    if v then\n"
        "        do\n"
        "            goto done\n"
        "        end\n"
        "    end\n"
        "end\n"
        "::done::\n"
    )


def test_method_declaration_and_empty_body() -> None:
    assert print_source("function obj.inner:m() end") == "function obj.inner:m()\nend\n"


def test_table_layout() -> None:
    assert print_source("local t = {1, x = 2, [3] = {}}") == (
        "local t = {\n"
        "    1,\n"
        "    x = 2,\n"
        "    [3] = {}\n"
        "}\n"
    )


def test_call_forms() -> None:
    assert print_source('require "m" f{} obj:m(1, 2)') == 'require"m"\nf{}\nobj:m(1, 2)\n'


def test_comments_are_dropped() -> None:
    assert print_source("-- header\nx = 1 --[[ trailing ]]") == "x = 1\n"


def test_empty_chunk() -> None:
    assert print_tree(parse_chunk("")) == "\n"


def test_unknown_statement_raises() -> None:
    with pytest.raises(TypeError):
        LuaPrinter().format({"type": "Chunk", "body": [{"type": "Bogus"}]})


# -----------------------------------------------------------------------------
# Idempotence
# -----------------------------------------------------------------------------

_CORPUS = [
    "local a, b = 1, 2",
    "x = (1 - 2) - (3 - 4) * -5 ^ 2",
    "local s = [==[\nlong]]string]==] .. 'q' .. \"d\"",
    "local function fib(n) if n < 2 then return n end return fib(n - 1) + fib(n - 2) end",
    "t = {f = function(...) return select('#', ...) end, [1] = {2, 3}}",
    "obj.a.b[c]:d 'e' {f}",
    "local x = not a and (b or c) ~= d",
    "repeat local y = y or 0 until y >= 10",
    "print(((f())))",
]


@pytest.mark.parametrize("source", _CORPUS)
def test_printing_is_idempotent(source: str) -> None:
    """TC-04: Printing printed output yields the same text."""
    once = print_source(source)
    assert print_source(once) == once
