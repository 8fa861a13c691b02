from __future__ import annotations

"""
Unit tests for the Lua parser.

Verifies:
1. Statement and expression node shapes.
2. Operator precedence and associativity in the tree.
3. String and number literal decoding.
4. Syntax error reporting.
"""

import pytest

from onelua.core.syntax.lexer import LuaSyntaxError
from onelua.core.syntax.nodes import walk
from onelua.core.syntax.parser import decode_string, parse_chunk, parse_number


def _first(text: str):
    return parse_chunk(text)["body"][0]


def _expr(text: str):
    """Parse 'return <text>' and return the expression node."""
    return _first(f"return {text}")["arguments"][0]


# -----------------------------------------------------------------------------
# Statements
# -----------------------------------------------------------------------------

def test_chunk_shape() -> None:
    """TC-01: A chunk has a body, comments and globals."""
    tree = parse_chunk("-- hi\nprint(1)")
    assert tree["type"] == "Chunk"
    assert tree["comments"][0]["value"] == " hi"
    assert [g["name"] for g in tree["globals"]] == ["print"]


def test_local_statement_without_init() -> None:
    node = _first("local a, b")
    assert node["type"] == "LocalStatement"
    assert [v["name"] for v in node["variables"]] == ["a", "b"]
    assert node["init"] == []


def test_assignment_statement() -> None:
    node = _first("a.b, c[1] = 1, 2")
    assert node["type"] == "AssignmentStatement"
    assert [v["type"] for v in node["variables"]] == ["MemberExpression", "IndexExpression"]
    assert [e["value"] for e in node["init"]] == [1, 2]


def test_call_statement_forms() -> None:
    """TC-02: Parenthesized, string and table call syntax."""
    body = parse_chunk('f(1) g "s" h {} obj:m(2)')["body"]
    kinds = [s["expression"]["type"] for s in body]
    assert kinds == ["CallExpression", "StringCallExpression", "TableCallExpression", "CallExpression"]
    assert body[1]["expression"]["argument"]["value"] == "s"
    assert body[3]["expression"]["base"]["indexer"] == ":"


def test_if_statement_clauses() -> None:
    node = _first("if a then x() elseif b then y() else z() end")
    assert [c["type"] for c in node["clauses"]] == ["IfClause", "ElseifClause", "ElseClause"]


def test_numeric_and_generic_for() -> None:
    numeric = _first("for i = 1, 10, 2 do end")
    assert numeric["type"] == "ForNumericStatement"
    assert numeric["variable"]["name"] == "i"
    assert numeric["step"]["value"] == 2

    no_step = _first("for i = 1, 10 do end")
    assert no_step["step"] is None

    generic = _first("for k, v in pairs(t) do end")
    assert generic["type"] == "ForGenericStatement"
    assert [v["name"] for v in generic["variables"]] == ["k", "v"]


def test_function_declarations() -> None:
    """TC-03: Global, method, local and anonymous function forms."""
    body = parse_chunk(
        "function a.b.c(x, ...) end\n"
        "function obj:method() end\n"
        "local function f() end\n"
        "local g = function() end"
    )["body"]

    assert body[0]["type"] == "FunctionDeclaration"
    assert body[0]["isLocal"] is False
    assert body[0]["identifier"]["identifier"]["name"] == "c"
    assert [p["type"] for p in body[0]["parameters"]] == ["Identifier", "VarargLiteral"]

    assert body[1]["identifier"]["indexer"] == ":"

    assert body[2]["isLocal"] is True
    assert body[2]["identifier"]["name"] == "f"

    anonymous = body[3]["init"][0]
    assert anonymous["type"] == "FunctionDeclaration"
    assert anonymous["identifier"] is None


def test_goto_and_labels() -> None:
    body = parse_chunk("::top:: goto top")["body"]
    assert body[0]["type"] == "LabelStatement"
    assert body[0]["label"]["name"] == "top"
    assert body[1]["type"] == "GotoStatement"


def test_empty_statements_are_dropped() -> None:
    assert [s["type"] for s in parse_chunk(";;x = 1;;")["body"]] == ["AssignmentStatement"]


def test_return_with_semicolon() -> None:
    node = _first("return 1, 2;")
    assert [a["value"] for a in node["arguments"]] == [1, 2]


def test_table_constructor_fields() -> None:
    table = _expr("{1, x = 2; [3] = 4,}")
    assert [f["type"] for f in table["fields"]] == ["TableValue", "TableKeyString", "TableKey"]


# -----------------------------------------------------------------------------
# Expressions
# -----------------------------------------------------------------------------

def test_arithmetic_precedence() -> None:
    """TC-04: '*' binds tighter than '+'."""
    node = _expr("1 + 2 * 3")
    assert node["operator"] == "+"
    assert node["right"]["operator"] == "*"


def test_subtraction_is_left_associative() -> None:
    node = _expr("1 - 2 - 3")
    assert node["left"]["operator"] == "-"
    assert node["right"]["value"] == 3


def test_power_and_concat_are_right_associative() -> None:
    power = _expr("2 ^ 3 ^ 4")
    assert power["right"]["operator"] == "^"

    concat = _expr("a .. b .. c")
    assert concat["left"]["name"] == "a"
    assert concat["right"]["operator"] == ".."


def test_unary_binds_looser_than_power() -> None:
    """TC-05: -x^2 is -(x^2); 2^-3 takes the unary on the right."""
    neg = _expr("-x ^ 2")
    assert neg["type"] == "UnaryExpression"
    assert neg["argument"]["operator"] == "^"

    power = _expr("2 ^ -3")
    assert power["operator"] == "^"
    assert power["right"]["type"] == "UnaryExpression"


def test_logical_operators_produce_logical_expressions() -> None:
    node = _expr("a or b and c")
    assert node["type"] == "LogicalExpression"
    assert node["operator"] == "or"
    assert node["right"]["operator"] == "and"


def test_comparison_chain() -> None:
    node = _expr("a < b == c")
    assert node["operator"] == "=="
    assert node["left"]["operator"] == "<"


def test_parentheses_mark_in_parens() -> None:
    node = _expr("(f())")
    assert node["type"] == "CallExpression"
    assert node["inParens"] is True


def test_literals() -> None:
    assert _expr("nil")["type"] == "NilLiteral"
    assert _expr("true")["value"] is True
    assert _expr("false")["raw"] == "false"
    assert _expr("...")["type"] == "VarargLiteral"
    assert _expr("0x10")["value"] == 16
    assert _expr("1.5")["value"] == 1.5


def test_nodes_carry_locations() -> None:
    node = parse_chunk("\n\nlocal x = 1")["body"][0]
    assert node["loc"]["start"]["line"] == 3


def test_walk_visits_every_node() -> None:
    tree = parse_chunk("local a = f(b + 1)")
    types = [n["type"] for n in walk(tree)]
    assert types[0] == "Chunk"
    assert "BinaryExpression" in types
    assert types.count("Identifier") == 3


# -----------------------------------------------------------------------------
# Literal decoding
# -----------------------------------------------------------------------------

@pytest.mark.parametrize("raw, expected", [
    ('"plain"', "plain"),
    (r'"tab\tnew\nline"', "tab\tnew\nline"),
    (r"'quote\'s'", "quote's"),
    (r'"\65\066"', "AB"),
    (r'"\x41"', "A"),
    ('"a\\z   \n  b"', "ab"),
    ("[[\nfirst line]]", "first line"),
    ("[==[a]]b]==]", "a]]b"),
])
def test_decode_string(raw: str, expected: str) -> None:
    assert decode_string(raw) == expected


def test_decode_string_rejects_large_decimal_escape() -> None:
    with pytest.raises(LuaSyntaxError):
        decode_string(r'"\300"')


@pytest.mark.parametrize("raw, expected", [
    ("10", 10),
    ("0xFF", 255),
    ("1e2", 100.0),
    ("0x1p4", 16.0),
    (".5", 0.5),
])
def test_parse_number(raw: str, expected) -> None:
    assert parse_number(raw) == expected


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------

def test_unexpected_token_reports_position() -> None:
    """TC-06: Grammar errors become LuaSyntaxError with line/column."""
    with pytest.raises(LuaSyntaxError) as exc_info:
        parse_chunk("local x = 1\nlocal = 2")
    assert exc_info.value.line == 2
    assert "near '='" in exc_info.value.message


def test_unexpected_eof() -> None:
    with pytest.raises(LuaSyntaxError, match="<eof>"):
        parse_chunk("if x then")


def test_expression_is_not_a_statement() -> None:
    with pytest.raises(LuaSyntaxError, match="not a statement"):
        parse_chunk("x")


def test_cannot_assign_to_call() -> None:
    with pytest.raises(LuaSyntaxError, match="syntax error near '='"):
        parse_chunk("f() = 1")


def test_bitwise_operators_are_not_supported() -> None:
    with pytest.raises(LuaSyntaxError):
        parse_chunk("x = 1 // 2")
