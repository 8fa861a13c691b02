from __future__ import annotations

"""
Syntax Tree Node Factories.

The syntax tree is made of plain dictionaries in the luaparse layout: every
node has a 'type' key plus the fields of its variant. These helpers build the
nodes synthesized outside the parser (rewritten require calls and the bundle
runtime) so that every producer agrees on the exact shape.
"""

from typing import Any, Dict, Iterator, List, Optional, Union

Node = Dict[str, Any]

EXPRESSION_BASE_TYPES = frozenset({
    "Identifier",
    "MemberExpression",
    "IndexExpression",
    "CallExpression",
    "TableCallExpression",
    "StringCallExpression",
})

_SKIPPED_FIELDS = frozenset({"loc", "globals", "comments"})

CALL_TYPES = frozenset({
    "CallExpression",
    "TableCallExpression",
    "StringCallExpression",
})


# -----------------------------------------------------------------------------
# LITERALS & IDENTIFIERS
# -----------------------------------------------------------------------------

def identifier(name: str, is_local: bool = True) -> Node:
    return {"type": "Identifier", "name": name, "isLocal": is_local}


def numeric_literal(value: Union[int, float], raw: Optional[str] = None) -> Node:
    return {"type": "NumericLiteral", "value": value, "raw": raw if raw is not None else str(value)}


def nil_literal() -> Node:
    return {"type": "NilLiteral", "value": None, "raw": "nil"}


def boolean_literal(value: bool) -> Node:
    return {"type": "BooleanLiteral", "value": value, "raw": "true" if value else "false"}


def vararg_literal() -> Node:
    return {"type": "VarargLiteral", "value": "...", "raw": "..."}


# -----------------------------------------------------------------------------
# EXPRESSIONS
# -----------------------------------------------------------------------------

def call_expression(base: Node, arguments: List[Node]) -> Node:
    return {"type": "CallExpression", "base": base, "arguments": arguments}


def index_expression(base: Node, index: Node) -> Node:
    return {"type": "IndexExpression", "base": base, "index": index}


def binary_expression(operator: str, left: Node, right: Node) -> Node:
    kind = "LogicalExpression" if operator in ("and", "or") else "BinaryExpression"
    return {"type": kind, "operator": operator, "left": left, "right": right}


def function_expression(parameters: List[Node], body: List[Node]) -> Node:
    return {
        "type": "FunctionDeclaration",
        "identifier": None,
        "isLocal": False,
        "parameters": parameters,
        "body": body,
    }


def table_constructor(fields: List[Node]) -> Node:
    return {"type": "TableConstructorExpression", "fields": fields}


def table_key(key: Node, value: Node) -> Node:
    return {"type": "TableKey", "key": key, "value": value}


# -----------------------------------------------------------------------------
# STATEMENTS
# -----------------------------------------------------------------------------

def local_statement(variables: List[Node], init: List[Node]) -> Node:
    return {"type": "LocalStatement", "variables": variables, "init": init}


def assignment_statement(variables: List[Node], init: List[Node]) -> Node:
    return {"type": "AssignmentStatement", "variables": variables, "init": init}


def return_statement(arguments: List[Node]) -> Node:
    return {"type": "ReturnStatement", "arguments": arguments}


def if_statement(condition: Node, body: List[Node]) -> Node:
    return {
        "type": "IfStatement",
        "clauses": [{"type": "IfClause", "condition": condition, "body": body}],
    }


def chunk(body: List[Node], comments: Optional[List[Node]] = None,
          globals_: Optional[List[Node]] = None) -> Node:
    return {
        "type": "Chunk",
        "body": body,
        "comments": comments if comments is not None else [],
        "globals": globals_ if globals_ is not None else [],
    }


# -----------------------------------------------------------------------------
# TRAVERSAL
# -----------------------------------------------------------------------------

def iter_child_slots(node: Node) -> Iterator[tuple]:
    """
    Yield (container, key) pairs addressing every child node of 'node'.

    The container is either the node itself (keyed by field name) or a list
    field (keyed by index), so callers can replace children in place. Fields
    are visited in insertion order, which follows source order for parsed
    nodes.
    """
    for key, value in node.items():
        if key in _SKIPPED_FIELDS:
            continue
        if isinstance(value, dict) and "type" in value:
            yield node, key
        elif isinstance(value, list):
            for index, item in enumerate(value):
                if isinstance(item, dict) and "type" in item:
                    yield value, index


def walk(node: Node) -> Iterator[Node]:
    """Pre-order iteration over 'node' and all of its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        children = [container[key] for container, key in iter_child_slots(current)]
        stack.extend(reversed(children))
