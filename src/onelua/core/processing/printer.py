from __future__ import annotations

"""
Lua Source Printer.

Serializes a syntax tree back to readable Lua with four-space indentation and
the minimum parentheses that preserve the tree's structure. Parentheses
written in the source are not kept for their own sake: they are re-derived
from operator precedence and associativity, with these exceptions:

- A parenthesized call or vararg keeps its parentheses, since they truncate
  a multi-value result to one value.
- Any expression that is not a prefix expression (name, field, index or
  call) is wrapped when used as a call or index base.

Comments are not emitted.
"""

import logging
from typing import Dict, Final, List, Optional

from onelua.core.syntax.nodes import CALL_TYPES, EXPRESSION_BASE_TYPES, Node
from onelua.domain.constants import INDENT

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# OPERATOR TABLES
# -----------------------------------------------------------------------------

BINARY_PRECEDENCE: Final[Dict[str, int]] = {
    "or": 1,
    "and": 2,
    "<": 3, ">": 3, "<=": 3, ">=": 3, "~=": 3, "==": 3,
    "..": 5,
    "+": 6, "-": 6,
    "*": 7, "/": 7, "%": 7,
    "^": 10,
}

UNARY_PRECEDENCE: Final[int] = 8

RIGHT_ASSOCIATIVE: Final[frozenset] = frozenset({"^", ".."})

_LITERAL_TYPES: Final[frozenset] = frozenset({
    "StringLiteral",
    "NumericLiteral",
    "BooleanLiteral",
    "NilLiteral",
    "VarargLiteral",
})

_TRUNCATING_TYPES: Final[frozenset] = CALL_TYPES | {"VarargLiteral"}


def needs_binary_parens(operator: str, precedence: int, direction: Optional[str], parent: Optional[str]) -> bool:
    """
    Decide whether a binary/logical expression must be wrapped in its context.

    Args:
        operator: Operator of the expression being printed.
        precedence: Precedence of the enclosing operator (0 at top level).
        direction: Side of the parent operator the expression sits on.
        parent: The enclosing operator, if any.
    """
    current = BINARY_PRECEDENCE[operator]
    if current < precedence:
        return True
    if current != precedence:
        return False
    associativity = "right" if operator in RIGHT_ASSOCIATIVE else "left"
    if associativity == direction:
        return False
    # a + (b - c) == a + b - c, and a * (b / c) == a * b / c
    if parent == "+":
        return False
    if parent == "*" and operator in ("*", "/"):
        return False
    return True


# -----------------------------------------------------------------------------
# PRINTER
# -----------------------------------------------------------------------------

class LuaPrinter:
    """
    Recursive unparser. One instance may format several trees; the
    indentation depth is reset on every call to format().
    """

    COMMA: str = ", "
    ASSIGN: str = " = "

    def __init__(self) -> None:
        self.depth = 0

    # --- public API ---

    def format(self, tree: Node) -> str:
        """Print a Chunk (or any node with a statement 'body')."""
        self.depth = 0
        return self.format_block(tree["body"]) + "\n"

    # --- joining hooks ---

    def join_tokens(self, a: str, b: str) -> str:
        """Join two pieces of one statement."""
        if not a or not b:
            return a + b
        return a + " " + b

    def join_lines(self, a: str, b: str) -> str:
        """Join two pieces that belong on separate lines at the current depth."""
        if not a or not b:
            return a + b
        return a + "\n" + INDENT * self.depth + b

    def format_block(self, body: List[Node]) -> str:
        result = ""
        for statement in body:
            text = self.format_statement(statement)
            if result and text.startswith("("):
                # Keep the statement from being read as a call on the previous line
                result += ";"
            result = self.join_lines(result, text)
        return result

    def _indented(self, head: str, body: List[Node]) -> str:
        self.depth += 1
        text = self.join_lines(head, self.format_block(body))
        self.depth -= 1
        return text

    def _close(self, text: str, keyword: str = "end") -> str:
        return self.join_lines(text, keyword)

    def _list(self, expressions: List[Node]) -> str:
        return self.COMMA.join(self.format_expression(e) for e in expressions)

    @staticmethod
    def _bracket(text: str) -> str:
        # '[[' would open a long string
        if text.startswith("["):
            return "[ " + text + "]"
        return "[" + text + "]"

    @staticmethod
    def _parameters(parameters: List[Node]) -> List[str]:
        return [p["name"] if p["type"] == "Identifier" else p["value"] for p in parameters]

    # --- expressions ---

    def format_expression(
            self,
            expression: Node,
            precedence: int = 0,
            direction: Optional[str] = None,
            parent: Optional[str] = None,
    ) -> str:
        """
        Print an expression in the context of an enclosing operator.

        Args:
            expression: Expression node.
            precedence: Precedence of the enclosing operator, 0 if none.
            direction: 'left' or 'right' side of the enclosing operator.
            parent: The enclosing operator.
        """
        kind = expression["type"]

        if kind == "Identifier":
            result = expression["name"]
        elif kind in _LITERAL_TYPES:
            result = expression["raw"]
        elif kind in ("BinaryExpression", "LogicalExpression"):
            result = self._binary(expression, precedence, direction, parent)
        elif kind == "UnaryExpression":
            result = self._unary(expression, precedence, direction, parent)
        elif kind == "CallExpression":
            result = self.format_base(expression["base"]) + "(" + self._list(expression["arguments"]) + ")"
        elif kind == "TableCallExpression":
            result = self.format_base(expression["base"]) + self.format_expression(expression["arguments"])
        elif kind == "StringCallExpression":
            result = self.format_base(expression["base"]) + self.format_expression(expression["argument"])
        elif kind == "IndexExpression":
            result = self.format_base(expression["base"]) + self._bracket(self.format_expression(expression["index"]))
        elif kind == "MemberExpression":
            result = self.format_base(expression["base"]) + expression["indexer"] + expression["identifier"]["name"]
        elif kind == "FunctionDeclaration":
            result = self._function_body("function", expression)
        elif kind == "TableConstructorExpression":
            result = self._table(expression)
        else:
            raise TypeError(f"Unknown expression type: {kind}")

        if expression.get("inParens") and kind in _TRUNCATING_TYPES:
            result = "(" + result + ")"
        return result

    def format_base(self, base: Node) -> str:
        """Print the base of a call, field access or index."""
        result = self.format_expression(base)
        kind = base["type"]
        if kind in EXPRESSION_BASE_TYPES:
            return result
        if base.get("inParens") and kind in _TRUNCATING_TYPES:
            return result
        return "(" + result + ")"

    def _binary(self, expression: Node, precedence: int, direction: Optional[str], parent: Optional[str]) -> str:
        operator = expression["operator"]
        current = BINARY_PRECEDENCE[operator]
        left = self.format_expression(expression["left"], current, "left", operator)
        right = self.format_expression(expression["right"], current, "right", operator)
        result = self.join_tokens(self.join_tokens(left, operator), right)
        if needs_binary_parens(operator, precedence, direction, parent):
            result = "(" + result + ")"
        return result

    def _unary(self, expression: Node, precedence: int, direction: Optional[str], parent: Optional[str]) -> str:
        operator = expression["operator"]
        argument = self.format_expression(expression["argument"], UNARY_PRECEDENCE)
        if operator == "not":
            result = self.join_tokens(operator, argument)
        elif argument.startswith("-"):
            result = operator + " " + argument
        else:
            result = operator + argument
        # The parser always accepts a unary operator on the right of '^'
        if UNARY_PRECEDENCE < precedence and not (parent == "^" and direction == "right"):
            result = "(" + result + ")"
        return result

    def _function_body(self, head: str, function: Node) -> str:
        signature = head + "(" + self.COMMA.join(self._parameters(function["parameters"])) + ")"
        return self._close(self._indented(signature, function["body"]))

    def _table(self, expression: Node) -> str:
        fields = expression["fields"]
        if not fields:
            return "{}"

        self.depth += 1
        lines = []
        for index, item in enumerate(fields):
            text = INDENT * self.depth + self._field(item)
            if index < len(fields) - 1:
                text += ","
            lines.append(text)
        self.depth -= 1
        return "{\n" + "\n".join(lines) + "\n" + INDENT * self.depth + "}"

    def _field(self, item: Node) -> str:
        kind = item["type"]
        if kind == "TableKey":
            return self._bracket(self.format_expression(item["key"])) + self.ASSIGN + self.format_expression(item["value"])
        if kind == "TableKeyString":
            return item["key"]["name"] + self.ASSIGN + self.format_expression(item["value"])
        if kind == "TableValue":
            return self.format_expression(item["value"])
        raise TypeError(f"Unknown table field type: {kind}")

    # --- statements ---

    def format_statement(self, statement: Node) -> str:
        kind = statement["type"]
        handler = getattr(self, f"_statement_{kind}", None)
        if handler is None:
            raise TypeError(f"Unknown statement type: {kind}")
        return handler(statement)

    def _statement_AssignmentStatement(self, statement: Node) -> str:
        return self._list(statement["variables"]) + self.ASSIGN + self._list(statement["init"])

    def _statement_LocalStatement(self, statement: Node) -> str:
        result = self.join_tokens("local", self.COMMA.join(v["name"] for v in statement["variables"]))
        if statement["init"]:
            result += self.ASSIGN + self._list(statement["init"])
        return result

    def _statement_CallStatement(self, statement: Node) -> str:
        return self.format_expression(statement["expression"])

    def _statement_IfStatement(self, statement: Node) -> str:
        first, *rest = statement["clauses"]
        head = self.join_tokens(self.join_tokens("if", self.format_expression(first["condition"])), "then")
        result = self._indented(head, first["body"])
        for clause in rest:
            if clause["type"] == "ElseifClause":
                head = self.join_tokens(self.join_tokens("elseif", self.format_expression(clause["condition"])), "then")
            else:
                head = "else"
            result = self.join_lines(result, self._indented(head, clause["body"]))
        return self._close(result)

    def _statement_WhileStatement(self, statement: Node) -> str:
        head = self.join_tokens(self.join_tokens("while", self.format_expression(statement["condition"])), "do")
        return self._close(self._indented(head, statement["body"]))

    def _statement_DoStatement(self, statement: Node) -> str:
        return self._close(self._indented("do", statement["body"]))

    def _statement_RepeatStatement(self, statement: Node) -> str:
        until = self.join_tokens("until", self.format_expression(statement["condition"]))
        return self._close(self._indented("repeat", statement["body"]), until)

    def _statement_ReturnStatement(self, statement: Node) -> str:
        return self.join_tokens("return", self._list(statement["arguments"]))

    def _statement_BreakStatement(self, statement: Node) -> str:
        return "break"

    def _statement_GotoStatement(self, statement: Node) -> str:
        return self.join_tokens("goto", statement["label"]["name"])

    def _statement_LabelStatement(self, statement: Node) -> str:
        return "::" + statement["label"]["name"] + "::"

    def _statement_FunctionDeclaration(self, statement: Node) -> str:
        head = self.join_tokens("function", self.format_expression(statement["identifier"]))
        if statement["isLocal"]:
            head = self.join_tokens("local", head)
        return self._function_body(head, statement)

    def _statement_ForNumericStatement(self, statement: Node) -> str:
        bounds = [statement["start"], statement["end"]]
        if statement.get("step") is not None:
            bounds.append(statement["step"])
        head = self.join_tokens("for", statement["variable"]["name"]) + self.ASSIGN + self._list(bounds)
        return self._close(self._indented(self.join_tokens(head, "do"), statement["body"]))

    def _statement_ForGenericStatement(self, statement: Node) -> str:
        names = self.COMMA.join(v["name"] for v in statement["variables"])
        head = self.join_tokens(self.join_tokens("for", names), "in")
        head = self.join_tokens(self.join_tokens(head, self._list(statement["iterators"])), "do")
        return self._close(self._indented(head, statement["body"]))


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def print_tree(tree: Node) -> str:
    """Pretty-print a syntax tree as Lua source (newline terminated)."""
    text = LuaPrinter().format(tree)
    logger.debug(f"Printed tree: {len(text)} chars")
    return text
