from __future__ import annotations

"""
Lua Parser.

Turns Lua source text into a luaparse-shaped syntax tree (plain dictionaries,
see onelua.core.syntax.nodes). The grammar lives in 'lua.lark' and is driven
by lark in LALR mode on top of the hand-written tokenizer. After the tree is
built, the scope pass marks identifiers as local or global and collects the
chunk's free names.

The parser is a pure function of its input: it holds no per-file state, so
callers that need to post-process nodes (e.g. rewriting require calls) walk
the returned tree themselves.
"""

import logging
from typing import Any, List, Optional, Tuple

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedInput, VisitError

from onelua.core.syntax import nodes
from onelua.core.syntax.lexer import LuaLexer, LuaSource, LuaSyntaxError
from onelua.core.syntax.nodes import Node
from onelua.core.syntax.scope import annotate_scopes

logger = logging.getLogger(__name__)

_ASSIGNABLE_TYPES = frozenset({"Identifier", "MemberExpression", "IndexExpression"})

_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    "\"": "\"",
    "'": "'",
    "\n": "\n",
}


# -----------------------------------------------------------------------------
# LITERAL DECODING
# -----------------------------------------------------------------------------

def parse_number(raw: str) -> Any:
    """
    Convert a Lua numeric literal to a Python number.

    Integral literals without a fraction or exponent stay ints; everything
    else (including hexadecimal floats) becomes a float.
    """
    lowered = raw.lower()
    if lowered.startswith("0x"):
        if "." in lowered or "p" in lowered:
            return float.fromhex(lowered)
        return int(lowered, 16)
    if "." in lowered or "e" in lowered:
        return float(lowered)
    return int(lowered)


def decode_string(raw: str, line: Optional[int] = None, column: Optional[int] = None) -> str:
    """
    Decode the value of a quoted or long-bracket string literal.

    Args:
        raw: Literal exactly as written, delimiters included.
        line: Source line, used for error reporting.
        column: Source column, used for error reporting.

    Returns:
        The string value with escape sequences applied.

    Raises:
        LuaSyntaxError: On a malformed escape sequence.
    """
    if raw.startswith("["):
        level = raw.index("[", 1) - 1
        body = raw[level + 2:len(raw) - level - 2]
        # A newline right after the opening bracket is not part of the value
        if body.startswith("\r\n"):
            return body[2:]
        if body.startswith("\n"):
            return body[1:]
        return body

    body = raw[1:-1]
    out: List[str] = []
    pos = 0
    length = len(body)
    while pos < length:
        char = body[pos]
        if char != "\\":
            out.append(char)
            pos += 1
            continue

        pos += 1
        if pos >= length:
            raise LuaSyntaxError("unfinished string", line, column)
        escape = body[pos]

        if escape in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[escape])
            pos += 1
        elif escape == "\r":
            out.append("\n")
            pos += 2 if body[pos + 1:pos + 2] == "\n" else 1
        elif escape.isdigit() and escape.isascii():
            end = pos
            while end < length and end - pos < 3 and body[end] in "0123456789":
                end += 1
            code = int(body[pos:end])
            if code > 255:
                raise LuaSyntaxError("decimal escape too large", line, column)
            out.append(chr(code))
            pos = end
        elif escape == "x":
            digits = body[pos + 1:pos + 3]
            if len(digits) != 2 or any(d not in "0123456789abcdefABCDEF" for d in digits):
                raise LuaSyntaxError("hexadecimal digit expected", line, column)
            out.append(chr(int(digits, 16)))
            pos += 3
        elif escape == "z":
            pos += 1
            while pos < length and body[pos] in " \t\r\n\f\v":
                pos += 1
        else:
            # Lua 5.1 keeps the character of an unknown escape
            out.append(escape)
            pos += 1

    return "".join(out)


# -----------------------------------------------------------------------------
# TREE BUILDER
# -----------------------------------------------------------------------------

class LuaTreeBuilder(Transformer):
    """Builds luaparse-shaped dictionaries from the lark parse tree."""

    def _add_meta(self, node: Node, meta) -> Node:
        if meta is not None and not getattr(meta, "empty", True):
            node["loc"] = {
                "start": {"line": meta.line, "column": meta.column},
                "end": {"line": meta.end_line, "column": meta.end_column},
            }
        return node

    @staticmethod
    def _fail(message: str, meta) -> LuaSyntaxError:
        if meta is None or getattr(meta, "empty", True):
            return LuaSyntaxError(message)
        return LuaSyntaxError(message, meta.line, meta.column)

    def _name(self, token: Token) -> Node:
        node = nodes.identifier(str(token), is_local=False)
        node["loc"] = {
            "start": {"line": token.line, "column": token.column},
            "end": {"line": token.end_line, "column": token.end_column},
        }
        return node

    # --- structure ---

    def start(self, args):
        return args[0]

    def block(self, args) -> List[Node]:
        return [statement for statement in args if statement is not None]

    def varlist(self, args) -> List[Node]:
        return list(args)

    def explist(self, args) -> List[Node]:
        return list(args)

    def namelist(self, args) -> List[Node]:
        return [self._name(token) for token in args]

    def parlist(self, args) -> List[Node]:
        parameters = []
        for token in args:
            if token is None:
                continue
            if token.type == "VARARG":
                parameters.append({"type": "VarargLiteral", "value": "...", "raw": "..."})
            else:
                parameters.append(self._name(token))
        return parameters

    def funcbody(self, args) -> Tuple[List[Node], List[Node]]:
        parameters, body = args
        return parameters or [], body

    def funcname(self, args) -> Node:
        *path, method = args
        target = self._name(path[0])
        for token in path[1:]:
            target = {"type": "MemberExpression", "indexer": ".", "identifier": self._name(token), "base": target}
        if method is not None:
            target = {"type": "MemberExpression", "indexer": ":", "identifier": self._name(method), "base": target}
        return target

    def elseif_clause(self, args) -> Node:
        condition, body = args
        return {"type": "ElseifClause", "condition": condition, "body": body}

    def else_clause(self, args) -> Node:
        return {"type": "ElseClause", "body": args[0]}

    # --- statements ---

    def empty_statement(self, args):
        return None

    @v_args(meta=True)
    def assignment_statement(self, meta, args) -> Node:
        variables, init = args
        for target in variables:
            if target["type"] not in _ASSIGNABLE_TYPES or target.get("inParens"):
                raise self._fail("syntax error near '='", meta)
        return self._add_meta(nodes.assignment_statement(variables, init), meta)

    @v_args(meta=True)
    def call_statement(self, meta, args) -> Node:
        expression = args[0]
        if expression["type"] not in nodes.CALL_TYPES or expression.get("inParens"):
            raise self._fail("syntax error (expression is not a statement)", meta)
        return self._add_meta({"type": "CallStatement", "expression": expression}, meta)

    @v_args(meta=True)
    def label_statement(self, meta, args) -> Node:
        return self._add_meta({"type": "LabelStatement", "label": self._name(args[0])}, meta)

    @v_args(meta=True)
    def break_statement(self, meta, args) -> Node:
        return self._add_meta({"type": "BreakStatement"}, meta)

    @v_args(meta=True)
    def goto_statement(self, meta, args) -> Node:
        return self._add_meta({"type": "GotoStatement", "label": self._name(args[0])}, meta)

    @v_args(meta=True)
    def do_statement(self, meta, args) -> Node:
        return self._add_meta({"type": "DoStatement", "body": args[0]}, meta)

    @v_args(meta=True)
    def while_statement(self, meta, args) -> Node:
        condition, body = args
        return self._add_meta({"type": "WhileStatement", "condition": condition, "body": body}, meta)

    @v_args(meta=True)
    def repeat_statement(self, meta, args) -> Node:
        body, condition = args
        return self._add_meta({"type": "RepeatStatement", "condition": condition, "body": body}, meta)

    @v_args(meta=True)
    def if_statement(self, meta, args) -> Node:
        condition, body, *rest = args
        else_clause = rest.pop()
        clauses = [{"type": "IfClause", "condition": condition, "body": body}]
        clauses.extend(rest)
        if else_clause is not None:
            clauses.append(else_clause)
        return self._add_meta({"type": "IfStatement", "clauses": clauses}, meta)

    @v_args(meta=True)
    def for_numeric_statement(self, meta, args) -> Node:
        name, start, end, step, body = args
        node = {
            "type": "ForNumericStatement",
            "variable": self._name(name),
            "start": start,
            "end": end,
            "step": step,
            "body": body,
        }
        return self._add_meta(node, meta)

    @v_args(meta=True)
    def for_generic_statement(self, meta, args) -> Node:
        variables, iterators, body = args
        node = {"type": "ForGenericStatement", "variables": variables, "iterators": iterators, "body": body}
        return self._add_meta(node, meta)

    @v_args(meta=True)
    def function_statement(self, meta, args) -> Node:
        target, (parameters, body) = args
        node = {
            "type": "FunctionDeclaration",
            "identifier": target,
            "isLocal": False,
            "parameters": parameters,
            "body": body,
        }
        return self._add_meta(node, meta)

    @v_args(meta=True)
    def local_function_statement(self, meta, args) -> Node:
        name, (parameters, body) = args
        node = {
            "type": "FunctionDeclaration",
            "identifier": self._name(name),
            "isLocal": True,
            "parameters": parameters,
            "body": body,
        }
        return self._add_meta(node, meta)

    @v_args(meta=True)
    def local_statement(self, meta, args) -> Node:
        variables, init = args
        return self._add_meta(nodes.local_statement(variables, init or []), meta)

    @v_args(meta=True)
    def return_statement(self, meta, args) -> Node:
        return self._add_meta(nodes.return_statement(args[0] or []), meta)

    # --- expressions ---

    @v_args(meta=True)
    def binary(self, meta, args) -> Node:
        left, operator, right = args
        return self._add_meta(nodes.binary_expression(str(operator), left, right), meta)

    @v_args(meta=True)
    def unary(self, meta, args) -> Node:
        operator, argument = args
        return self._add_meta({"type": "UnaryExpression", "operator": str(operator), "argument": argument}, meta)

    @v_args(meta=True)
    def nil_literal(self, meta, args) -> Node:
        return self._add_meta(nodes.nil_literal(), meta)

    @v_args(meta=True)
    def boolean_literal(self, meta, args) -> Node:
        return self._add_meta(nodes.boolean_literal(args[0].type == "TRUE"), meta)

    @v_args(meta=True)
    def numeric_literal(self, meta, args) -> Node:
        raw = str(args[0])
        return self._add_meta(nodes.numeric_literal(parse_number(raw), raw), meta)

    @v_args(meta=True)
    def string_literal(self, meta, args) -> Node:
        token = args[0]
        node = {"type": "StringLiteral", "value": decode_string(str(token), token.line, token.column), "raw": str(token)}
        return self._add_meta(node, meta)

    @v_args(meta=True)
    def vararg_literal(self, meta, args) -> Node:
        return self._add_meta({"type": "VarargLiteral", "value": "...", "raw": "..."}, meta)

    @v_args(meta=True)
    def function_expression(self, meta, args) -> Node:
        parameters, body = args[0]
        return self._add_meta(nodes.function_expression(parameters, body), meta)

    @v_args(meta=True)
    def table(self, meta, args) -> Node:
        return self._add_meta(nodes.table_constructor(args[0] or []), meta)

    def field_list(self, args) -> List[Node]:
        return list(args)

    @v_args(meta=True)
    def table_key(self, meta, args) -> Node:
        key, value = args
        return self._add_meta(nodes.table_key(key, value), meta)

    @v_args(meta=True)
    def table_key_string(self, meta, args) -> Node:
        name, value = args
        return self._add_meta({"type": "TableKeyString", "key": self._name(name), "value": value}, meta)

    @v_args(meta=True)
    def table_value(self, meta, args) -> Node:
        return self._add_meta({"type": "TableValue", "value": args[0]}, meta)

    def name(self, args) -> Node:
        return self._name(args[0])

    def paren_exp(self, args) -> Node:
        expression = args[0]
        expression["inParens"] = True
        return expression

    @v_args(meta=True)
    def member_exp(self, meta, args) -> Node:
        base, name = args
        node = {"type": "MemberExpression", "indexer": ".", "identifier": self._name(name), "base": base}
        return self._add_meta(node, meta)

    @v_args(meta=True)
    def index_exp(self, meta, args) -> Node:
        base, index = args
        return self._add_meta(nodes.index_expression(base, index), meta)

    @v_args(meta=True)
    def method_call(self, meta, args) -> Node:
        base, name, call_args = args
        callee = {"type": "MemberExpression", "indexer": ":", "identifier": self._name(name), "base": base}
        return self._add_meta(self._make_call(callee, call_args), meta)

    @v_args(meta=True)
    def call(self, meta, args) -> Node:
        base, call_args = args
        return self._add_meta(self._make_call(base, call_args), meta)

    def paren_args(self, args) -> Tuple[str, Any]:
        return "CallExpression", args[0] or []

    def table_args(self, args) -> Tuple[str, Any]:
        return "TableCallExpression", args[0]

    def string_args(self, args) -> Tuple[str, Any]:
        token = args[0]
        literal = {
            "type": "StringLiteral",
            "value": decode_string(str(token), token.line, token.column),
            "raw": str(token),
        }
        return "StringCallExpression", literal

    @staticmethod
    def _make_call(base: Node, call_args: Tuple[str, Any]) -> Node:
        kind, payload = call_args
        if kind == "StringCallExpression":
            return {"type": kind, "base": base, "argument": payload}
        return {"type": kind, "base": base, "arguments": payload}


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

_PARSER: Optional[Lark] = None


def _get_parser() -> Lark:
    """Build the LALR parser once per process."""
    global _PARSER
    if _PARSER is None:
        _PARSER = Lark.open(
            "lua.lark",
            rel_to=__file__,
            parser="lalr",
            lexer=LuaLexer,
            propagate_positions=True,
            maybe_placeholders=True,
        )
        logger.debug("Lua LALR parser initialized")
    return _PARSER


def _describe_unexpected(exc: UnexpectedInput) -> LuaSyntaxError:
    token = getattr(exc, "token", None)
    if token is None or token.type == "$END":
        near = "<eof>"
    else:
        near = f"'{token}'"
    line = exc.line if getattr(exc, "line", -1) not in (None, -1) else None
    column = exc.column if line is not None else None
    return LuaSyntaxError(f"unexpected symbol near {near}", line, column)


def parse_chunk(text: str) -> Node:
    """
    Parse Lua source text into a Chunk node.

    Args:
        text: Complete source of one script.

    Returns:
        Chunk dictionary with 'body', 'comments' and 'globals'.

    Raises:
        LuaSyntaxError: If the text is not valid Lua.
    """
    source = LuaSource(text)
    try:
        tree = _get_parser().parse(source)
        body = LuaTreeBuilder().transform(tree)
    except UnexpectedInput as e:
        raise _describe_unexpected(e) from e
    except VisitError as e:
        raise e.orig_exc from e

    root = nodes.chunk(body, comments=source.comments)
    root["globals"] = annotate_scopes(root)
    return root
