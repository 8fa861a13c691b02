from __future__ import annotations

"""
Scope Analysis.

Walks a freshly built syntax tree with a stack of lexical scopes, marking
every Identifier reference with 'isLocal' and collecting the names that
resolve to globals. Field names (a.b, {b = 1}) and goto labels are not
variable references and are left out.
"""

from typing import List, Sequence, Set

from onelua.core.syntax.nodes import Node, iter_child_slots


class _ScopeAnalyzer:
    """Single-use visitor; call run() once per chunk."""

    def __init__(self) -> None:
        self.scopes: List[Set[str]] = []
        self.globals: List[Node] = []
        self._global_names: Set[str] = set()

    # --- scope helpers ---

    def _declare(self, identifier: Node) -> None:
        identifier["isLocal"] = True
        self.scopes[-1].add(identifier["name"])

    def _is_declared(self, name: str) -> bool:
        return any(name in scope for scope in self.scopes)

    def _block(self, body: List[Node], declared: Sequence[Node] = ()) -> None:
        self.scopes.append(set())
        for identifier in declared:
            self._declare(identifier)
        self._visit_list(body)
        self.scopes.pop()

    def _visit_list(self, items: List[Node]) -> None:
        for item in items:
            self.visit(item)

    # --- entry point ---

    def run(self, root: Node) -> List[Node]:
        self._block(root["body"])
        return self.globals

    def visit(self, node: Node) -> None:
        handler = getattr(self, f"_visit_{node['type']}", None)
        if handler is not None:
            handler(node)
            return
        for container, key in iter_child_slots(node):
            self.visit(container[key])

    # --- references ---

    def _visit_Identifier(self, node: Node) -> None:
        name = node["name"]
        if self._is_declared(name):
            node["isLocal"] = True
            return
        node["isLocal"] = False
        if name not in self._global_names:
            self._global_names.add(name)
            self.globals.append({"type": "Identifier", "name": name, "isLocal": False})

    def _visit_MemberExpression(self, node: Node) -> None:
        self.visit(node["base"])

    def _visit_TableKeyString(self, node: Node) -> None:
        self.visit(node["value"])

    def _visit_LabelStatement(self, node: Node) -> None:
        pass

    def _visit_GotoStatement(self, node: Node) -> None:
        pass

    # --- declarations ---

    def _visit_LocalStatement(self, node: Node) -> None:
        # Initializers see the scope before the new locals exist
        self._visit_list(node["init"])
        for identifier in node["variables"]:
            self._declare(identifier)

    def _visit_FunctionDeclaration(self, node: Node) -> None:
        target = node["identifier"]
        declared = [p for p in node["parameters"] if p["type"] == "Identifier"]
        if target is not None:
            if node["isLocal"]:
                self._declare(target)
            else:
                self.visit(target)
                if target["type"] == "MemberExpression" and target["indexer"] == ":":
                    declared = [{"type": "Identifier", "name": "self", "isLocal": True}] + declared
        self._block(node["body"], declared)

    # --- blocks ---

    def _visit_DoStatement(self, node: Node) -> None:
        self._block(node["body"])

    def _visit_WhileStatement(self, node: Node) -> None:
        self.visit(node["condition"])
        self._block(node["body"])

    def _visit_RepeatStatement(self, node: Node) -> None:
        # The until condition can see locals of the loop body
        self.scopes.append(set())
        self._visit_list(node["body"])
        self.visit(node["condition"])
        self.scopes.pop()

    def _visit_IfStatement(self, node: Node) -> None:
        for clause in node["clauses"]:
            if "condition" in clause:
                self.visit(clause["condition"])
            self._block(clause["body"])

    def _visit_ForNumericStatement(self, node: Node) -> None:
        self.visit(node["start"])
        self.visit(node["end"])
        if node["step"] is not None:
            self.visit(node["step"])
        self._block(node["body"], [node["variable"]])

    def _visit_ForGenericStatement(self, node: Node) -> None:
        self._visit_list(node["iterators"])
        self._block(node["body"], node["variables"])


def annotate_scopes(root: Node) -> List[Node]:
    """
    Mark identifiers of a Chunk as local or global.

    Returns:
        Global Identifier nodes, unique by name, in first-reference order.
    """
    return _ScopeAnalyzer().run(root)


def global_names(root: Node) -> List[str]:
    """Names of the globals recorded on a Chunk."""
    return [identifier["name"] for identifier in root.get("globals", [])]


