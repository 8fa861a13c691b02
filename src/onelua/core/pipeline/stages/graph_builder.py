from __future__ import annotations

"""
Dependency Graph Builder.

Discovers every module reachable from the entry script. Each script is read
and parsed once, then a pre-order rewrite pass replaces every require call
with a call to the bundle loader carrying the target module's numeric ID.
Targets are resolved relative to the script that contains the call, and are
registered (given their ID) before their own dependencies are explored, so
cyclic requires terminate and refer to the right slot.
"""

import copy
import logging
from typing import List, Optional

from onelua.core.resolution.resolver import ModuleResolver
from onelua.core.syntax import nodes, parser
from onelua.core.syntax.lexer import LuaSyntaxError
from onelua.core.syntax.nodes import Node
from onelua.domain.constants import LOADER_SYMBOL, REQUIRE_PRIMITIVE, RESERVED_SYMBOLS
from onelua.domain.errors import ConfigurationError, ParseError, ResolutionError, UnsupportedRequireError
from onelua.domain.script_models import ModuleGraph, ScriptLocation
from onelua.infra import fs

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# REQUIRE DETECTION
# -----------------------------------------------------------------------------

def is_require_call(node: Node) -> bool:
    """True for a call whose callee is the global (not shadowed) module primitive."""
    if node.get("type") not in nodes.CALL_TYPES:
        return False
    base = node["base"]
    return base["type"] == "Identifier" and base["name"] == REQUIRE_PRIMITIVE and not base.get("isLocal")


def reserved_names_used(tree: Node) -> List[str]:
    """Bundle runtime names the script itself refers to, in first-seen order."""
    found: List[str] = []
    for node in nodes.walk(tree):
        if node.get("type") == "Identifier" and node["name"] in RESERVED_SYMBOLS and node["name"] not in found:
            found.append(node["name"])
    return found


def _node_line(node: Node) -> Optional[int]:
    loc = node.get("loc")
    return loc["start"]["line"] if loc else None


def require_target(node: Node, path: str) -> str:
    """
    Extract the literal module name of a require call.

    Raises:
        UnsupportedRequireError: For table-call syntax, a missing argument or
                                 a first argument that is not a string literal.
    """
    kind = node["type"]
    if kind == "StringCallExpression":
        return node["argument"]["value"]
    if kind == "TableCallExpression":
        raise UnsupportedRequireError("table argument is not a module name", path, _node_line(node))

    arguments = node["arguments"]
    if not arguments:
        raise UnsupportedRequireError("missing module name", path, _node_line(node))
    first = arguments[0]
    if first["type"] != "StringLiteral":
        raise UnsupportedRequireError(
            f"expected a string literal argument, got {first['type']}", path, _node_line(node)
        )
    return first["value"]


def loader_call(module_id: int) -> Node:
    """Build the replacement node: __OL__require(<id>)."""
    return nodes.call_expression(
        nodes.identifier(LOADER_SYMBOL),
        [nodes.numeric_literal(module_id, str(module_id))],
    )

# -----------------------------------------------------------------------------
# GRAPH BUILDER
# -----------------------------------------------------------------------------

class DependencyGraphBuilder:
    """
    Builds the module graph of one bundling run.

    Args:
        resolver: Strategy used to map module names to files.
    """

    def __init__(self, resolver: ModuleResolver) -> None:
        self.resolver = resolver

    def build(self, entry: ScriptLocation) -> ModuleGraph:
        """
        Load the entry script and every module it transitively requires.

        Args:
            entry: Location of the entry script.

        Returns:
            ModuleGraph: IDs, rewritten module trees and the rewritten main tree.

        Raises:
            ConfigurationError: If the entry script does not exist.
            ParseError: If a reachable script cannot be read or parsed.
            ResolutionError: If a required module cannot be located.
            UnsupportedRequireError: If a require call has no literal name.
        """
        if not entry.exists():
            raise ConfigurationError(f"entry script does not exist: {entry.path}", entry.path)

        graph = ModuleGraph(entry=entry)
        logger.debug(f"Building module graph from {entry.path}")
        graph.main_tree = self._load(entry, graph)

        if graph.entry_slot is not None:
            graph.module_trees[graph.entry_slot] = copy.deepcopy(graph.main_tree)

        logger.debug(f"Module graph complete: {graph.module_count} module(s)")
        return graph

    # --- loading ---

    def _load(self, location: ScriptLocation, graph: ModuleGraph) -> Node:
        try:
            text = fs.read_script(location.path)
        except OSError as e:
            raise ParseError(e.strerror or str(e), location.path) from e

        try:
            tree = parser.parse_chunk(text)
        except LuaSyntaxError as e:
            raise ParseError(e.message, location.path, e.line, e.column) from e

        logger.debug(f"Parsed {location.path}")
        clashes = reserved_names_used(tree)
        if clashes:
            logger.warning(f"{location.path} uses bundle runtime names: {', '.join(clashes)}")
        self._rewrite(tree, location, graph)
        return tree

    def _module_id(self, target: ScriptLocation, graph: ModuleGraph) -> int:
        existing = graph.lookup(target)
        if existing is not None:
            return existing

        module_id = graph.register(target)
        if target.path == graph.entry.path:
            # The entry tree is stored under this slot once it is complete
            graph.entry_slot = module_id
            logger.debug(f"Entry script required as module {module_id}")
            return module_id

        logger.debug(f"Module {module_id}: {target.path}")
        graph.module_trees[module_id] = self._load(target, graph)
        return module_id

    # --- rewrite pass ---

    def _rewrite(self, node: Node, location: ScriptLocation, graph: ModuleGraph) -> None:
        """Replace require calls below 'node' in place, in source order."""
        for container, key in list(nodes.iter_child_slots(node)):
            child = container[key]
            if is_require_call(child):
                container[key] = self._replace(child, location, graph)
            else:
                self._rewrite(child, location, graph)

    def _replace(self, node: Node, location: ScriptLocation, graph: ModuleGraph) -> Node:
        module_name = require_target(node, location.path)
        target = self.resolver.resolve(location, module_name)
        if target is None:
            raise ResolutionError(module_name, location.path)

        module_id = self._module_id(target, graph)
        replacement = loader_call(module_id)
        if node.get("inParens"):
            replacement["inParens"] = True
        if "loc" in node:
            replacement["loc"] = node["loc"]
        return replacement


def build_module_graph(entry_path: str, resolver: Optional[ModuleResolver] = None) -> ModuleGraph:
    """Convenience wrapper: resolve from the entry directory and build."""
    entry = ScriptLocation.from_path(entry_path)
    resolver = resolver or ModuleResolver(entry.base_dir)
    return DependencyGraphBuilder(resolver).build(entry)
