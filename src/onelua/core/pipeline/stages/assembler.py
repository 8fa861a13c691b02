from __future__ import annotations

"""
Bundle Assembler Stage.

Merges the per-module trees of a module graph into a single Chunk:

1. A forward declaration of the loader, so factories can capture it.
2. The factory table, one function per module slot in ascending ID order.
3. The result cache and the memoizing loader.
4. The entry script's statements, verbatim.

The loader evaluates a factory at most once. A module that returns nil is
cached as true, which is what the native module primitive does.
"""

import logging
from typing import Dict, List, Optional

from onelua.core.syntax import nodes
from onelua.core.syntax.nodes import Node
from onelua.core.syntax.scope import global_names
from onelua.domain.constants import CACHE_SYMBOL, LOADER_SYMBOL, PACKAGES_SYMBOL
from onelua.domain.script_models import ModuleGraph

logger = logging.getLogger(__name__)

_ID_PARAM = "id"
_MODULE_LOCAL = "module"


# -----------------------------------------------------------------------------
# RUNTIME PIECES
# -----------------------------------------------------------------------------

def _ref(name: str) -> Node:
    return nodes.identifier(name)


def build_factory_table(module_trees: Dict[int, Node]) -> Node:
    """
    local __OL__packages = { [1] = function(...) ... end, ... }

    Factories are vararg functions so a module body may read `...` at top
    level. The loader calls them without arguments, so `...` is empty.
    """
    fields = [
        nodes.table_key(
            nodes.numeric_literal(module_id, str(module_id)),
            nodes.function_expression([nodes.vararg_literal()], module_trees[module_id]["body"]),
        )
        for module_id in sorted(module_trees)
    ]
    return nodes.local_statement([_ref(PACKAGES_SYMBOL)], [nodes.table_constructor(fields)])


def build_loader() -> Node:
    """
    __OL__require = function(id) ... end

    Looks the ID up in the cache, runs the factory on a miss and stores its
    result (true when the factory returns nil).
    """
    cached = nodes.index_expression(_ref(CACHE_SYMBOL), _ref(_ID_PARAM))
    body: List[Node] = [
        nodes.local_statement([_ref(_MODULE_LOCAL)], [cached]),
        nodes.if_statement(
            nodes.binary_expression("~=", _ref(_MODULE_LOCAL), nodes.nil_literal()),
            [nodes.return_statement([_ref(_MODULE_LOCAL)])],
        ),
        nodes.assignment_statement(
            [_ref(_MODULE_LOCAL)],
            [nodes.call_expression(nodes.index_expression(_ref(PACKAGES_SYMBOL), _ref(_ID_PARAM)), [])],
        ),
        nodes.if_statement(
            nodes.binary_expression("==", _ref(_MODULE_LOCAL), nodes.nil_literal()),
            [nodes.assignment_statement([_ref(_MODULE_LOCAL)], [nodes.boolean_literal(True)])],
        ),
        nodes.assignment_statement(
            [nodes.index_expression(_ref(CACHE_SYMBOL), _ref(_ID_PARAM))],
            [_ref(_MODULE_LOCAL)],
        ),
        nodes.return_statement([_ref(_MODULE_LOCAL)]),
    ]
    return nodes.assignment_statement(
        [_ref(LOADER_SYMBOL)],
        [nodes.function_expression([_ref(_ID_PARAM)], body)],
    )


def merge_globals(trees: List[Node]) -> List[Node]:
    """Union the global identifiers of several chunks, by name, keeping first-seen order."""
    seen = set()
    merged: List[Node] = []
    for tree in trees:
        for name in global_names(tree):
            if name in seen:
                continue
            seen.add(name)
            merged.append(nodes.identifier(name, is_local=False))
    return merged


# -----------------------------------------------------------------------------
# ASSEMBLY
# -----------------------------------------------------------------------------

def assemble_bundle(module_trees: Dict[int, Node], main_tree: Node) -> Node:
    """
    Build the single bundle tree.

    Args:
        module_trees: Module ID -> rewritten Chunk.
        main_tree: Rewritten Chunk of the entry script.

    Returns:
        Node: Bundle Chunk ready for printing.
    """
    body: List[Node] = [
        nodes.local_statement([_ref(LOADER_SYMBOL)], []),
        build_factory_table(module_trees),
        nodes.local_statement([_ref(CACHE_SYMBOL)], [nodes.table_constructor([])]),
        build_loader(),
    ]
    body.extend(main_tree["body"])

    ordered = [module_trees[module_id] for module_id in sorted(module_trees)]
    globals_ = merge_globals(ordered + [main_tree])

    logger.debug(f"Assembled bundle: {len(module_trees)} factory slot(s), {len(globals_)} global name(s)")
    return nodes.chunk(body, globals_=globals_)


def assemble(graph: ModuleGraph) -> Node:
    """Assemble the bundle tree of a completed module graph."""
    main_tree: Optional[Node] = graph.main_tree
    if main_tree is None:
        raise ValueError("module graph has no main tree; build() it first")
    return assemble_bundle(graph.module_trees, main_tree)
