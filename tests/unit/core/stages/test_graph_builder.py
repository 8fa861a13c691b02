from __future__ import annotations

"""
Unit tests for the Dependency Graph Builder.

Verifies:
1. Module IDs follow pre-order discovery and are unique per file.
2. Require calls are replaced by loader calls in place.
3. Cyclic requires and a required entry script terminate.
4. Every failure maps to the matching bundling error.
"""

from pathlib import Path

import pytest

from onelua.core.pipeline.stages.graph_builder import (
    DependencyGraphBuilder,
    build_module_graph,
    is_require_call,
    loader_call,
    reserved_names_used,
)
from onelua.core.resolution.resolver import ModuleResolver
from onelua.core.syntax import parser
from onelua.core.syntax.nodes import walk
from onelua.domain.constants import CACHE_SYMBOL, LOADER_SYMBOL
from onelua.domain.errors import ConfigurationError, ParseError, ResolutionError, UnsupportedRequireError


@pytest.fixture(autouse=True)
def _no_stray_cwd(isolated_cwd: Path) -> Path:
    return isolated_cwd


def _loader_ids(tree):
    """IDs passed to the loader, in tree order."""
    return [
        node["arguments"][0]["value"]
        for node in walk(tree)
        if node["type"] == "CallExpression"
        and node["base"]["type"] == "Identifier"
        and node["base"]["name"] == LOADER_SYMBOL
    ]


def _build(root: Path, entry: str = "main.lua"):
    return build_module_graph(str(root / entry))


# -----------------------------------------------------------------------------
# Require detection
# -----------------------------------------------------------------------------

def test_is_require_call_matches_all_call_forms() -> None:
    body = parser.parse_chunk('require("a") require "b" require {} other("c") x.require("d")')["body"]
    assert [is_require_call(s["expression"]) for s in body] == [True, True, True, False, False]


def test_shadowed_require_is_not_a_require_call() -> None:
    body = parser.parse_chunk('local require = print\nrequire("a")')["body"]
    assert is_require_call(body[1]["expression"]) is False


def test_reserved_names_used() -> None:
    tree = parser.parse_chunk(f"local {LOADER_SYMBOL} = 1 print(t.x, {CACHE_SYMBOL}, {LOADER_SYMBOL})")
    assert reserved_names_used(tree) == [LOADER_SYMBOL, CACHE_SYMBOL]
    assert reserved_names_used(parser.parse_chunk("print(1)")) == []


def test_loader_call_shape() -> None:
    node = loader_call(7)
    assert node["base"]["name"] == LOADER_SYMBOL
    assert node["arguments"][0]["value"] == 7


# -----------------------------------------------------------------------------
# Graph construction
# -----------------------------------------------------------------------------

def test_ids_follow_preorder_discovery(make_project) -> None:
    """TC-01: a requires c before main reaches b, so c gets ID 2."""
    root = make_project({
        "main.lua": 'local a = require("a")\nlocal b = require("b")',
        "a.lua": 'return require("c")',
        "b.lua": "return 2",
        "c.lua": "return 3",
    })
    graph = _build(root)

    assert graph.describe() == {
        1: str(root / "a.lua"),
        2: str(root / "c.lua"),
        3: str(root / "b.lua"),
    }
    assert _loader_ids(graph.main_tree) == [1, 3]
    assert _loader_ids(graph.module_trees[1]) == [2]
    assert graph.entry_slot is None


def test_same_file_gets_one_id(make_project) -> None:
    """TC-02: Different names reaching the same file share the slot."""
    root = make_project({
        "main.lua": 'require("lib.util") require "lib.util" require("lib.other")',
        "lib/other.lua": 'return require("util")',
        "lib/util.lua": "return {}",
    })
    graph = _build(root)

    assert graph.module_count == 2
    assert _loader_ids(graph.main_tree) == [1, 1, 2]
    assert _loader_ids(graph.module_trees[2]) == [1]


def test_require_calls_are_fully_rewritten(make_project) -> None:
    root = make_project({
        "main.lua": 'local m = require "m"\nprint((require("m")))',
        "m.lua": "return 1",
    })
    graph = _build(root)

    assert not any(is_require_call(node) for node in walk(graph.main_tree))
    wrapped = graph.main_tree["body"][1]["expression"]["arguments"][0]
    assert wrapped["inParens"] is True
    assert wrapped["base"]["name"] == LOADER_SYMBOL


def test_shadowed_require_is_left_alone(make_project) -> None:
    root = make_project({
        "main.lua": 'local m = require("m")\nlocal function f(require) return require("not.a.module") end',
        "m.lua": "return 1",
    })
    graph = _build(root)

    assert graph.module_count == 1
    inner = graph.main_tree["body"][1]["body"][0]["arguments"][0]
    assert inner["base"]["name"] == "require"


def test_runtime_name_clash_is_logged(make_project, caplog: pytest.LogCaptureFixture) -> None:
    root = make_project({"main.lua": f"{CACHE_SYMBOL} = 1"})
    with caplog.at_level("WARNING"):
        _build(root)
    assert CACHE_SYMBOL in caplog.text


def test_replacement_keeps_source_location(make_project) -> None:
    root = make_project({"main.lua": '\n\nlocal m = require("m")', "m.lua": ""})
    graph = _build(root)
    call = graph.main_tree["body"][0]["init"][0]
    assert call["loc"]["start"]["line"] == 3


def test_cyclic_requires_terminate(make_project) -> None:
    """TC-03: a -> b -> a reuses the ID registered before loading."""
    root = make_project({
        "main.lua": 'require("a")',
        "a.lua": 'return require("b")',
        "b.lua": 'return require("a")',
    })
    graph = _build(root)

    assert graph.module_count == 2
    assert _loader_ids(graph.module_trees[1]) == [2]
    assert _loader_ids(graph.module_trees[2]) == [1]


def test_required_entry_gets_a_slot(make_project) -> None:
    """TC-04: The entry gets an ID and a copy of its rewritten tree."""
    root = make_project({
        "main.lua": 'local helper = require("helper")\nreturn helper',
        "helper.lua": 'return require("main")',
    })
    graph = _build(root)

    assert graph.entry_slot == 2
    assert graph.module_trees[2] == graph.main_tree
    assert graph.module_trees[2] is not graph.main_tree
    assert _loader_ids(graph.module_trees[1]) == [2]


def test_each_file_is_parsed_once(make_project, monkeypatch: pytest.MonkeyPatch) -> None:
    root = make_project({
        "main.lua": 'require("a") require("b") require("a")',
        "a.lua": 'require("b") require("main")',
        "b.lua": 'require("a")',
    })
    calls = []
    original = parser.parse_chunk

    def _counting(text):
        calls.append(text)
        return original(text)

    monkeypatch.setattr(parser, "parse_chunk", _counting)
    _build(root)

    assert len(calls) == 3


def test_package_dependency_is_bundled(make_project) -> None:
    root = make_project({
        "main.lua": 'local json = require("json")',
        "node_modules/json/package.json": {"onelua": {"main": "lib/json.lua"}},
        "node_modules/json/lib/json.lua": 'return require("encode")',
        "node_modules/json/lib/encode.lua": "return {}",
    })
    graph = _build(root)

    assert graph.describe() == {
        1: str(root / "node_modules" / "json" / "lib" / "json.lua"),
        2: str(root / "node_modules" / "json" / "lib" / "encode.lua"),
    }


def test_builder_uses_given_resolver(make_project) -> None:
    root = make_project({
        "app/main.lua": 'require("shared")',
        "vendor/shared/package.json": {"onelua": {"main": "shared.lua"}},
        "vendor/shared/shared.lua": "",
    })
    resolver = ModuleResolver(str(root / "app"), [str(root / "vendor")])
    graph = build_module_graph(str(root / "app" / "main.lua"), resolver)
    assert graph.module_count == 1


# -----------------------------------------------------------------------------
# Failures
# -----------------------------------------------------------------------------

def test_missing_entry_raises_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        build_module_graph(str(tmp_path / "absent.lua"))


def test_unresolved_module_raises(make_project) -> None:
    root = make_project({"main.lua": 'require("missing.mod")'})
    with pytest.raises(ResolutionError) as exc_info:
        _build(root)
    assert exc_info.value.module_name == "missing.mod"
    assert exc_info.value.requesting_path == str(root / "main.lua")


@pytest.mark.parametrize("source", [
    "require(name)",
    "require()",
    "require{}",
    "local x = require(1)",
])
def test_unsupported_require_forms(make_project, source: str) -> None:
    """TC-05: Only literal module names can be bundled."""
    root = make_project({"main.lua": "\n" + source})
    with pytest.raises(UnsupportedRequireError) as exc_info:
        _build(root)
    assert exc_info.value.line == 2
    assert exc_info.value.path == str(root / "main.lua")


def test_syntax_error_in_module_raises_parse_error(make_project) -> None:
    root = make_project({
        "main.lua": 'require("broken")',
        "broken.lua": "local x = 1\nlocal = 2",
    })
    with pytest.raises(ParseError) as exc_info:
        _build(root)
    assert exc_info.value.path == str(root / "broken.lua")
    assert exc_info.value.line == 2
    assert "broken.lua:2" in str(exc_info.value)
