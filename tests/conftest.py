from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. A fixture writing small Lua projects to a temporary directory.
3. A fixture executing Lua code through the 'lupa' binding (skipped when
   lupa is not installed).
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def make_project(tmp_path: Path) -> Callable[[Dict[str, Any]], Path]:
    """
    Return a helper writing files below tmp_path.

    Keys are relative paths; string values are written verbatim, dict values
    are serialized as JSON (for manifests).
    """

    def _make(files: Dict[str, Any]) -> Path:
        for rel, content in files.items():
            target = tmp_path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, dict):
                content = json.dumps(content)
            target.write_text(content, encoding="utf-8")
        return tmp_path

    return _make


@pytest.fixture
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the test from an empty working directory (no stray node_modules)."""
    cwd = tmp_path / "_cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)
    return cwd


@pytest.fixture
def run_lua() -> Callable[[str], Any]:
    """Execute a Lua chunk in a fresh runtime and return its results."""
    lupa = pytest.importorskip("lupa")

    def _run(code: str) -> Any:
        runtime = lupa.LuaRuntime(unpack_returned_tuples=True)
        return runtime.execute(code)

    return _run
