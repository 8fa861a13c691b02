from __future__ import annotations

"""
End-to-End (E2E) CLI Tests.

Verifies the application's external behavior by invoking the entry point
script via subprocess. These tests validate argument parsing, exit codes,
stream output (stdout/stderr), and file system side effects (the bundle).
"""

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SRC_DIR = PROJECT_ROOT / "src"
ENTRY_POINT = SRC_DIR / "onelua" / "main.py"


def run_cli(args: List[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
    """
    Helper to execute the CLI in a separate process.

    Injects the 'src' directory into PYTHONPATH to ensure the package
    is resolvable without being installed in site-packages.
    """
    env = os.environ.copy()
    env["PYTHONPATH"] = str(SRC_DIR) + os.pathsep + env.get("PYTHONPATH", "")

    cmd = [sys.executable, str(ENTRY_POINT)] + args

    return subprocess.run(
        cmd,
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        encoding="utf-8",
    )


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    """
    Create a small Lua project with a manifest.

    Structure:
        /project
            package.json          (onelua.main = src/main.lua)
            src/main.lua
            src/greet.lua
            node_modules/fmt/     (dependency package)
    """
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "node_modules" / "fmt").mkdir(parents=True)

    (root / "package.json").write_text(
        json.dumps({"name": "demo", "onelua": {"main": "src/main.lua", "output": "dist/demo.lua"}}),
        encoding="utf-8",
    )
    (root / "src" / "main.lua").write_text(
        'local greet = require("greet")\nprint(greet("world"))\n', encoding="utf-8"
    )
    (root / "src" / "greet.lua").write_text(
        'local fmt = require("fmt")\nreturn function(name) return fmt.wrap("Hello, " .. name) end\n',
        encoding="utf-8",
    )
    (root / "node_modules" / "fmt" / "package.json").write_text(
        json.dumps({"onelua": {"main": "fmt.lua"}}), encoding="utf-8"
    )
    (root / "node_modules" / "fmt" / "fmt.lua").write_text(
        "return {wrap = function(s) return '<' .. s .. '>' end}\n", encoding="utf-8"
    )
    return root


def test_cli_bundles_manifest_project(sample_project: Path) -> None:
    """TC-01: A manifest directory is bundled to its declared output."""
    result = run_cli([str(sample_project)], cwd=sample_project)

    assert result.returncode == 0, result.stderr
    assert "Modules: 2" in result.stdout

    bundle = sample_project / "dist" / "demo.lua"
    assert bundle.is_file()
    text = bundle.read_text(encoding="utf-8")
    assert "__OL__require" in text
    assert "\n" not in text.rstrip("\n")


def test_cli_pretty_output_with_metadata(sample_project: Path, tmp_path: Path) -> None:
    out = tmp_path / "pretty.lua"
    result = run_cli([str(sample_project / "src" / "main.lua"), "-o", str(out), "--no-minify", "--metadata"],
                     cwd=sample_project)

    assert result.returncode == 0, result.stderr
    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "-- Bundled by onelua 1.0.0 from main.lua (2 modules)"
    assert len(lines) > 5


def test_cli_json_output(sample_project: Path) -> None:
    """TC-02: --json prints the machine-readable result."""
    result = run_cli([str(sample_project), "--json"], cwd=sample_project)

    assert result.returncode == 0, result.stderr
    payload = json.loads(result.stdout)
    assert payload["ok"] is True
    assert payload["module_count"] == 2
    assert payload["modules"]["1"].endswith("greet.lua")


def test_cli_missing_module_fails(tmp_path: Path) -> None:
    """TC-03: Bundling errors exit with 1 and an ERROR line on stderr."""
    entry = tmp_path / "main.lua"
    entry.write_text('require("nowhere")\n', encoding="utf-8")

    result = run_cli([str(entry), "-o", str(tmp_path / "out.lua")], cwd=tmp_path)

    assert result.returncode == 1
    assert "ERROR:" in result.stderr
    assert "nowhere" in result.stderr
    assert not (tmp_path / "out.lua").exists()


def test_cli_file_input_without_output_fails(tmp_path: Path) -> None:
    entry = tmp_path / "main.lua"
    entry.write_text("print(1)\n", encoding="utf-8")

    result = run_cli([str(entry)], cwd=tmp_path)

    assert result.returncode == 1
    assert "no output path" in result.stderr


def test_cli_dump_config(sample_project: Path) -> None:
    result = run_cli([str(sample_project), "--dump-config"], cwd=sample_project)

    assert result.returncode == 0, result.stderr
    config = json.loads(result.stdout)
    assert config["output_path"] == str(sample_project / "dist" / "demo.lua")
    assert not (sample_project / "dist").exists()


def test_cli_version() -> None:
    result = run_cli(["--version"])
    assert result.returncode == 0
    assert "onelua 1.0.0" in result.stdout
