from __future__ import annotations

"""
CLI Argument Definition and Mapping.

Defines the command-line schema and translates the parsed namespace into
configuration overrides. Flags that were not given map to None so that the
manifest and default layers show through.
"""

import argparse
from typing import Any, Dict, List, Optional

from onelua.domain.constants import APP_NAME, APP_VERSION

# -----------------------------------------------------------------------------
# ARGUMENT DEFINITION
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """
    Construct the argument parser for the onelua CLI.

    Returns:
        argparse.ArgumentParser: Configured parser instance.
    """
    p = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Bundle a Lua program and everything it requires into a single script.",
    )

    # --- Path Management ---
    p.add_argument(
        "source",
        help="Entry script, or a project directory whose package.json has an 'onelua' section.",
    )
    p.add_argument(
        "-o", "--output",
        dest="output_path",
        default=None,
        help="Bundle destination (defaults to the manifest's 'output').",
    )
    p.add_argument(
        "--dependency-root",
        dest="dependency_roots",
        action="append",
        default=None,
        metavar="DIR",
        help="Extra directory searched for dependency packages (repeatable).",
    )

    # --- Output Format ---
    p.add_argument(
        "--no-minify",
        action="store_true",
        help="Pretty-print the bundle instead of minifying it.",
    )
    p.add_argument(
        "--metadata",
        action="store_true",
        help="Prepend a comment naming the tool, entry script and module count.",
    )

    # --- Configuration and Diagnostic Tools ---
    p.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the effective configuration and exit.",
    )
    p.add_argument(
        "--debug",
        action="store_true",
        help="Elevate logging verbosity to DEBUG.",
    )
    p.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        help="Also write logs to this (rotating) file.",
    )
    p.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Print the run result as JSON.",
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"{APP_NAME} {APP_VERSION}",
    )

    return p

# -----------------------------------------------------------------------------
# ARGUMENT MAPPING
# -----------------------------------------------------------------------------

def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Translate the argparse Namespace into a configuration dictionary.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Dict[str, Any]: Configuration overrides subset.
    """
    overrides: Dict[str, Any] = {
        "input_path": args.source,
        "output_path": args.output_path,
        "dependency_roots": _clean_list(args.dependency_roots),
        "minify": None,
        "metadata": None,
        "debug": None,
    }

    if args.no_minify:
        overrides["minify"] = False
    if args.metadata:
        overrides["metadata"] = True
    if args.debug:
        overrides["debug"] = True

    return overrides

# -----------------------------------------------------------------------------
# HELPERS
# -----------------------------------------------------------------------------

def _clean_list(values: Optional[List[str]]) -> Optional[List[str]]:
    """Strip entries and drop empty ones; None when nothing remains."""
    if values is None:
        return None
    parts = [x.strip() for x in values]
    return [x for x in parts if x] or None
