from __future__ import annotations

"""
Configuration Domain Defaults.

Defines the run configuration dictionary that drives the bundling pipeline.
Values are layered: these defaults, then the project manifest's build
options, then command-line overrides.
"""

import os
from typing import Any, Dict

# -----------------------------------------------------------------------------
# Configuration Models (Dict-based)
# -----------------------------------------------------------------------------

# Manifest build option -> configuration key
MANIFEST_OPTION_KEYS: Dict[str, str] = {
    "minify": "minify",
    "metadata": "metadata",
    "dependencyRoots": "dependency_roots",
}


def get_default_config() -> Dict[str, Any]:
    """
    Generate the default run configuration.

    Returns:
        Dict[str, Any]: Default configuration values.
    """
    return {
        # IO Paths
        "input_path": os.getcwd(),
        "output_path": "",

        # Output Format
        "minify": True,
        "metadata": False,

        # Resolution
        "dependency_roots": [],

        # Diagnostics
        "debug": False,
    }


def merge_config_layers(*layers: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge configuration layers left to right.

    None values in a later layer never override an earlier value, so CLI
    flags that were not given fall through to the manifest and defaults.
    """
    merged: Dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            if value is None:
                continue
            merged[key] = value
    return merged
