from __future__ import annotations

"""
Project Manifest Reader.

Reads the build instructions of a project directory: a 'package.json' file
carrying an 'onelua' object with the entry script ('main'), the bundle
destination ('output') and optional build options.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from onelua.domain.config import MANIFEST_OPTION_KEYS
from onelua.domain.constants import MANIFEST_BUILD_KEY, MANIFEST_FILE_NAME
from onelua.domain.errors import ConfigurationError
from onelua.infra import fs

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# DATA MODEL
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class BuildManifest:
    """
    Build instructions of a project.

    Attributes:
        manifest_path: Absolute path of the manifest file.
        root_dir: Directory holding the manifest.
        main: Absolute path of the entry script.
        output: Absolute bundle path, if the manifest declares one.
        options: Recognized build options, keyed by configuration name.
    """
    manifest_path: str
    root_dir: str
    main: str
    output: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def manifest_path_for(directory: str) -> str:
    return os.path.join(os.path.abspath(directory), MANIFEST_FILE_NAME)


def load_manifest(directory: str) -> BuildManifest:
    """
    Load the build manifest of a project directory.

    Args:
        directory: Project directory.

    Returns:
        BuildManifest: Entry, output and options, with paths made absolute
        relative to the manifest directory.

    Raises:
        ConfigurationError: If the manifest is missing, is not a JSON object,
                            or lacks an 'onelua' object with a 'main' entry.
    """
    path = manifest_path_for(directory)
    if not os.path.isfile(path):
        raise ConfigurationError(f"no {MANIFEST_FILE_NAME} found in {os.path.abspath(directory)}", path)

    document, err = fs.read_json(path)
    if err is not None:
        raise ConfigurationError(f"invalid manifest {path}: {err}", path)
    if not isinstance(document, dict):
        raise ConfigurationError(f"invalid manifest {path}: expected a JSON object", path)

    build = document.get(MANIFEST_BUILD_KEY)
    if not isinstance(build, dict):
        raise ConfigurationError(f"manifest {path} has no '{MANIFEST_BUILD_KEY}' instructions", path)

    main = build.get("main")
    if not isinstance(main, str) or not main.strip():
        raise ConfigurationError(f"manifest {path} does not name a '{MANIFEST_BUILD_KEY}.main' entry script", path)

    root_dir = os.path.dirname(path)
    output = build.get("output")
    if output is not None and (not isinstance(output, str) or not output.strip()):
        raise ConfigurationError(f"manifest {path}: '{MANIFEST_BUILD_KEY}.output' must be a non-empty string", path)

    options = _read_options(build, root_dir, path)
    logger.debug(f"Loaded manifest {path}: main={main}, output={output}, options={options}")

    return BuildManifest(
        manifest_path=path,
        root_dir=root_dir,
        main=fs.resolve_relative(root_dir, main),
        output=fs.resolve_relative(root_dir, output) if output else None,
        options=options,
    )


def _read_options(build: Dict[str, Any], root_dir: str, path: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {}
    for manifest_key, config_key in MANIFEST_OPTION_KEYS.items():
        if manifest_key not in build:
            continue
        value = build[manifest_key]
        if config_key == "dependency_roots":
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigurationError(
                    f"manifest {path}: '{MANIFEST_BUILD_KEY}.{manifest_key}' must be a list of paths", path
                )
            value = [fs.resolve_relative(root_dir, v) for v in value]
        options[config_key] = value
    return options
