from __future__ import annotations

"""
FileSystem Infrastructure Layer.

Provides path normalization, script reading and bundle persistence. Acts as
the single place where the bundler touches the disk, so the resolver and the
graph builder stay free of encoding and error-translation details.
"""

import json
import os
from typing import Any, List, Optional, Tuple

from onelua.domain.constants import DEPENDENCY_DIR_NAME, SOURCE_ENCODING
from onelua.domain.errors import WriteError

# -----------------------------------------------------------------------------
# PATH RESOLUTION API
# -----------------------------------------------------------------------------

def normalize_path(path: Optional[str], fallback: str) -> str:
    """
    Normalize a path string into an absolute filesystem path.

    Handles environment variable expansion ($VAR/%VAR%) and user home
    shortcuts (~/). Reverts to fallback if the input is empty.

    Args:
        path: Raw input path string.
        fallback: Default path to use if the input is empty.

    Returns:
        str: Normalized absolute path.
    """
    p = (path or "").strip()
    if not p:
        p = fallback
    p = os.path.expandvars(os.path.expanduser(p))
    return os.path.abspath(p)


def resolve_relative(base_dir: str, path: str) -> str:
    """Resolve 'path' against 'base_dir' unless it is already absolute."""
    expanded = os.path.expanduser(path)
    if os.path.isabs(expanded):
        return os.path.normpath(expanded)
    return os.path.normpath(os.path.join(base_dir, expanded))


def dependency_dir(base_dir: str) -> str:
    return os.path.join(base_dir, DEPENDENCY_DIR_NAME)


def unique_existing_dirs(candidates: List[str]) -> List[str]:
    """
    Filter a list of directories down to the existing ones.

    Order is preserved and duplicates (after normalization) are dropped.
    """
    seen = set()
    result: List[str] = []
    for candidate in candidates:
        if not candidate:
            continue
        normalized = os.path.normpath(os.path.abspath(candidate))
        if normalized in seen:
            continue
        seen.add(normalized)
        if os.path.isdir(normalized):
            result.append(normalized)
    return result

# -----------------------------------------------------------------------------
# READ API
# -----------------------------------------------------------------------------

def read_script(path: str) -> str:
    """
    Read a Lua script as text.

    Each byte becomes one character, so string literals in any encoding
    survive unchanged when the bundle is written with write_bundle.

    Raises:
        OSError: If the file cannot be opened.
    """
    with open(path, "r", encoding=SOURCE_ENCODING, newline="") as f:
        return f.read()


def read_json(path: str) -> Tuple[Optional[Any], Optional[str]]:
    """
    Load a JSON document.

    Returns:
        Tuple[Optional[Any], Optional[str]]: (Parsed document, Error message
        if the file is missing, unreadable or not valid JSON).
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f), None
    except FileNotFoundError:
        return None, f"file not found: {path}"
    except (OSError, ValueError) as e:
        return None, str(e)

# -----------------------------------------------------------------------------
# WRITE API
# -----------------------------------------------------------------------------

def safe_mkdir(path: str) -> Tuple[bool, Optional[str]]:
    """
    Attempt to recursively create a directory structure safely.

    Args:
        path: Target directory path.

    Returns:
        Tuple[bool, Optional[str]]: (Success flag, Error message if applicable).
    """
    try:
        os.makedirs(path, exist_ok=True)
        return True, None
    except OSError as e:
        return False, str(e)


def write_bundle(path: str, content: str) -> int:
    """
    Persist the generated bundle, creating parent directories as needed.

    Args:
        path: Destination file.
        content: Complete bundle source.

    Returns:
        int: Number of bytes written.

    Raises:
        WriteError: If the directory cannot be created or the file written.
    """
    parent = os.path.dirname(os.path.abspath(path))
    ok, err = safe_mkdir(parent)
    if not ok:
        raise WriteError(path, err or "cannot create output directory")

    data = content.encode(SOURCE_ENCODING)
    try:
        with open(path, "wb") as out:
            out.write(data)
    except OSError as e:
        raise WriteError(path, str(e)) from e
    return len(data)
