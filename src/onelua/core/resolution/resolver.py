from __future__ import annotations

"""
Module Resolution Service.

Maps a module name, as written in a require call, to a concrete Lua file.
Candidates are tried in a fixed order and the first existing file wins:

1. Relative to the requesting script's directory.
2. Relative to the entry script's directory.
3. Relative to the main-script directory of the requesting script's package.
4. Through a dependency manifest found under one of the dependency roots.

Resolution is a pure function of its inputs and the file system. The only
state kept is a cache of loaded dependency packages, keyed by manifest path.
"""

import logging
import os
from typing import Dict, List, Optional, Sequence

from onelua.domain.constants import LUA_EXTENSION, MANIFEST_BUILD_KEY, MANIFEST_FILE_NAME, SOURCE_ENCODING
from onelua.domain.script_models import Package, ScriptLocation
from onelua.infra import fs

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# NAME HELPERS
# -----------------------------------------------------------------------------

def module_name_to_path(module_name: str) -> str:
    """
    Convert a dotted module name into a relative path without extension.

    Names are decoded one character per byte, so the bytes are handed back to
    the file system unchanged.
    """
    return os.fsdecode(module_name.encode(SOURCE_ENCODING)).replace(".", os.sep)

# -----------------------------------------------------------------------------
# RESOLVER
# -----------------------------------------------------------------------------

class ModuleResolver:
    """
    Resolves module names against the file system for one bundling run.

    Args:
        entry_dir: Directory of the entry script.
        dependency_roots: Extra directories searched for dependency packages
                          after the built-in ones.
        extension: Script file extension.
    """

    def __init__(
            self,
            entry_dir: str,
            dependency_roots: Optional[Sequence[str]] = None,
            extension: str = LUA_EXTENSION,
    ) -> None:
        self.entry_dir = os.path.abspath(entry_dir)
        self.extra_roots: List[str] = [os.path.abspath(r) for r in (dependency_roots or [])]
        self.extension = extension
        self._packages: Dict[str, Optional[Package]] = {}

    # --- public API ---

    def resolve(self, requesting: ScriptLocation, module_name: str) -> Optional[ScriptLocation]:
        """
        Locate the file a require call refers to.

        Args:
            requesting: Script containing the require call.
            module_name: Literal module name, dot-separated.

        Returns:
            Optional[ScriptLocation]: The resolved script, or None when no
            strategy finds an existing file.
        """
        relative = module_name_to_path(module_name) + self.extension
        package = requesting.package

        # 1. Next to the requesting script
        candidate = os.path.join(requesting.base_dir, relative)
        if self._is_file(candidate, module_name):
            return ScriptLocation.from_path(candidate, package)

        # 2. Next to the entry script
        candidate = os.path.join(self.entry_dir, relative)
        if self._is_file(candidate, module_name):
            return ScriptLocation.from_path(candidate)

        # 3. Inside the requesting script's own package
        if package is not None:
            candidate = os.path.join(package.main_dir, relative)
            if self._is_file(candidate, module_name):
                return ScriptLocation.from_path(candidate, package)

        # 4. Dependency packages
        for root in self.dependency_roots(requesting):
            found = self._resolve_dependency(root, module_name)
            if found is not None:
                return found

        logger.debug(f"Module '{module_name}' not found for {requesting.path}")
        return None

    def dependency_roots(self, requesting: ScriptLocation) -> List[str]:
        """
        Ordered, de-duplicated list of existing dependency directories.

        The requesting package's own dependency directory comes first, then
        the entry directory's, the working directory's, and finally any
        configured extra roots.
        """
        candidates: List[str] = []
        if requesting.package is not None:
            candidates.append(fs.dependency_dir(requesting.package.root_dir))
        candidates.append(fs.dependency_dir(self.entry_dir))
        candidates.append(fs.dependency_dir(os.getcwd()))
        candidates.extend(self.extra_roots)
        return fs.unique_existing_dirs(candidates)

    def load_package(self, name: str, manifest_path: str) -> Optional[Package]:
        """
        Load (once) the dependency package described by a manifest.

        Returns None, and caches that outcome, when the manifest is missing,
        malformed, or lacks build instructions with an existing main script.
        """
        manifest_path = os.path.abspath(manifest_path)
        if manifest_path in self._packages:
            return self._packages[manifest_path]

        package = self._read_package(name, manifest_path)
        self._packages[manifest_path] = package
        return package

    # --- internals ---

    def _is_file(self, candidate: str, module_name: str) -> bool:
        found = os.path.isfile(candidate)
        logger.debug(f"Resolve '{module_name}': {candidate} -> {'hit' if found else 'miss'}")
        return found

    def _resolve_dependency(self, root: str, module_name: str) -> Optional[ScriptLocation]:
        package_dir = os.path.join(root, module_name_to_path(module_name))
        manifest_path = os.path.join(package_dir, MANIFEST_FILE_NAME)
        if not os.path.isfile(manifest_path):
            return None

        package = self.load_package(module_name, manifest_path)
        if package is None:
            return None

        logger.debug(f"Resolve '{module_name}': package {package.manifest_path} -> {package.main_path}")
        return ScriptLocation.from_path(package.main_path, package)

    @staticmethod
    def _read_package(name: str, manifest_path: str) -> Optional[Package]:
        document, err = fs.read_json(manifest_path)
        if err is not None:
            logger.warning(f"Ignoring unreadable package manifest {manifest_path}: {err}")
            return None
        if not isinstance(document, dict):
            logger.warning(f"Ignoring package manifest {manifest_path}: not a JSON object")
            return None

        build = document.get(MANIFEST_BUILD_KEY)
        if not isinstance(build, dict) or not isinstance(build.get("main"), str) or not build["main"]:
            logger.debug(f"Package manifest {manifest_path} has no '{MANIFEST_BUILD_KEY}.main' entry")
            return None

        root_dir = os.path.dirname(manifest_path)
        main_path = fs.resolve_relative(root_dir, build["main"])
        if not os.path.isfile(main_path):
            logger.warning(f"Package {name}: main script {main_path} does not exist")
            return None

        return Package(
            name=name,
            manifest_path=manifest_path,
            root_dir=root_dir,
            main_path=main_path,
            main_dir=os.path.dirname(main_path),
            manifest=document,
        )
