from __future__ import annotations

"""
Script Domain Data Models.

Defines the value objects exchanged between the resolver and the graph
builder (script locations and dependency packages) and the per-run module
graph accumulators.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# -----------------------------------------------------------------------------
# LOCATION MODELS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Package:
    """
    A resolved dependency unit declared by a manifest.

    Attributes:
        name: Package name as written in the require call.
        manifest_path: Absolute path of the package manifest.
        root_dir: Directory holding the manifest.
        main_path: Absolute path of the declared entry script.
        main_dir: Directory of the declared entry script.
        manifest: Parsed manifest contents (read-only by convention).
    """
    name: str
    manifest_path: str
    root_dir: str
    main_path: str
    main_dir: str
    manifest: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class ScriptLocation:
    """
    A concrete Lua file on disk.

    Two locations denote the same module if and only if their absolute paths
    are equal; the directory and package tag do not take part in equality.

    Attributes:
        path: Absolute file path.
        base_dir: Directory containing the file.
        package: Package the script belongs to, if any.
    """
    path: str
    base_dir: str = field(compare=False)
    package: Optional[Package] = field(default=None, compare=False)

    @classmethod
    def from_path(cls, path: str, package: Optional[Package] = None) -> "ScriptLocation":
        """Build a location from any path, normalizing it to an absolute one."""
        abs_path = os.path.abspath(path)
        return cls(path=abs_path, base_dir=os.path.dirname(abs_path), package=package)

    def exists(self) -> bool:
        return os.path.isfile(self.path)


# -----------------------------------------------------------------------------
# GRAPH ACCUMULATORS
# -----------------------------------------------------------------------------

@dataclass
class ModuleGraph:
    """
    Accumulators of a single bundling run.

    Attributes:
        entry: Location of the entry script.
        module_ids: Absolute path -> module ID, assigned 1, 2, 3... in
                    first-discovery order.
        module_trees: Module ID -> rewritten syntax tree.
        locations: Module ID -> location, for reporting.
        main_tree: Rewritten tree of the entry script.
        entry_slot: Module ID given to the entry script when another module
                    requires it, else None.
    """
    entry: ScriptLocation
    module_ids: Dict[str, int] = field(default_factory=dict)
    module_trees: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    locations: Dict[int, ScriptLocation] = field(default_factory=dict)
    main_tree: Optional[Dict[str, Any]] = None
    entry_slot: Optional[int] = None

    def register(self, location: ScriptLocation) -> int:
        """Assign the next module ID to a location seen for the first time."""
        module_id = len(self.module_ids) + 1
        self.module_ids[location.path] = module_id
        self.locations[module_id] = location
        return module_id

    def lookup(self, location: ScriptLocation) -> Optional[int]:
        return self.module_ids.get(location.path)

    @property
    def module_count(self) -> int:
        return len(self.module_ids)

    def describe(self) -> Dict[int, str]:
        """Return an ID -> path mapping suitable for summaries."""
        return {mid: loc.path for mid, loc in sorted(self.locations.items())}
