from __future__ import annotations

"""
Pipeline Domain Data Models.

Defines the result structure and factory functions used to communicate the
outcome of a bundling run between the pipeline engine and the CLI.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

# -----------------------------------------------------------------------------
# CORE DATA MODELS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class BundleResult:
    """
    Unified result object of a complete bundling run.

    Attributes:
        ok: Flag indicating success or failure.
        error: Descriptive message in case of failure.
        error_kind: Name of the error class in case of failure.
        entry_path: Absolute path of the entry script.
        output_path: Absolute path of the written bundle.
        module_count: Number of module slots in the bundle.
        modules: Module ID -> absolute script path.
        minified: Whether the minifier back end produced the output.
        bytes_written: Size of the written bundle.
        elapsed_ms: Wall-clock duration of the run.
        summary: Stage timings and other execution metadata.
    """
    ok: bool
    error: str
    error_kind: str = ""

    entry_path: str = ""
    output_path: str = ""

    module_count: int = 0
    modules: Dict[int, str] = field(default_factory=dict)

    minified: bool = True
    bytes_written: int = 0
    elapsed_ms: float = 0.0

    summary: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation (module IDs become string keys)."""
        data = asdict(self)
        data["modules"] = {str(k): v for k, v in self.modules.items()}
        return data

# -----------------------------------------------------------------------------
# FACTORY FUNCTIONS
# -----------------------------------------------------------------------------

def create_error_result(
        error: str,
        cfg: Dict[str, Any],
        error_kind: str = "",
        entry_path: str = "",
        elapsed_ms: float = 0.0,
        summary_extra: Optional[Dict[str, Any]] = None
) -> BundleResult:
    """
    Create a failed bundling result instance.

    Args:
        error: Detailed error description.
        cfg: The configuration used during the failed run.
        error_kind: Error class name, for machine consumers.
        entry_path: Entry script, when it was determined before the failure.
        elapsed_ms: Time spent before the failure.
        summary_extra: Additional metadata for the summary payload.

    Returns:
        BundleResult: An immutable error result object.
    """
    return BundleResult(
        ok=False,
        error=error,
        error_kind=error_kind,
        entry_path=entry_path,
        output_path=cfg.get("output_path") or "",
        minified=bool(cfg.get("minify", True)),
        elapsed_ms=elapsed_ms,
        summary=summary_extra or {},
    )


def create_success_result(
        cfg: Dict[str, Any],
        entry_path: str,
        output_path: str,
        modules: Dict[int, str],
        bytes_written: int,
        elapsed_ms: float,
        summary_extra: Optional[Dict[str, Any]] = None
) -> BundleResult:
    """
    Create a successful bundling result instance.

    Args:
        cfg: Final configuration used during execution.
        entry_path: Absolute entry script path.
        output_path: Absolute bundle path.
        modules: Module ID -> script path.
        bytes_written: Size of the bundle on disk.
        elapsed_ms: Total run duration.
        summary_extra: Stage timings and metrics.

    Returns:
        BundleResult: An immutable success result object.
    """
    return BundleResult(
        ok=True,
        error="",
        entry_path=entry_path,
        output_path=output_path,
        module_count=len(modules),
        modules=dict(modules),
        minified=bool(cfg.get("minify", True)),
        bytes_written=bytes_written,
        elapsed_ms=elapsed_ms,
        summary=summary_extra or {},
    )
