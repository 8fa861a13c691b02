from __future__ import annotations

"""
Core orchestration pipeline.

This module coordinates the bundling workflow:
1. Resolves the entry script and destination (directly or from a manifest).
2. Merges configuration layers and validates them.
3. Builds the module graph (resolution, parsing, require rewriting).
4. Assembles the bundle tree around the memoizing loader.
5. Serializes it with the minifier or the pretty printer.
6. Writes the bundle to disk.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from onelua.core.pipeline.stages.assembler import assemble
from onelua.core.pipeline.stages.graph_builder import DependencyGraphBuilder
from onelua.core.pipeline.stages.validator import validate_config
from onelua.core.processing.minifier import minify_tree
from onelua.core.processing.printer import print_tree
from onelua.core.resolution.resolver import ModuleResolver
from onelua.domain.config import get_default_config, merge_config_layers
from onelua.domain.constants import APP_NAME, APP_VERSION, SOURCE_ENCODING
from onelua.domain.errors import BundleError, ConfigurationError
from onelua.domain.manifest import load_manifest
from onelua.domain.pipeline_models import BundleResult, create_error_result, create_success_result
from onelua.domain.script_models import ModuleGraph, ScriptLocation
from onelua.infra.fs import normalize_path, write_bundle

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# RUN PLANNING
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class RunPlan:
    """Resolved inputs of a run: validated configuration plus concrete paths."""
    config: Dict[str, Any]
    entry_path: str
    output_path: str


def plan_run(config: Optional[Dict[str, Any]]) -> Tuple[RunPlan, List[str]]:
    """
    Determine entry script, destination and effective configuration.

    A directory input is read through its manifest, whose build options sit
    between the defaults and the given configuration. A file input is used
    as the entry script directly and needs an explicit output path.

    Returns:
        Tuple[RunPlan, List[str]]: The plan and configuration warnings.

    Raises:
        ConfigurationError: On a missing input, an invalid manifest or a
                            missing output path.
    """
    raw = dict(config or {})
    input_path = normalize_path(raw.get("input_path"), os.getcwd())

    layers: List[Dict[str, Any]] = [get_default_config()]
    manifest_output: Optional[str] = None

    if os.path.isdir(input_path):
        manifest = load_manifest(input_path)
        layers.append(manifest.options)
        entry_path = manifest.main
        manifest_output = manifest.output
    elif os.path.isfile(input_path):
        entry_path = input_path
    else:
        raise ConfigurationError(f"input path does not exist: {input_path}", input_path)

    layers.append(raw)
    cfg, warnings = validate_config(merge_config_layers(*layers), strict=False)

    output_path = cfg["output_path"] or manifest_output or ""
    if not output_path:
        raise ConfigurationError(
            f"no output path given for {input_path} (use -o or set 'output' in the manifest)", input_path
        )
    output_path = os.path.abspath(output_path)
    cfg["output_path"] = output_path

    if os.path.abspath(entry_path) == output_path:
        raise ConfigurationError(f"output path would overwrite the entry script: {output_path}", output_path)

    return RunPlan(config=cfg, entry_path=os.path.abspath(entry_path), output_path=output_path), warnings

# -----------------------------------------------------------------------------
# BUNDLING
# -----------------------------------------------------------------------------

def metadata_header(graph: ModuleGraph) -> str:
    """Single Lua comment line describing the bundle."""
    # The bundle is written one byte per character
    entry_name = os.fsencode(os.path.basename(graph.entry.path)).decode(SOURCE_ENCODING)
    return f"-- Bundled by {APP_NAME} {APP_VERSION} from {entry_name} ({graph.module_count} modules)\n"


def build_bundle_source(
        entry_path: str,
        *,
        minify: bool = True,
        metadata: bool = False,
        dependency_roots: Optional[List[str]] = None,
        timings: Optional[Dict[str, float]] = None,
) -> Tuple[str, ModuleGraph]:
    """
    Produce the bundle text for an entry script without writing it.

    Args:
        entry_path: Path of the entry script.
        minify: Use the minifier back end instead of the pretty printer.
        metadata: Prepend the descriptive header comment.
        dependency_roots: Extra dependency directories.
        timings: Optional dict receiving per-stage durations in ms.

    Returns:
        Tuple[str, ModuleGraph]: Bundle source and the module graph.

    Raises:
        BundleError: On any configuration, resolution or parse failure.
    """
    timings = timings if timings is not None else {}
    entry = ScriptLocation.from_path(entry_path)
    resolver = ModuleResolver(entry.base_dir, dependency_roots)

    t0 = time.perf_counter()
    graph = DependencyGraphBuilder(resolver).build(entry)
    t1 = time.perf_counter()
    tree = assemble(graph)
    t2 = time.perf_counter()
    text = minify_tree(tree) if minify else print_tree(tree)
    t3 = time.perf_counter()

    timings["graph_ms"] = round((t1 - t0) * 1000, 3)
    timings["assemble_ms"] = round((t2 - t1) * 1000, 3)
    timings["print_ms"] = round((t3 - t2) * 1000, 3)
    logger.debug(f"Stage timings: {timings}")

    if metadata:
        text = metadata_header(graph) + text
    return text, graph


def bundle_file(
        entry_path: str,
        *,
        minify: bool = True,
        metadata: bool = False,
        dependency_roots: Optional[List[str]] = None,
) -> str:
    """
    Bundle an entry script and return the generated source.

    Raises:
        BundleError: On any bundling failure.
    """
    text, _ = build_bundle_source(
        entry_path, minify=minify, metadata=metadata, dependency_roots=dependency_roots
    )
    return text


def run_pipeline(config: Optional[Dict[str, Any]]) -> BundleResult:
    """
    Execute the full bundling pipeline.

    Args:
        config: The configuration dictionary (raw or partial).

    Returns:
        BundleResult: Object containing status, module table and summary.
            Bundling errors are reported in the result, not raised.
    """
    logger.info("Bundling started.")
    started = time.perf_counter()
    raw = dict(config or {})
    timings: Dict[str, float] = {}
    entry_path = ""

    try:
        plan, warnings = plan_run(raw)
        cfg = plan.config
        entry_path = plan.entry_path
        logger.info(f"Entry script: {entry_path}")

        text, graph = build_bundle_source(
            entry_path,
            minify=cfg["minify"],
            metadata=cfg["metadata"],
            dependency_roots=cfg["dependency_roots"],
            timings=timings,
        )

        t_write = time.perf_counter()
        written = write_bundle(plan.output_path, text)
        timings["write_ms"] = round((time.perf_counter() - t_write) * 1000, 3)

    except BundleError as e:
        elapsed = round((time.perf_counter() - started) * 1000, 3)
        logger.error(f"Bundling failed ({e.kind}): {e}")
        return create_error_result(
            str(e), raw, error_kind=e.kind, entry_path=entry_path, elapsed_ms=elapsed,
            summary_extra={"timings_ms": timings},
        )

    elapsed = round((time.perf_counter() - started) * 1000, 3)
    logger.info(f"Wrote {written} bytes to {plan.output_path} ({graph.module_count} modules, {elapsed} ms)")

    return create_success_result(
        cfg,
        entry_path=entry_path,
        output_path=plan.output_path,
        modules=graph.describe(),
        bytes_written=written,
        elapsed_ms=elapsed,
        summary_extra={
            "timings_ms": timings,
            "warnings": list(warnings),
            "entry_required_as_module": graph.entry_slot is not None,
        },
    )
