from __future__ import annotations

"""
Command Line Interface (CLI) Application Controller.

Orchestrates the CLI lifecycle: logging bootstrap, mapping of arguments to
configuration overrides, pipeline execution and result rendering.
"""

import json
import sys
from typing import List, Optional

from onelua.core.pipeline.engine import plan_run, run_pipeline
from onelua.domain.errors import BundleError
from onelua.domain.pipeline_models import BundleResult
from onelua.infra.logging import LoggingConfig, configure_logging, get_logger, shutdown_logging
from onelua.interface.cli import args as cli_args

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# ENTRYPOINT ORCHESTRATOR
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """
    Execute the main CLI application workflow.

    Args:
        argv: Optional list of command line arguments. Defaults to sys.argv.

    Returns:
        int: Process exit code (0 success, 1 failure, 130 interrupted).
    """
    parser = cli_args.build_parser()
    args = parser.parse_args(argv)

    configure_logging(LoggingConfig.for_run(debug=args.debug, log_file=args.log_file), force=True)
    try:
        return _run(args)
    finally:
        shutdown_logging()


def _run(args) -> int:
    overrides = cli_args.args_to_overrides(args)
    logger.debug(f"CLI overrides: {overrides}")

    if args.dump_config:
        try:
            plan, _ = plan_run(overrides)
        except BundleError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        print(json.dumps(plan.config, ensure_ascii=False, indent=2))
        return 0

    try:
        result = run_pipeline(overrides)
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130

    if args.json_output:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        if not result.ok:
            print(f"ERROR: {result.error}", file=sys.stderr)
    else:
        _print_human_summary(result)

    return 0 if result.ok else 1

# -----------------------------------------------------------------------------
# VIEW RENDERING (HUMAN READABLE)
# -----------------------------------------------------------------------------

def _print_human_summary(result: BundleResult) -> None:
    """Render a BundleResult as a short terminal report."""
    if not result.ok:
        print(f"ERROR: {result.error}", file=sys.stderr)
        return

    mode = "minified" if result.minified else "pretty-printed"
    print(f"Bundled {result.entry_path}")
    print(f"  -> {result.output_path} ({result.bytes_written:,} bytes, {mode})")
    print(f"Modules: {result.module_count}")
    for module_id, path in sorted(result.modules.items()):
        print(f"  [{module_id}] {path}")
    print(f"Elapsed: {result.elapsed_ms:.1f} ms")


if __name__ == "__main__":
    sys.exit(main())
