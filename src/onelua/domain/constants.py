from __future__ import annotations

"""
Domain Constants.

Centralizes the file conventions, manifest keys and the reserved runtime
symbols injected into every generated bundle.
"""

from typing import Final, Tuple

APP_NAME: Final[str] = "onelua"
APP_VERSION: Final[str] = "1.0.0"

# -----------------------------------------------------------------------------
# FILE CONVENTIONS
# -----------------------------------------------------------------------------

LUA_EXTENSION: Final[str] = ".lua"
MANIFEST_FILE_NAME: Final[str] = "package.json"
MANIFEST_BUILD_KEY: Final[str] = "onelua"
DEPENDENCY_DIR_NAME: Final[str] = "node_modules"

# One character per byte, so scripts and bundles round-trip byte for byte
SOURCE_ENCODING: Final[str] = "latin-1"

# -----------------------------------------------------------------------------
# RESERVED RUNTIME SYMBOLS
# -----------------------------------------------------------------------------

REQUIRE_PRIMITIVE: Final[str] = "require"

PACKAGES_SYMBOL: Final[str] = "__OL__packages"
CACHE_SYMBOL: Final[str] = "__OL__cached_packages"
LOADER_SYMBOL: Final[str] = "__OL__require"

RESERVED_SYMBOLS: Final[Tuple[str, ...]] = (PACKAGES_SYMBOL, CACHE_SYMBOL, LOADER_SYMBOL)

# -----------------------------------------------------------------------------
# OUTPUT FORMATTING
# -----------------------------------------------------------------------------

INDENT: Final[str] = "    "
