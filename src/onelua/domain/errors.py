from __future__ import annotations

"""
Bundling Error Hierarchy.

Every fatal condition of a bundling run is represented by a subclass of
BundleError. Each error carries enough context (file path, line, module name)
to locate the fault without re-running in debug mode.
"""

from typing import Optional


class BundleError(Exception):
    """Base class for all fatal bundling errors."""

    kind: str = "BundleError"

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        return self.message


class ConfigurationError(BundleError):
    """Missing or invalid manifest, entry file or output path."""

    kind = "ConfigurationError"


class ResolutionError(BundleError):
    """A required module could not be located by any resolution strategy."""

    kind = "ResolutionError"

    def __init__(self, module_name: str, requesting_path: str) -> None:
        super().__init__(
            f"module '{module_name}' not found (required from {requesting_path})",
            requesting_path,
        )
        self.module_name = module_name
        self.requesting_path = requesting_path


class UnsupportedRequireError(BundleError):
    """The module primitive was invoked with a non-literal argument."""

    kind = "UnsupportedRequireError"

    def __init__(self, reason: str, path: str, line: Optional[int] = None) -> None:
        where = f"{path}:{line}" if line is not None else path
        super().__init__(f"unsupported require at {where}: {reason}", path)
        self.reason = reason
        self.line = line


class ParseError(BundleError):
    """Malformed or unreadable source in a reachable module."""

    kind = "ParseError"

    def __init__(
            self,
            reason: str,
            path: str,
            line: Optional[int] = None,
            column: Optional[int] = None,
    ) -> None:
        where = path
        if line is not None:
            where = f"{path}:{line}"
            if column is not None:
                where = f"{where}:{column}"
        super().__init__(f"failed to parse {where}: {reason}", path)
        self.reason = reason
        self.line = line
        self.column = column


class WriteError(BundleError):
    """The bundle destination could not be written."""

    kind = "WriteError"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot write bundle to {path}: {reason}", path)
        self.reason = reason
