"""Exception taxonomy shared by the index cache, the editor and the CLI."""

from __future__ import annotations

from typing import Optional


class NixAddError(Exception):
    """Base class for every error the CLI reports and exits on."""


class ConfigError(NixAddError):
    """Raised when the tool's own settings cannot be loaded or are invalid."""


class CacheFetchError(NixAddError):
    """Raised when the package index query fails or its output is unusable."""


class UnsupportedPlatformError(CacheFetchError):
    """Raised when the running platform has no known nix system mapping."""

    def __init__(self, system: str, machine: str):
        super().__init__(f"Unsupported platform: {system}/{machine}")
        self.system = system
        self.machine = machine


class CacheIOError(NixAddError):
    """Raised when the cache file cannot be read, decoded or written."""


class DocumentParseError(NixAddError):
    """Raised when a Nix document cannot be read, parsed, or has no package list.

    Carries the offending path (when known) so the operator can locate it.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        if path:
            message = f"{path}: {message}"
        super().__init__(message)
        self.path = path


class DocumentWriteError(NixAddError):
    """Raised when the edited document cannot be written back."""


class EditError(NixAddError):
    """Raised when a resolved edit cannot be applied to the package list."""


class ApplyError(NixAddError):
    """Raised when the switch or version-control step fails."""
