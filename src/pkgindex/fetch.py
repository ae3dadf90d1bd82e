"""Package index query and platform key normalization.

The external ``nix search`` call sits behind :func:`fetch_index_raw` so that
callers (and tests) can substitute any ``() -> bytes`` fetcher.
"""

from __future__ import annotations

import json
import logging
import platform
import subprocess
from typing import Any, Callable, Dict, Optional

from common.errors import CacheFetchError, UnsupportedPlatformError
from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants, Platforms
from pkgindex.models import IndexEntry, PackageIndex

logger = logging.getLogger(__name__)

Fetcher = Callable[[], bytes]


def fetch_index_raw() -> bytes:
    """Run the nix search query and return its raw standard output.

    Raises:
        CacheFetchError: If the command cannot be started or exits non-zero.
    """
    command = Constants.NIX_SEARCH_COMMAND
    logger.info("Running package index query: %s", " ".join(command))
    with Timer() as t:
        try:
            result = subprocess.run(command, capture_output=True, check=False)  # noqa: S603
        except OSError as exc:
            raise CacheFetchError(f"failed to run nix search command: {exc}") from exc
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise CacheFetchError(
            f"nix search exited with status {result.returncode}: {stderr}"
        )
    if is_debug_enabled(logger):
        logger.debug(
            "Index query finished",
            extra=extra_context(
                event="fetch",
                component="index",
                action="nix_search",
                outcome="success",
                duration_ms=t.duration_ms(),
            ),
        )
    logger.info("Completed nix search command")
    return result.stdout


def detect_platform(system: Optional[str] = None, machine: Optional[str] = None) -> Platforms:
    """Map the running OS/architecture onto a supported nix system.

    Raises:
        UnsupportedPlatformError: For any combination outside Constants.SYSTEM_MAP.
    """
    system = system if system is not None else platform.system()
    machine = machine if machine is not None else platform.machine()
    found = Constants.SYSTEM_MAP.get((system, machine.lower()))
    if found is None:
        raise UnsupportedPlatformError(system, machine)
    return found


def platform_prefix(nix_system: Platforms) -> str:
    """Key prefix the query uses on this platform, e.g. ``legacyPackages.x86_64-linux.``."""
    return f"{Constants.LEGACY_PACKAGES}.{nix_system.value}."


def normalize_key(key: str, prefix: str) -> str:
    """Rewrite a platform-qualified key onto the canonical ``pkgs.`` scheme."""
    if key.startswith(prefix):
        return f"{Constants.CANONICAL_PREFIX}.{key[len(prefix):]}"
    return key


def _entry_from_record(key: str, record: Any) -> IndexEntry:
    if not isinstance(record, dict):
        raise CacheFetchError(f"malformed index record for {key!r}")
    try:
        return IndexEntry(
            description=str(record.get("description") or ""),
            short_name=str(record["pname"]),
            version=str(record.get("version") or ""),
        )
    except KeyError as exc:
        raise CacheFetchError(f"index record for {key!r} has no {exc}") from exc


def parse_index(raw: bytes, nix_system: Platforms) -> PackageIndex:
    """Decode the query's JSON output into a canonical-keyed index.

    Raises:
        CacheFetchError: If the output is not a JSON object of package records.
    """
    try:
        data: Dict[str, Any] = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise CacheFetchError(f"could not parse nix search output: {exc}") from exc
    if not isinstance(data, dict):
        raise CacheFetchError("nix search output is not a JSON object")

    prefix = platform_prefix(nix_system)
    index: PackageIndex = {}
    for key, record in data.items():
        index[normalize_key(key, prefix)] = _entry_from_record(key, record)
    return index
