"""On-disk snapshot of the package index with age-based refresh.

The snapshot is stored as msgpack rather than the query's JSON so that later
loads skip the expensive re-parse of the full nixpkgs listing.
"""

from __future__ import annotations

import logging
import os
import time
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

import msgpack

from common.errors import CacheIOError
from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants, Platforms
from pkgindex.fetch import Fetcher, detect_platform, fetch_index_raw, parse_index
from pkgindex.models import IndexEntry, PackageIndex

logger = logging.getLogger(__name__)


def encode_index(index: PackageIndex) -> bytes:
    """Serialize an index into the versioned msgpack envelope."""
    packages = {
        key: {
            "description": entry.description,
            "pname": entry.short_name,
            "version": entry.version,
        }
        for key, entry in index.items()
    }
    return msgpack.packb(
        {"schema": Constants.CACHE_SCHEMA_VERSION, "packages": packages},
        use_bin_type=True,
    )


def decode_index(payload: bytes) -> Optional[PackageIndex]:
    """Deserialize a snapshot; None when it was written by another schema version.

    Raises:
        CacheIOError: If the payload is not a readable snapshot.
    """
    try:
        data: Dict[str, Any] = msgpack.unpackb(payload, raw=False)
    except (ValueError, TypeError, msgpack.exceptions.UnpackException) as exc:
        raise CacheIOError(f"cache file is corrupt: {exc}") from exc
    if not isinstance(data, dict):
        raise CacheIOError("cache file does not contain a package map")
    if data.get("schema") != Constants.CACHE_SCHEMA_VERSION:
        return None
    packages = data.get("packages")
    if not isinstance(packages, dict):
        raise CacheIOError("cache file does not contain a package map")
    try:
        return {
            key: IndexEntry(
                description=record["description"],
                short_name=record["pname"],
                version=record["version"],
            )
            for key, record in packages.items()
        }
    except (KeyError, TypeError) as exc:
        raise CacheIOError(f"cache file has a malformed record: {exc}") from exc


class PackageIndexCache:
    """Fetch-or-load access to the package index snapshot.

    Args:
        fetcher: Callable returning the raw index query output.
        nix_system: Platform whose key prefix gets normalized; detected when None.
        clock: Source of the current time in epoch seconds.
    """

    def __init__(
        self,
        fetcher: Fetcher = fetch_index_raw,
        nix_system: Optional[Platforms] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._fetcher = fetcher
        self._nix_system = nix_system
        self._clock = clock

    def load(self, path: str, max_age: timedelta) -> PackageIndex:
        """Return the index, refreshing the snapshot at ``path`` when missing or stale.

        A snapshot exactly ``max_age`` old is still fresh.

        Raises:
            CacheFetchError: If a refresh was needed and the query failed.
            CacheIOError: If the snapshot cannot be read or written.
        """
        logger.info("Attempting to read cache: %s", path)
        if not os.path.exists(path):
            logger.info("Cache does not exist")
            return self.refresh(path)

        try:
            modified = os.path.getmtime(path)
        except OSError as exc:
            raise CacheIOError(f"could not stat cache file {path}: {exc}") from exc
        age = self._clock() - modified
        if age > max_age.total_seconds():
            logger.info("Cache is %.1f minutes old, updating cache", age / 60.0)
            return self.refresh(path)

        index = self.read(path)
        if index is None:
            logger.info("Cache was written by another schema version, updating cache")
            return self.refresh(path)
        return index

    def read(self, path: str) -> Optional[PackageIndex]:
        """Read the snapshot at ``path``; None if its schema version differs."""
        with Timer() as t:
            try:
                with open(path, "rb") as handle:
                    payload = handle.read()
            except OSError as exc:
                raise CacheIOError(f"could not read cache file {path}: {exc}") from exc
            index = decode_index(payload)
        if is_debug_enabled(logger) and index is not None:
            logger.debug(
                "Cache loaded",
                extra=extra_context(
                    event="cache_hit",
                    component="index",
                    action="read",
                    target=path,
                    count=len(index),
                    duration_ms=t.duration_ms(),
                ),
            )
        return index

    def refresh(self, path: str) -> PackageIndex:
        """Fetch a fresh index, persist it to ``path`` and return it."""
        nix_system = self._nix_system or detect_platform()
        index = parse_index(self._fetcher(), nix_system)
        logger.info("Fetched %d packages for %s", len(index), nix_system.value)
        self.write(path, index)
        return index

    def write(self, path: str, index: PackageIndex) -> None:
        """Persist ``index``, creating missing parent directories."""
        logger.info("Saving cache to file: %s", path)
        try:
            parent = os.path.dirname(os.path.abspath(path))
            os.makedirs(parent, exist_ok=True)
            with open(path, "wb") as handle:
                handle.write(encode_index(index))
        except OSError as exc:
            raise CacheIOError(f"failed to write cache file {path}: {exc}") from exc
        logger.info("Successfully wrote cache file")
