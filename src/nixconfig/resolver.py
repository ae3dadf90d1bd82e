"""Short-name to canonical key resolution against the index or the document."""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Tuple

from constants import Constants
from nixconfig.document import ConfigDocument

logger = logging.getLogger(__name__)


class NameResolver:
    """Resolve a short name by exact key first, then ``pkgs.<name>``.

    Subclasses only decide what counts as a known key.
    """

    prefix = Constants.CANONICAL_PREFIX

    def has_key(self, key: str) -> bool:
        raise NotImplementedError

    def candidates(self, short_name: str) -> Tuple[str, str]:
        return short_name, f"{self.prefix}.{short_name}"

    def resolve(self, short_name: str) -> Optional[str]:
        exact, qualified = self.candidates(short_name)
        if self.has_key(exact):
            return exact
        if self.has_key(qualified):
            logger.info("Found full package name for '%s': %s", short_name, qualified)
            return qualified
        logger.debug("No full package name found for '%s'", short_name)
        return None


class IndexResolver(NameResolver):
    """Resolve names against the keys of a package index."""

    def __init__(self, index: Mapping[str, object]):
        self._index = index

    def has_key(self, key: str) -> bool:
        return key in self._index


class DocumentResolver(NameResolver):
    """Resolve names against the entries already in the package list."""

    def __init__(self, document: ConfigDocument):
        self._entries = frozenset(document.entries())

    def has_key(self, key: str) -> bool:
        return key in self._entries


def resolve_all(resolver: NameResolver, names: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Partition requested names into (resolved keys, unresolved names), keeping order."""
    resolved: List[str] = []
    unresolved: List[str] = []
    for name in names:
        key = resolver.resolve(name)
        if key is None:
            unresolved.append(name)
        else:
            resolved.append(key)
    return resolved, unresolved
