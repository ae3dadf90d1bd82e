"""Package index support.

This package provides the nixpkgs index handling:
- models.py: IndexEntry, SearchResult and the PackageIndex mapping
- fetch.py: nix search invocation and platform key normalization
- cache.py: msgpack snapshot with age-based refresh
- search.py: relevance-ranked lookup of canonical names
"""

from .cache import PackageIndexCache  # noqa: F401
from .fetch import fetch_index_raw  # noqa: F401
from .models import IndexEntry, PackageIndex, SearchResult  # noqa: F401
from .search import search  # noqa: F401

__all__ = [
    "PackageIndexCache",
    "fetch_index_raw",
    "IndexEntry",
    "PackageIndex",
    "SearchResult",
    "search",
]
