"""Relevance-ranked search over the package index."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from pkgindex.models import IndexEntry, PackageIndex, SearchResult

logger = logging.getLogger(__name__)


def score_entry(key: str, entry: IndexEntry, terms: Sequence[str]) -> Optional[SearchResult]:
    """Score one entry; None when no term hits its description or short name.

    Each term contributes its length to the hits of every field it occurs in;
    scores are hits normalized by the field length.
    """
    description = entry.description.lower()
    short_name = entry.short_name.lower()
    desc_hits = 0
    key_hits = 0
    for term in terms:
        if term in description:
            desc_hits += len(term)
        if term in short_name:
            key_hits += len(term)
    if desc_hits + key_hits == 0:
        return None

    desc_score = desc_hits / len(entry.description) if desc_hits and entry.description else 0.0
    key_score = key_hits / len(entry.short_name) if key_hits and entry.short_name else 0.0
    return SearchResult(
        canonical_key=key,
        description=entry.description,
        short_name=entry.short_name,
        version=entry.version,
        desc_score=desc_score,
        key_score=key_score,
    )


def _rank(result: SearchResult):
    # key_score dominates, desc_score breaks ties, the key keeps output stable.
    return (-result.key_score, -result.desc_score, result.canonical_key)


def search(terms: Iterable[str], index: PackageIndex) -> List[SearchResult]:
    """Return every matching entry, best first."""
    folded = [term.lower() for term in terms if term]
    if not folded:
        return []
    results = [
        result
        for result in (score_entry(key, entry, folded) for key, entry in index.items())
        if result is not None
    ]
    results.sort(key=_rank)
    logger.info("%d matching results", len(results))
    return results
