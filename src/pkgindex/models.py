"""Data models for the package index and search results."""

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class IndexEntry:
    """One installable package as reported by the index query."""
    description: str
    short_name: str  # nix "pname"
    version: str


@dataclass(frozen=True)
class SearchResult:
    """Scored match of an index entry against search terms."""
    canonical_key: str
    description: str
    short_name: str
    version: str
    desc_score: float
    key_score: float


# Canonical key ("pkgs.<attr.path>") -> entry.
PackageIndex = Dict[str, IndexEntry]
