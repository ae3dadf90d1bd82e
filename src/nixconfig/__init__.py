"""Nix configuration support.

This package provides the home-manager document handling:
- syntax.py: tree-sitter parsing of Nix source
- document.py: ConfigDocument and package list lookup
- editor.py: formatting-preserving insert/remove of list entries
- resolver.py: short-name resolution against the index or the document
"""

from .document import ConfigDocument  # noqa: F401
from .editor import insert_packages, remove_packages  # noqa: F401
from .resolver import DocumentResolver, IndexResolver, resolve_all  # noqa: F401

__all__ = [
    "ConfigDocument",
    "insert_packages",
    "remove_packages",
    "DocumentResolver",
    "IndexResolver",
    "resolve_all",
]
