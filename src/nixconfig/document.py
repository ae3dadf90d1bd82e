"""Parsed home-manager configuration document and package list lookup."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from tree_sitter import Node, Tree

from common.errors import DocumentParseError, DocumentWriteError
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from nixconfig.syntax import (
    ATTRSET_TYPES,
    LIST_TYPE,
    SCOPING_TYPES,
    attrpath_names,
    body_of,
    node_text,
    parse_source,
    significant_children,
)

logger = logging.getLogger(__name__)

# Constructs traversed while looking for the configuration's base attribute set.
_BASE_TYPES = SCOPING_TYPES | {"source_code", "function_expression"}


def descend_to(node: Optional[Node], types, through=SCOPING_TYPES) -> Optional[Node]:
    """Walk through scoping constructs until a node of ``types``.

    Returns the first match, or None when some other kind of node is reached.
    """
    while node is not None:
        if node.type in types:
            return node
        if node.type not in through:
            return None
        node = body_of(node)
    return None


def find_config_base(root: Node) -> Optional[Node]:
    """Locate the attribute set a module evaluates to (``{ ... }: { ... }``)."""
    return descend_to(root, ATTRSET_TYPES, through=_BASE_TYPES)


def _bindings(attr_set: Node) -> List[Node]:
    bindings = []
    for child in significant_children(attr_set):
        if child.type == "binding_set":
            bindings.extend(c for c in child.named_children if c.type == "binding")
    return bindings


def find_attr(source: bytes, attr_set: Node, names: Sequence[str]) -> Optional[Node]:
    """Find the value bound to ``names`` inside ``attr_set``.

    Handles both ``home.packages = ...;`` and nested forms such as
    ``home = { packages = ...; };``.
    """
    wanted = list(names)
    for binding in _bindings(attr_set):
        attrpath = binding.child_by_field_name("attrpath")
        value = binding.child_by_field_name("expression")
        if attrpath is None or value is None:
            continue
        keys = attrpath_names(source, attrpath)
        if keys == wanted:
            return value
        if len(keys) < len(wanted) and keys == wanted[:len(keys)]:
            nested = descend_to(value, ATTRSET_TYPES)
            if nested is None:
                continue
            found = find_attr(source, nested, wanted[len(keys):])
            if found is not None:
                return found
    return None


def find_list(source: bytes, root: Node, attr_path: str) -> Optional[Node]:
    """The list literal bound at ``attr_path``, through scoping constructs."""
    base = find_config_base(root)
    if base is None:
        return None
    value = find_attr(source, base, attr_path.split("."))
    return descend_to(value, (LIST_TYPE,))


class ConfigDocument:
    """Immutable parsed configuration file.

    Edits never mutate an instance; :meth:`splice` replaces a byte range of
    the source and parses the result into a new document.
    """

    def __init__(self, source: bytes, tree: Tree, attr_path: str = Constants.PACKAGES_ATTR_PATH, path: Optional[str] = None):
        self._source = source
        self._tree = tree
        self._attr_path = attr_path
        self._path = path

    @classmethod
    def from_text(cls, text: str, attr_path: str = Constants.PACKAGES_ATTR_PATH, path: Optional[str] = None) -> "ConfigDocument":
        """Parse ``text``; raises DocumentParseError on syntax errors."""
        source = text.encode("utf-8")
        try:
            tree = parse_source(source)
        except DocumentParseError as exc:
            if path and exc.path is None:
                raise DocumentParseError(str(exc), path=path) from exc
            raise
        return cls(source, tree, attr_path, path)

    @classmethod
    def load(cls, path: str, attr_path: str = Constants.PACKAGES_ATTR_PATH) -> "ConfigDocument":
        """Read and parse a configuration file that must contain the package list.

        Raises:
            DocumentParseError: If the file is unreadable, malformed, or has no
                list bound at ``attr_path``.
        """
        logger.info("Reading config file: %s", path)
        try:
            # newline="" keeps CRLF line endings intact.
            with open(path, "r", encoding="utf-8", newline="") as handle:
                text = handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentParseError(f"cannot read file: {exc}", path=path) from exc

        document = cls.from_text(text, attr_path, path)
        if document.package_list() is None:
            raise DocumentParseError(
                f"no list literal bound to '{attr_path}' was found", path=path
            )
        if is_debug_enabled(logger):
            logger.debug(
                "Config parsed",
                extra=extra_context(
                    event="parse",
                    component="document",
                    action="load",
                    target=path,
                    count=len(document.entries()),
                ),
            )
        return document

    @property
    def root(self) -> Node:
        return self._tree.root_node

    @property
    def source(self) -> bytes:
        return self._source

    @property
    def attr_path(self) -> str:
        return self._attr_path

    @property
    def path(self) -> Optional[str]:
        return self._path

    def text(self) -> str:
        return self._source.decode("utf-8")

    def __str__(self) -> str:
        return self.text()

    def node_text(self, node: Node) -> str:
        return node_text(self._source, node)

    def package_list(self) -> Optional[Node]:
        return find_list(self._source, self.root, self._attr_path)

    def entries(self) -> List[str]:
        """Source text of every element of the package list."""
        package_list = self.package_list()
        if package_list is None:
            return []
        return [self.node_text(child) for child in significant_children(package_list)]

    def splice(self, start: int, end: int, replacement: str) -> "ConfigDocument":
        """Replace source bytes ``start:end`` and re-parse into a fresh document."""
        text = (
            self._source[:start] + replacement.encode("utf-8") + self._source[end:]
        ).decode("utf-8")
        return ConfigDocument.from_text(text, self._attr_path, self._path)

    def write(self, path: Optional[str] = None) -> None:
        """Overwrite ``path`` (default: the file it was loaded from) with this text."""
        target = path or self._path
        if not target:
            raise DocumentWriteError("document has no file path to write to")
        try:
            with open(target, "w", encoding="utf-8", newline="") as handle:
                handle.write(self.text())
        except OSError as exc:
            raise DocumentWriteError(f"could not write config file {target}: {exc}") from exc
        logger.info("Wrote config file: %s", target)
