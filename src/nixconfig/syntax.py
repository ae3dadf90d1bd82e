"""Tree-sitter access for Nix sources.

Parsing is delegated to the ``nix`` grammar shipped with
tree-sitter-language-pack. Trees are only read; edits are made on the source
text and the result is parsed again.
"""

from __future__ import annotations

import logging
from typing import List, Optional

try:
    from tree_sitter import Node, Parser, Tree
    from tree_sitter_language_pack import get_language
except ImportError as e:
    raise ImportError(
        "tree-sitter-language-pack is required. "
        "Install with: pip install tree-sitter tree-sitter-language-pack"
    ) from e

from common.errors import DocumentParseError

logger = logging.getLogger(__name__)

LANGUAGE = "nix"

# Constructs whose value is their body expression.
SCOPING_TYPES = frozenset(
    [
        "with_expression",
        "let_expression",
        "assert_expression",
        "parenthesized_expression",
    ]
)
ATTRSET_TYPES = frozenset(["attrset_expression", "rec_attrset_expression"])
LIST_TYPE = "list_expression"
COMMENT_TYPE = "comment"

_parser: Optional[Parser] = None


def get_parser() -> Parser:
    """Shared parser for the Nix grammar."""
    global _parser  # pylint: disable=global-statement
    if _parser is None:
        _parser = Parser(get_language(LANGUAGE))
        logger.debug("Loaded %s parser", LANGUAGE)
    return _parser


def _first_error(node: Node) -> Optional[Node]:
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error(child)
            if found is not None:
                return found
    return None


def parse_source(source: bytes) -> Tree:
    """Parse UTF-8 Nix source.

    Raises:
        DocumentParseError: With the line and column of the first syntax error.
    """
    tree = get_parser().parse(source)
    root = tree.root_node
    if root.has_error:
        bad = _first_error(root) or root
        row, column = bad.start_point
        what = f"missing '{bad.type}'" if bad.is_missing else "syntax error"
        raise DocumentParseError(f"line {row + 1}, column {column + 1}: {what}")
    return tree


def node_text(source: bytes, node: Node) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8")


def significant_children(node: Node) -> List[Node]:
    """Named children with comments left out."""
    return [child for child in node.named_children if child.type != COMMENT_TYPE]


def body_of(node: Node) -> Optional[Node]:
    """The expression a lambda or scoping construct evaluates to (its last child)."""
    children = significant_children(node)
    return children[-1] if children else None


def attr_name(source: bytes, node: Node) -> Optional[str]:
    """Static name of one attribute path segment; None for interpolated ones."""
    if node.type == "identifier":
        return node_text(source, node)
    if node.type == "string_expression":
        parts = []
        for child in significant_children(node):
            if child.type != "string_fragment":
                return None
            parts.append(node_text(source, child))
        return "".join(parts)
    return None


def attrpath_names(source: bytes, attrpath: Node) -> List[Optional[str]]:
    return [attr_name(source, child) for child in significant_children(attrpath)]
