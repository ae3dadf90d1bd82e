"""Formatting-preserving insert/remove of package list entries.

The list node is flattened into segments: its tokens, elements and comments,
with the raw whitespace between them as gap segments. Both operations are
pure functions over that sequence; the edited segments replace the list's
byte range and the result is re-parsed, so the only textual difference
between input and output is the touched entries and the whitespace directly
in front of them.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from tree_sitter import Node

from common.errors import DocumentParseError, EditError
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from nixconfig.document import ConfigDocument
from nixconfig.syntax import COMMENT_TYPE, LIST_TYPE, body_of, node_text, parse_source, significant_children

logger = logging.getLogger(__name__)

GAP = "gap"
ELEMENT = "element"
COMMENT = "comment"
PUNCT = "punct"

Segment = Tuple[str, str]

_ENTRY_TYPES = ("variable_expression", "select_expression")


def list_segments(source: bytes, package_list: Node) -> Tuple[Segment, ...]:
    """Split a list node into segments whose concatenation is its source text."""
    segments: List[Segment] = []
    position = package_list.start_byte
    for child in package_list.children:
        if child.start_byte > position:
            segments.append((GAP, source[position:child.start_byte].decode("utf-8")))
        if child.type == COMMENT_TYPE:
            kind = COMMENT
        elif child.is_named:
            kind = ELEMENT
        else:
            kind = PUNCT
        segments.append((kind, node_text(source, child)))
        position = child.end_byte
    return tuple(segments)


def render(segments: Iterable[Segment]) -> str:
    return "".join(text for _kind, text in segments)


def newline_style(segments: Iterable[Segment], fallback: str = "") -> str:
    """``"\\r\\n"`` when the list (or, lacking line breaks, ``fallback``) uses CRLF."""
    gaps = [text for kind, text in segments if kind == GAP and "\n" in text]
    sample = "".join(gaps) if gaps else fallback
    return "\r\n" if "\r\n" in sample else "\n"


def _entry_text(key: str) -> str:
    """Check that a canonical key parses as a single list element."""
    source = f"[ {key} ]".encode("utf-8")
    try:
        tree = parse_source(source)
    except DocumentParseError as exc:
        raise EditError(f"'{key}' is not a valid list entry: {exc}") from exc
    package_list = body_of(tree.root_node)
    elements = []
    if package_list is not None and package_list.type == LIST_TYPE:
        elements = significant_children(package_list)
    if len(elements) != 1 or elements[0].type not in _ENTRY_TYPES or node_text(source, elements[0]) != key:
        raise EditError(f"'{key}' is not a valid list entry")
    return key


def _closing_index(segments: Tuple[Segment, ...]) -> int:
    for index in range(len(segments) - 1, -1, -1):
        if segments[index] == (PUNCT, "]"):
            return index
    raise EditError("package list has no closing bracket")


def insertion_index(segments: Tuple[Segment, ...]) -> int:
    """Where a new entry goes: before ``]``, or before the line break that precedes it."""
    index = _closing_index(segments)
    if index > 0:
        kind, text = segments[index - 1]
        if kind == GAP and "\n" in text:
            index -= 1
    return index


def insert_entries(segments: Tuple[Segment, ...], keys: Iterable[str], indent: int = Constants.ENTRY_INDENT, newline: str = "\n") -> Tuple[Segment, ...]:
    """Add each key not already an element, on its own line, keeping order."""
    present = {text for kind, text in segments if kind == ELEMENT}
    separator = (GAP, newline + " " * indent)
    for key in keys:
        if key in present:
            continue
        present.add(key)
        entry = (ELEMENT, _entry_text(key))
        index = insertion_index(segments)
        segments = segments[:index] + (separator, entry) + segments[index:]
    return segments


def _leading_separator(segments: Tuple[Segment, ...], index: int) -> Optional[str]:
    if index == 0:
        return None
    kind, text = segments[index - 1]
    if kind == GAP and "\n" in text:
        return text
    return None


def remove_entries(segments: Tuple[Segment, ...], keys: Iterable[str]) -> Tuple[Segment, ...]:
    """Drop elements whose text equals a key, with the line break before them.

    Whitespace before the first line break of that separator belongs to the
    previous line and is kept.
    """
    targets = set(keys)
    drops: List[int] = []
    keeps = {}
    for index, (kind, text) in enumerate(segments):
        if kind != ELEMENT or text not in targets:
            continue
        drops.append(index)
        separator = _leading_separator(segments, index)
        if separator is not None:
            head = separator[:separator.index("\n")]
            if head.endswith("\r"):
                head = head[:-1]
            if head:
                keeps[index - 1] = (GAP, head)
            else:
                drops.append(index - 1)

    edited = list(segments)
    for index, segment in keeps.items():
        edited[index] = segment
    offset = 0
    for index in sorted(set(drops)):
        del edited[index - offset]
        offset += 1
    return tuple(edited)


def _edit(document: ConfigDocument, action: str, keys: List[str]) -> Optional[ConfigDocument]:
    package_list = document.package_list()
    if package_list is None:
        logger.error("No package list '%s' found in document", document.attr_path)
        return None
    segments = list_segments(document.source, package_list)
    if action == "insert":
        newline = newline_style(segments, document.text())
        edited = insert_entries(segments, keys, newline=newline)
    else:
        edited = remove_entries(segments, keys)
    result = document.splice(package_list.start_byte, package_list.end_byte, render(edited))
    if is_debug_enabled(logger):
        logger.debug(
            "Package list edited",
            extra=extra_context(
                event="edit",
                component="editor",
                action=action,
                count=len(keys),
            ),
        )
    return result


def insert_packages(document: ConfigDocument, keys: Iterable[str]) -> Optional[ConfigDocument]:
    """Insert entries before the list's closing bracket.

    New lines follow the list's own line ending style.

    Returns:
        The re-parsed document, or None when the document has no package list.
    """
    return _edit(document, "insert", list(keys))


def remove_packages(document: ConfigDocument, keys: Iterable[str]) -> Optional[ConfigDocument]:
    """Remove every entry whose text exactly matches one of ``keys``.

    Returns:
        The re-parsed document, or None when the document has no package list.
    """
    return _edit(document, "remove", list(keys))
