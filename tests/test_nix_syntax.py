"""Tests for the tree-sitter Nix parsing helpers."""
import pytest

from common.errors import DocumentParseError
from nixconfig.syntax import attrpath_names, body_of, get_parser, node_text, parse_source, significant_children


class TestParseSource:
    """parse_source"""

    def test_parser_is_shared(self):
        assert get_parser() is get_parser()

    def test_valid_source(self):
        tree = parse_source(b"{ pkgs, ... }: { home.packages = [ ]; }")
        assert tree.root_node.type == "source_code"
        assert body_of(tree.root_node).type == "function_expression"

    def test_unclosed_attrset_reports_line(self):
        with pytest.raises(DocumentParseError, match="line"):
            parse_source(b"{\n  home.packages = [ a ];\n")

    def test_error_position_is_one_based(self):
        with pytest.raises(DocumentParseError) as excinfo:
            parse_source(b"{ a = ; }")
        assert "line 1" in str(excinfo.value)


class TestHelpers:
    """Attribute names and children"""

    def _binding(self, text):
        source = text.encode("utf-8")
        attrset = body_of(parse_source(source).root_node)
        binding_set = significant_children(attrset)[0]
        return source, significant_children(binding_set)[0]

    def test_attrpath_names(self):
        source, binding = self._binding('{ a.b."c" = 1; }')
        assert attrpath_names(source, binding.child_by_field_name("attrpath")) == ["a", "b", "c"]

    def test_interpolated_name_is_none(self):
        source, binding = self._binding('{ ${x}.y = 1; }')
        assert attrpath_names(source, binding.child_by_field_name("attrpath")) == [None, "y"]

    def test_significant_children_skip_comments(self):
        source = b"[ a # note\n  pkgs.b ]"
        package_list = body_of(parse_source(source).root_node)
        assert [node_text(source, c) for c in significant_children(package_list)] == ["a", "pkgs.b"]
