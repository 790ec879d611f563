"""Tests for ``@css`` literal splicing."""

import pytest

from stylast import CssSyntaxError, parse
from stylast.model import Input, Position
from stylast.parser.literal import remap, splice_css_literal


class TestRemap:
    def test_first_line_is_shifted(self) -> None:
        assert remap(Position(6, 1, 7), 1, 3) == (1, 9)

    def test_later_lines_keep_their_column(self) -> None:
        assert remap(Position(6, 1, 7), 3, 2) == (3, 2)

    def test_body_starting_on_a_later_line(self) -> None:
        assert remap(Position(20, 4, 7), 2, 5) == (5, 5)


class TestSplice:
    def test_offsets_are_shifted(self) -> None:
        root = splice_css_literal("a { b: c }", Position(10, 2, 5), Input(css=""))
        rule = root.first
        assert rule.source.start == Position(10, 2, 5)
        decl = rule.first
        assert decl.source.start == Position(14, 2, 9)

    def test_error_location_is_outer(self) -> None:
        with pytest.raises(CssSyntaxError) as exc_info:
            splice_css_literal("\n  a", Position(6, 1, 7), Input(css="", file="x.styl"))
        error = exc_info.value
        assert error.line == 2
        assert error.file == "x.styl"


class TestLiteralInStylus:
    def test_inline_literal(self) -> None:
        root = parse("@css { a { color: red } }")
        literal = root.first
        assert literal.name == "css"
        assert literal.raws["between"] == " "
        rule = literal.first
        assert rule.selector == "a"
        assert rule.source.start.column == 8
        assert literal.raws["after"] == " "

    def test_nested_media(self) -> None:
        root = parse("@css {\n  @media print {\n    a { b: c }\n  }\n}\n")
        media = root.first.first
        assert (media.name, media.params) == ("media", "print")
        assert media.first.selector == "a"
        assert media.first.source.start.line == 3

    def test_empty_literal(self) -> None:
        literal = parse("@css {}").first
        assert literal.nodes == []
        assert literal.source.end_children is None

    def test_invalid_css(self) -> None:
        with pytest.raises(CssSyntaxError) as exc_info:
            parse("@css {\n  a\n}\n", file="x.styl")
        error = exc_info.value
        assert error.line == 2
        assert error.file == "x.styl"

    def test_literal_braces_do_not_end_stylus_blocks(self) -> None:
        root = parse(".a\n  @css {\n    b { c: d }\n  }\n  e f\n")
        rule = root.first
        assert [type(n).__name__ for n in rule.nodes] == ["AtRule", "Declaration"]
        assert rule.last.prop == "e"
