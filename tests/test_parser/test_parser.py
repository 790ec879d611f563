"""Tests for the Stylus to unified AST translation."""

from pathlib import Path

import pytest

from stylast import (
    AtRule,
    Comment,
    Declaration,
    ParseOptions,
    Root,
    Rule,
    Severity,
    StylusSyntaxError,
    UnsupportedConstructError,
    parse,
)
from stylast.model import RawValue
from stylast.parser import UNSUPPORTED_KINDS, StylusParser
from stylast.stylus import NodeKind

FIXTURES = Path(__file__).parent.parent / "fixtures"


# ---------------------------------------------------------------------------
# Fixture helpers
# ---------------------------------------------------------------------------


def _load(name: str) -> Root:
    return parse((FIXTURES / name).read_text(), file=name)


def _types(container) -> list[type]:
    return [type(node) for node in container.nodes]


# ---------------------------------------------------------------------------
# Fixture file tests
# ---------------------------------------------------------------------------


class TestBasicFixture:
    @pytest.fixture()
    def root(self) -> Root:
        return _load("basic.styl")

    def test_top_level_nodes(self, root: Root) -> None:
        assert _types(root) == [Declaration, AtRule, Comment, Rule, Rule, Rule]

    def test_line_comment_kept_in_before(self, root: Root) -> None:
        decl = root.first
        assert decl.raws["before"] == "\n"
        assert decl.raws["stylus_before"] == "// Site styles\n"

    def test_assignment(self, root: Root) -> None:
        decl = root.first
        assert decl.assignment
        assert (decl.prop, decl.value) == ("$primary", "#333")
        assert decl.raws["between"] == " = "

    def test_conditional_assignment(self, root: Root) -> None:
        at_rule = root.nodes[1]
        assert at_rule.expression
        assert (at_rule.name, at_rule.params) == ("$spacing", "?= 4px")

    def test_block_comment(self, root: Root) -> None:
        comment = root.nodes[2]
        assert comment.text == "Layout"
        assert comment.raws["before"] == "\n\n"

    def test_indented_rule(self, root: Root) -> None:
        body = root.nodes[3]
        assert body.selector == "body"
        assert body.pythonic
        assert [(d.prop, d.value) for d in body.nodes] == [
            ("font", "14px/1.4 sans-serif"),
            ("color", "$primary"),
        ]

    def test_brace_rule(self, root: Root) -> None:
        rule = root.nodes[4]
        assert rule.selector == ".header, .footer"
        assert not rule.pythonic
        assert rule.raws["semicolon"] is True
        margin = rule.last
        assert margin.value == "0 auto"
        assert margin.important

    def test_nested_rule(self, root: Root) -> None:
        rule = root.nodes[5]
        assert _types(rule) == [Declaration, Rule]
        assert rule.last.selector == "&:hover"
        assert rule.last.parent is rule

    def test_root_after(self, root: Root) -> None:
        assert root.raws["after"] == "\n"


class TestControlFixture:
    @pytest.fixture()
    def root(self) -> Root:
        return _load("control.styl")

    def test_conditional_chain(self, root: Root) -> None:
        branches = root.nodes[:3]
        assert [(b.name, b.params) for b in branches] == [
            ("if", "$dark"),
            ("else", "if $light"),
            ("else", ""),
        ]
        assert all(b.pythonic for b in branches)
        assert all(b.raws["identifier"] == "" for b in branches)

    def test_branch_bodies(self, root: Root) -> None:
        values = [b.first.first.value for b in root.nodes[:3]]
        assert values == ["black", "white", "gray"]

    def test_loop(self, root: Root) -> None:
        loop = root.nodes[3]
        assert (loop.name, loop.params) == ("for", "i in 1..3")
        assert not loop.postfix
        rule = loop.first
        assert rule.selector == ".col-{i}"
        assert rule.first.value == "(i * 10)%"

    def test_postfix_conditionals(self, root: Root) -> None:
        button = root.nodes[4]
        first, call, last = button.nodes
        assert first.postfix and last.postfix
        assert (first.name, first.params) == ("if", "$danger")
        assert (last.name, last.params) == ("unless", "$enabled")
        assert first.first.value == "red"
        assert last.first.value == "0.5"

    def test_mixin_call(self, root: Root) -> None:
        call = root.nodes[4].nodes[1]
        assert call.call
        assert not call.call_block_mixin
        assert call.raws["identifier"] == "+"
        assert (call.name, call.params) == ("border-radius", "(4px)")

    def test_last_statement_without_semicolon(self, root: Root) -> None:
        assert root.nodes[4].raws["semicolon"] is False


class TestFunctionsFixture:
    @pytest.fixture()
    def root(self) -> Root:
        return _load("functions.styl")

    def test_top_level_nodes(self, root: Root) -> None:
        assert _types(root) == [AtRule, AtRule, Declaration, Rule]

    def test_opaque_function(self, root: Root) -> None:
        function = root.first
        assert function.function
        assert function.nodes is None
        assert (function.name, function.params) == ("add", "(a, b)")
        assert function.body == "{\n    return a + b\n}"

    def test_mixin(self, root: Root) -> None:
        mixin = root.nodes[1]
        assert mixin.mixin
        assert not mixin.function
        assert [d.prop for d in mixin.nodes] == ["-webkit-border-radius", "border-radius"]

    def test_block_assignment(self, root: Root) -> None:
        decl = root.nodes[2]
        assert decl.assignment
        assert decl.prop == "size"
        assert decl.value == "@block\n  width 10px\n  height 10px"

    def test_interpolation_statement(self, root: Root) -> None:
        box = root.nodes[3]
        padding, interpolation = box.nodes
        assert padding.value == "add(1px, 2px)"
        assert interpolation.expression
        assert (interpolation.name, interpolation.params) == ("", "{size}")


class TestSelectorsFixture:
    @pytest.fixture()
    def root(self) -> Root:
        return _load("selectors.styl")

    def test_selectors(self, root: Root) -> None:
        assert [r.selector for r in root.nodes] == [
            "ul li a,\nul li span",
            ".a,\n.b",
            "nav.main,\n.side",
        ]

    def test_inserted_comma_keeps_original(self, root: Root) -> None:
        raw = root.nodes[1].raws["selector"]
        assert raw == RawValue(value=".a,\n.b", raw=".a,\n.b", stylus=".a\n.b")

    def test_segments(self, root: Root) -> None:
        assert root.first.segments == [(0, 8), (9, 18)]


class TestExpressionsFixture:
    @pytest.fixture()
    def root(self) -> Root:
        return _load("expressions.styl")

    def test_top_level_nodes(self, root: Root) -> None:
        assert _types(root) == [Declaration, AtRule, Declaration, Rule, AtRule, AtRule]

    def test_compound_assignment(self, root: Root) -> None:
        at_rule = root.nodes[1]
        assert at_rule.expression
        assert (at_rule.name, at_rule.params) == ("$i", "+= 1")

    def test_ternary_value(self, root: Root) -> None:
        assert root.nodes[2].value == "$i > 0 ? true : false"

    def test_interpolated_selector(self, root: Root) -> None:
        assert root.nodes[3].selector == "{$selector}"

    def test_member_expression(self, root: Root) -> None:
        member = root.nodes[4]
        assert member.expression
        assert member.name == "foo.bar"

    def test_call_expression(self, root: Root) -> None:
        call = root.nodes[5]
        assert call.call
        assert (call.name, call.params) == ("mixin-call", "(1, 2)")


class TestMediaFixture:
    @pytest.fixture()
    def root(self) -> Root:
        return _load("media.styl")

    def test_media(self, root: Root) -> None:
        media = root.first
        assert (media.name, media.params) == ("media", "screen and (max-width: 600px)")
        assert media.pythonic
        assert media.first.selector == ".nav"

    def test_bodiless_at_rules(self, root: Root) -> None:
        imported, charset = root.nodes[1:3]
        assert (imported.name, imported.params) == ("import", '"reset"')
        assert imported.nodes is None
        assert imported.omitted_semicolon
        assert (charset.name, charset.params) == ("charset", '"utf-8"')
        assert not charset.omitted_semicolon

    def test_keyframes(self, root: Root) -> None:
        keyframes = root.nodes[3]
        assert (keyframes.name, keyframes.params) == ("keyframes", "spin")
        assert [r.selector for r in keyframes.nodes] == ["from", "to"]
        assert keyframes.nodes[1].first.value == "rotate(360deg)"


class TestLiteralFixture:
    @pytest.fixture()
    def root(self) -> Root:
        return _load("literal.styl")

    def test_literal_at_rule(self, root: Root) -> None:
        literal = root.first
        assert literal.name == "css"
        assert not literal.pythonic
        rule = literal.first
        assert rule.selector == ".raw > a"
        assert rule.parent is literal
        assert rule.first.value == "red"

    def test_positions_point_into_outer_text(self, root: Root) -> None:
        rule = root.first.first
        assert (rule.source.start.line, rule.source.start.column) == (2, 3)
        assert rule.source.start.offset == 9
        decl = rule.first
        assert (decl.source.start.line, decl.source.start.column) == (2, 14)
        assert decl.source.start.offset == 20

    def test_following_rule(self, root: Root) -> None:
        rule = root.nodes[1]
        assert rule.selector == ".after"
        assert rule.raws["before"] == "\n\n"


# ---------------------------------------------------------------------------
# Rules and declarations
# ---------------------------------------------------------------------------


class TestIndentedRule:
    @pytest.fixture()
    def root(self) -> Root:
        return parse(".foo\n  color red\n")

    def test_rule(self, root: Root) -> None:
        rule = root.first
        assert rule.selector == ".foo"
        assert rule.pythonic
        assert rule.raws["between"] == ""
        assert rule.raws["before"] == ""

    def test_declaration(self, root: Root) -> None:
        decl = root.first.first
        assert (decl.prop, decl.value) == ("color", "red")
        assert decl.raws["before"] == "\n  "
        assert decl.raws["between"] == ": "
        assert decl.raws["stylus_between"] == " "
        assert decl.omitted_semicolon

    def test_positions(self, root: Root) -> None:
        rule = root.first
        assert rule.source.end.offset == 15
        decl = rule.first
        assert (decl.source.start.line, decl.source.start.column) == (2, 3)
        assert decl.source.start.offset == 7

    def test_semicolon_settled(self, root: Root) -> None:
        assert root.first.raws["semicolon"] is False


class TestBraceRule:
    @pytest.fixture()
    def root(self) -> Root:
        return parse(".foo { color: red; }")

    def test_raws(self, root: Root) -> None:
        rule = root.first
        assert not rule.pythonic
        assert rule.raws["between"] == " "
        assert rule.raws["after"] == " "
        assert rule.raws["semicolon"] is True

    def test_declaration(self, root: Root) -> None:
        decl = root.first.first
        assert decl.raws["before"] == " "
        assert decl.raws["between"] == ": "
        assert "stylus_between" not in decl.raws
        assert not decl.omitted_semicolon

    def test_positions(self, root: Root) -> None:
        rule = root.first
        assert rule.source.end.offset == 19
        assert rule.source.start_children.offset == 6
        assert rule.source.end_children.offset == 18

    def test_own_semicolon(self) -> None:
        rule = parse(".a { b: c };\n").first
        assert rule.raws["own_semicolon"] == ";"
        assert rule.has_own_semicolon


class TestStraySemicolons:
    def test_after_own_semicolon(self) -> None:
        root = parse(".a { b: c };;\n")
        rule = root.first
        assert rule.raws["own_semicolon"] == ";"
        assert rule.raws["after"] == " "
        assert rule.source.end.offset == 11
        assert root.raws["after"] == ";\n"

    def test_inside_brace_block(self) -> None:
        rule = parse(".a { b: c;; }").first
        assert rule.raws["after"] == "; "
        assert not rule.first.omitted_semicolon

    def test_end_of_indented_block(self) -> None:
        root = parse(".a\n  b c;;\n")
        assert root.first.source.end.offset == 8
        assert root.raws["after"] == ";\n"

    def test_after_declaration(self) -> None:
        root = parse("b c;;\n")
        assert root.first.source.end.offset == 3
        assert root.raws["after"] == ";\n"

    def test_after_at_rule(self) -> None:
        root = parse("@import 'x';;\n")
        assert root.first.source.end.offset == 11
        assert root.raws["after"] == ";\n"

    def test_between_declarations(self) -> None:
        rule = parse(".a\n  b c;;\n  d e\n").first
        assert rule.last.raws["before"] == ";\n  "


class TestDeclarationPositions:
    def test_inline(self) -> None:
        decl = parse(".foo { color: red }").first.first
        assert decl.source.start.offset == 7
        assert (decl.source.start.line, decl.source.start.column) == (1, 8)
        assert decl.source.end.offset == 16

    def test_semicolon_ends_declaration(self) -> None:
        decl = parse("a: b;").first
        assert decl.source.end.offset == 4


class TestSelectorGroups:
    def test_comma_list_over_lines(self) -> None:
        rule = parse("a,\nb\n  color red\n").first
        assert rule.selector == "a,\nb"
        assert "selector" not in rule.raws
        assert rule.segments == [(0, 2), (3, 3)]

    def test_selector_with_line_comment(self) -> None:
        rule = parse(".a // c\n  color red\n").first
        assert rule.selector == ".a"
        decl = rule.first
        assert decl.raws["before"] == " \n  "
        assert decl.raws["stylus_before"] == " // c\n  "

    def test_member_lines_are_not_merged_into_other_statements(self) -> None:
        root = parse("foo.bar\nbaz(1)\n")
        assert [n.name for n in root.nodes] == ["foo.bar", "baz"]


class TestImportant:
    def test_unusual_spacing_kept(self) -> None:
        decl = parse("a: b  !important").first
        assert decl.important
        assert decl.value == "b"
        assert decl.raws["important"] == "  !important"


# ---------------------------------------------------------------------------
# At-rules
# ---------------------------------------------------------------------------


class TestAtRules:
    def test_conditional(self) -> None:
        at_rule = parse("if x\n  color red\n").first
        assert (at_rule.name, at_rule.params) == ("if", "x")
        assert at_rule.raws["identifier"] == ""
        assert at_rule.raws["after_name"] == " "
        assert at_rule.pythonic

    def test_brace_conditional_with_else(self) -> None:
        root = parse("if x {\n  a: b;\n} else {\n  c: d;\n}\n")
        branch, other = root.nodes
        assert not branch.pythonic
        assert other.name == "else"
        assert other.raws["before"] == " "
        assert other.raws["between"] == " "

    def test_media_with_braces(self) -> None:
        media = parse("@media print {\n  .a { b: c }\n}\n").first
        assert not media.pythonic
        assert media.raws["between"] == " "
        assert media.first.selector == ".a"

    def test_generic_at_rule(self) -> None:
        at_rule = parse("@font-face\n  font-family foo\n").first
        assert at_rule.name == "font-face"
        assert at_rule.first.prop == "font-family"

    def test_empty_brace_block(self) -> None:
        media = parse("@media print {}").first
        assert media.nodes == []
        assert media.source.end_children is None


class TestPostfix:
    @pytest.fixture()
    def at_rule(self) -> AtRule:
        return parse("color red if x").first

    def test_at_rule(self, at_rule: AtRule) -> None:
        assert at_rule.postfix
        assert (at_rule.name, at_rule.params) == ("if", "x")
        assert at_rule.raws["before"] == ""
        assert at_rule.raws["postfix_before"] == " "
        assert at_rule.omitted_semicolon

    def test_subject(self, at_rule: AtRule) -> None:
        decl = at_rule.first
        assert (decl.prop, decl.value) == ("color", "red")
        assert decl.raws["between"] == ": "
        assert decl.raws["stylus_between"] == " "
        assert decl.parent is at_rule

    def test_loop(self) -> None:
        at_rule = parse("color red for i in 1..3").first
        assert at_rule.postfix
        assert (at_rule.name, at_rule.params) == ("for", "i in 1..3")

    def test_terminated(self) -> None:
        root = parse("a {\n  color: red if x;\n}\n")
        at_rule = root.first.first
        assert not at_rule.omitted_semicolon
        assert at_rule.first.value == "red"


class TestFunctions:
    def test_opaque_function(self) -> None:
        function = parse("add(a, b)\n  return a + b\n").first
        assert function.function
        assert function.raws["identifier"] == ""
        assert function.body == "{\n    return a + b\n}"
        assert function.raws["body"].stylus is None
        assert function.raws["body"].raw == "\n  return a + b"

    def test_line_comment_keeps_mixin(self) -> None:
        mixin = parse("f()\n  // doc\n  color red\n").first
        assert mixin.mixin
        assert not mixin.function

    def test_block_comment_makes_function_opaque(self) -> None:
        function = parse("f()\n  /* doc */\n  color red\n").first
        assert function.function
        assert function.body == "{\n    /* doc */\n    color red\n}"

    def test_mixin(self) -> None:
        mixin = parse("foo()\n  color red\n").first
        assert mixin.mixin
        assert (mixin.name, mixin.params) == ("foo", "()")
        assert mixin.pythonic

    def test_block_mixin_call(self) -> None:
        call = parse("+foo()\n  color red\n").first
        assert call.call
        assert call.call_block_mixin
        assert call.first.value == "red"


class TestExpressions:
    def test_assignment(self) -> None:
        decl = parse("$x = 10px").first
        assert decl.assignment
        assert (decl.prop, decl.value) == ("$x", "10px")
        assert decl.raws["between"] == " = "

    def test_empty_assignment(self) -> None:
        decl = parse("$x =").first
        assert decl.assignment
        assert decl.value == ""

    def test_compound_assignment(self) -> None:
        at_rule = parse("$i += 1").first
        assert at_rule.expression
        assert (at_rule.name, at_rule.params) == ("$i", "+= 1")

    def test_interpolation(self) -> None:
        at_rule = parse("{foo}").first
        assert at_rule.expression
        assert (at_rule.name, at_rule.params) == ("", "{foo}")

    def test_empty_braces(self) -> None:
        rule = parse("{}").first
        assert isinstance(rule, Rule)
        assert rule.selector == ""

    def test_binop(self) -> None:
        at_rule = parse("$a == $b").first
        assert at_rule.expression
        assert (at_rule.name, at_rule.params) == ("$a", "== $b")

    def test_ternary(self) -> None:
        at_rule = parse("$a ? b : c").first
        assert at_rule.expression
        assert at_rule.params == "? b : c"

    def test_call(self) -> None:
        at_rule = parse("foo(1)").first
        assert at_rule.call
        assert at_rule.raws["identifier"] == ""


class TestComments:
    @pytest.fixture()
    def root(self) -> Root:
        return parse("/* hi */\n.a\n  color red // note\n")

    def test_comment_node(self, root: Root) -> None:
        comment = root.first
        assert comment.text == "hi"
        assert (comment.raws["left"], comment.raws["right"]) == (" ", " ")

    def test_trailing_line_comment(self, root: Root) -> None:
        assert root.last.first.value == "red"
        assert root.raws["after"] == " \n"
        assert root.raws["stylus_after"] == " // note\n"

    def test_empty_comment(self) -> None:
        comment = parse("/**/").first
        assert comment.text == ""
        assert comment.raws["left"] == ""


# ---------------------------------------------------------------------------
# Empty input and options
# ---------------------------------------------------------------------------


class TestEmptyInput:
    def test_empty(self) -> None:
        root = parse("")
        assert root.nodes == []
        assert root.raws == {"after": ""}

    def test_only_comments(self) -> None:
        root = parse("// a\n\n")
        assert root.nodes == []
        assert root.raws["after"] == "\n\n"
        assert root.raws["stylus_after"] == "// a\n\n"


class TestFileOption:
    def test_keyword_overrides_options(self) -> None:
        root = parse("a b", file="x.styl", options=ParseOptions(file="y.styl"))
        assert root.source.input.file == "x.styl"

    def test_nodes_share_input(self) -> None:
        root = parse(".a\n  b c\n", file="x.styl")
        assert root.first.first.source.input is root.source.input


# ---------------------------------------------------------------------------
# Errors and diagnostics
# ---------------------------------------------------------------------------


class TestErrors:
    def test_unclosed_block(self) -> None:
        with pytest.raises(StylusSyntaxError, match="Unclosed block") as exc_info:
            parse(".a {\n  color: red\n", file="x.styl")
        error = exc_info.value
        assert (error.line, error.column, error.file) == (1, 4, "x.styl")
        assert str(error) == "x.styl:1:4: Unclosed block"

    def test_unclosed_string(self) -> None:
        with pytest.raises(StylusSyntaxError, match="Unclosed string"):
            parse('a "b')

    def test_depth_limit(self) -> None:
        text = "a\n  b\n    c\n      d e\n"
        with pytest.raises(StylusSyntaxError, match="maximum depth"):
            parse(text, options=ParseOptions(max_depth=2))


class TestDiagnostics:
    def test_orphan_else_is_skipped(self) -> None:
        root = parse("else\n  color red\n")
        assert root.nodes == []
        [diagnostic] = root.diagnostics
        assert diagnostic.code == "unsupported-construct"
        assert diagnostic.severity is Severity.WARNING
        assert (diagnostic.line, diagnostic.column) == (1, 1)
        assert "else" in diagnostic.message

    def test_top_level_return_is_skipped(self) -> None:
        root = parse(".a\n  b c\nreturn 1\n")
        assert len(root.nodes) == 1
        assert len(root.diagnostics) == 1
        assert root.diagnostics[0].line == 3

    def test_unknown_expression_is_kept(self) -> None:
        root = parse("foo\n")
        [diagnostic] = root.diagnostics
        assert "Unknown expression" in diagnostic.message
        assert root.first.expression
        assert root.first.name == "foo"

    def test_clean_input_has_no_diagnostics(self) -> None:
        assert _load("basic.styl").diagnostics == []

    def test_strict_mode_raises(self) -> None:
        options = ParseOptions(strict=True, file="x.styl")
        with pytest.raises(UnsupportedConstructError) as exc_info:
            parse("a b\nelse\n  color red\n", options=options)
        error = exc_info.value
        assert (error.line, error.column, error.file) == (2, 1, "x.styl")


class TestDispatch:
    def test_every_supported_kind_has_a_visitor(self) -> None:
        for kind in NodeKind:
            if kind in UNSUPPORTED_KINDS:
                continue
            assert hasattr(StylusParser, f"visit_{kind.value}"), kind

    def test_parser_instance_keeps_diagnostics(self) -> None:
        parser = StylusParser("return 1")
        root = parser.parse()
        assert parser.diagnostics is root.diagnostics
        assert parser.root is root
