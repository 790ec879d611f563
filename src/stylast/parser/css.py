"""Plain CSS parser producing unified nodes, used for ``@css`` literals.

Tokenizing and block matching is done by tinycss2; the raws are then cut
from the original text using the source positions tinycss2 reports.
"""

from __future__ import annotations

import re
from bisect import bisect_right

import tinycss2
import tinycss2.ast as c2ast

from stylast.errors import CssSyntaxError
from stylast.model.nodes import (
    AtRule,
    Comment,
    Container,
    Declaration,
    Input,
    Position,
    Root,
    Rule,
    Source,
    raw_value,
)

# tinycss2 counts lines after normalizing every line break to "\n".
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n|\f")
_COMMENT_RE = re.compile(r"/\*[\s\S]*?\*/")
_DECLARATION_RE = re.compile(r"(?P<prop>[^:]*?)(?P<between>\s*:\s*)")
_IMPORTANT_RE = re.compile(r"\s*!\s*important\s*\Z", re.IGNORECASE)
_TERMINATOR_RE = re.compile(r";[\s;]*\Z")

# At-rules whose block holds rules rather than declarations.
RULE_LIST_AT_RULES = frozenset(
    {"media", "supports", "document", "container", "layer", "scope", "starting-style"}
)


class CssParser:
    """Parses one CSS text into a :class:`Root`."""

    def __init__(self, css: str, input: Input | None = None):
        self.css = css
        self.input = input
        self.line_starts = [0] + [m.end() for m in _LINE_BREAK_RE.finditer(css)]

    # ---- positions -------------------------------------------------------

    def _offset(self, node: c2ast.Node) -> int:
        return self.line_starts[node.source_line - 1] + node.source_column - 1

    def _position(self, offset: int) -> Position:
        line = bisect_right(self.line_starts, offset)
        return Position(
            offset=offset, line=line, column=offset - self.line_starts[line - 1] + 1
        )

    def _source(self, start: int, end: int) -> Source:
        return Source(self.input, start=self._position(start), end=self._position(end))

    def _error(self, message: str, node: c2ast.Node) -> CssSyntaxError:
        return CssSyntaxError(message, line=node.source_line, column=node.source_column)

    # ---- entry point -----------------------------------------------------

    def parse(self) -> Root:
        root = Root(source=Source(self.input, start=Position(0, 1, 1)))
        if self.css:
            root.source.end = self._position(len(self.css) - 1)
        items = tinycss2.parse_stylesheet(
            self.css, skip_comments=False, skip_whitespace=False
        )
        root.raws["after"] = self._children(root, items, len(self.css))
        root.settle_semicolon()
        return root

    def _children(self, container: Container, items: list, end: int) -> str:
        """Append the nodes of ``items`` to ``container``.

        ``end`` is the offset right after the last item. Returns the
        whitespace left after the last node.
        """
        pending = ""
        offsets = [self._offset(item) for item in items]
        for i, item in enumerate(items):
            start = offsets[i]
            item_end = (offsets[i + 1] if i + 1 < len(items) else end) - 1
            kind = item.type
            if kind == "error":
                raise self._error(item.message, item)
            if kind == "whitespace" or (kind == "literal" and item.value == ";"):
                pending += self.css[start : item_end + 1]
                continue
            if kind == "comment":
                node = self._comment(start, item_end)
                trailing = ""
            elif kind == "qualified-rule":
                node = self._rule(item, start, item_end)
                trailing = ""
            elif kind == "at-rule":
                node, trailing = self._at_rule(item, start, item_end)
            elif kind == "declaration":
                node, trailing = self._declaration(item, start, item_end)
            else:
                raise self._error("Unknown word", item)
            node.raws["before"] = pending
            pending = trailing
            container.append(node)
        return pending

    # ---- nodes -----------------------------------------------------------

    def _comment(self, start: int, end: int) -> Comment:
        close = self.css.find("*/", start + 2, end + 1)
        if close == -1:
            raise CssSyntaxError("Unclosed comment", *self._line_column(start))
        end = close + 1
        contents = self.css[start + 2 : close]
        text = contents.strip()
        if text:
            left = contents[: len(contents) - len(contents.lstrip())]
            right = contents[len(contents.rstrip()) :]
        else:
            left, right = contents, ""
        return Comment(
            source=self._source(start, end),
            raws={"left": left, "right": right},
            text=text,
        )

    def _line_column(self, offset: int) -> tuple[int, int]:
        position = self._position(offset)
        return position.line, position.column

    def _block_start(self, item: c2ast.Node, end: int) -> int:
        """Offset of the ``{`` opening the block of a rule or at-rule."""
        if self.css[end] != "}":
            raise self._error("Unclosed block", item)
        if item.content:
            return self._offset(item.content[0]) - 1
        return end - 1

    def _block_children(
        self, node: Container, item: c2ast.Node, brace: int, end: int, rules: bool
    ) -> None:
        if rules:
            items = tinycss2.parse_rule_list(
                item.content, skip_comments=False, skip_whitespace=False
            )
        else:
            items = tinycss2.parse_blocks_contents(
                item.content, skip_comments=False, skip_whitespace=False
            )
        node.nodes = []
        node.source.start_children = self._position(brace + 1)
        if end - 1 > brace:
            node.source.end_children = self._position(end - 1)
        node.raws["after"] = self._children(node, items, end)
        node.settle_semicolon()

    def _rule(self, item: c2ast.QualifiedRule, start: int, end: int) -> Rule:
        brace = self._block_start(item, end)
        prelude = self.css[start:brace]
        selector_raw = prelude.rstrip()
        selector = _COMMENT_RE.sub("", selector_raw).strip()
        rule = Rule(
            source=self._source(start, end),
            raws={"between": prelude[len(selector_raw) :]},
            selector=selector,
        )
        raw = raw_value(selector, selector_raw, selector_raw)
        if raw is not None:
            rule.raws["selector"] = raw
        self._block_children(rule, item, brace, end, rules=False)
        return rule

    def _at_rule(self, item: c2ast.AtRule, start: int, end: int) -> tuple[AtRule, str]:
        name_end = start + 1 + len(item.at_keyword)
        trailing = ""
        if item.content is None:
            semicolon = self.css[end] == ";"
            if semicolon:
                header_end = end
            else:
                span = self.css[start : end + 1]
                stripped = span.rstrip()
                trailing = span[len(stripped) :]
                end = start + len(stripped) - 1
                header_end = end + 1
            region = self.css[name_end:header_end]
        else:
            semicolon = False
            brace = self._block_start(item, end)
            region = self.css[name_end:brace]

        params_raw = region.strip()
        if params_raw:
            after_name = region[: len(region) - len(region.lstrip())]
            between = region[len(region.rstrip()) :]
        else:
            after_name = ""
            between = region
        params = _COMMENT_RE.sub("", params_raw).strip()
        at_rule = AtRule(
            source=self._source(start, end),
            raws={"after_name": after_name, "between": between},
            name=item.at_keyword,
            params=params,
            omitted_semicolon=item.content is None and not semicolon,
        )
        raw = raw_value(params, params_raw, params_raw)
        if raw is not None:
            at_rule.raws["params"] = raw
        if item.content is not None:
            rules = item.lower_at_keyword in RULE_LIST_AT_RULES
            self._block_children(at_rule, item, brace, end, rules=rules)
        return at_rule, trailing

    def _declaration(
        self, item: c2ast.Declaration, start: int, end: int
    ) -> tuple[Declaration, str]:
        span = self.css[start : end + 1]
        terminator = _TERMINATOR_RE.search(span)
        if terminator:
            body = span[: terminator.start()]
            trailing = span[terminator.start() + 1 :]
            decl_end = start + terminator.start()
        else:
            body = span.rstrip()
            trailing = span[len(body) :]
            decl_end = start + len(body) - 1
        match = _DECLARATION_RE.match(body)
        if match is None:
            raise self._error("Unknown word", item)
        rest = body[match.end() :]
        important = _IMPORTANT_RE.search(rest)
        value_raw = rest[: important.start()] if important else rest
        value = _COMMENT_RE.sub("", value_raw).strip()
        decl = Declaration(
            source=self._source(start, decl_end),
            raws={"between": match.group("between")},
            prop=match.group("prop"),
            value=value,
            important=important is not None,
            omitted_semicolon=terminator is None,
        )
        raw = raw_value(value, value_raw, value_raw)
        if raw is not None:
            decl.raws["value"] = raw
        if important and important.group() != " !important":
            decl.raws["important"] = important.group()
        return decl, trailing


def parse_css(css: str, input: Input | None = None) -> Root:
    """Parse plain CSS into a unified :class:`Root`.

    Raises:
        CssSyntaxError: on an unclosed block or comment, or on anything
            tinycss2 reports as invalid.
    """
    return CssParser(css, input).parse()
