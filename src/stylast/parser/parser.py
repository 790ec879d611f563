"""Translation of the Stylus tree into the unified CSS AST.

Each Stylus node kind has a ``visit_<kind>`` method. The visitors only decide
which unified node a construct becomes; extents and raws are recovered from
the text by the scanners and the block resolver.
"""

from __future__ import annotations

import logging

from stylast.config import ParseOptions
from stylast.errors import StylusSyntaxError, UnsupportedConstructError
from stylast.model.diagnostic import Diagnostic, Severity
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
from stylast.parser.block import BlockInfo, block_end_index, resolve_block
from stylast.parser.classify import (
    is_interpolation,
    is_mixin_function,
    is_selector_continuation,
)
from stylast.parser.cursor import Cursor
from stylast.parser.literal import splice_css_literal
from stylast.parser.scanners import (
    RawText,
    css_literal_indices,
    scan_after,
    scan_at_rule_header,
    scan_before,
    scan_expression,
    scan_function,
    scan_prop,
    scan_selector,
    scan_value,
    selector_end_index,
)
from stylast.parser.source_code import SourceCode
from stylast.stringifier.css import block_text
from stylast.stylus import NodeKind, StylusNode, build_tree, tokenize

logger = logging.getLogger(__name__)

# Kinds that never reach the dispatcher in a well formed tree: they only
# appear nested inside a construct handled as a whole.
UNSUPPORTED_KINDS = frozenset(
    {
        NodeKind.ROOT,
        NodeKind.BLOCK,
        NodeKind.ELSE,
        NodeKind.RETURN,
        NodeKind.ATBLOCK,
        NodeKind.MEMBER,
        NodeKind.NULL,
    }
)


def _deepest_last(node: StylusNode) -> StylusNode:
    """The last node, at any depth, written inside ``node``."""
    while True:
        if node.kind is NodeKind.GROUP and node.nodes:
            node = node.nodes[-1]
            continue
        if node.kind is NodeKind.ATBLOCK:
            children = node.nodes
        elif node.kind is NodeKind.IDENT and node.val is not None:
            children = node.val.block.nodes if node.val.block is not None else []
        elif node.kind is NodeKind.IF and node.elses and not node.postfix:
            last = node.elses[-1]
            children = last.block.nodes if last.block is not None else []
        elif node.block is not None and not node.postfix:
            children = node.block.nodes
        else:
            children = []
        if not children:
            return node
        node = children[-1]


class StylusParser:
    """Translates one Stylus text into a :class:`Root`.

    A parser instance is used for a single parse; it carries the selector
    accumulator and the diagnostics of that run.
    """

    def __init__(self, text: str, options: ParseOptions | None = None):
        self.text = text
        self.options = options or ParseOptions()
        self.input = Input(css=text, file=self.options.file)
        self.diagnostics: list[Diagnostic] = []
        self.source: SourceCode | None = None
        self.root: Root | None = None
        self._selector_stack: list[StylusNode] = []

    def parse(self) -> Root:
        try:
            tokens = tokenize(self.text)
            tree = build_tree(self.text, tokens, max_depth=self.options.max_depth)
        except StylusSyntaxError as e:
            raise self.input.error(e.reason, e.line, e.column) from e
        self.source = SourceCode(self.text, tokens)
        self.root = self._stylesheet(tree)
        return self.root

    # ---- shared helpers --------------------------------------------------

    def _location(self, offset: int) -> Position:
        return self.source.location_of(offset)

    def _report(self, node: StylusNode, message: str) -> None:
        """Record an unsupported construct, or raise in strict mode."""
        location = self._location(self.source.index_of(node))
        if self.options.strict:
            raise UnsupportedConstructError(
                message,
                line=location.line,
                column=location.column,
                file=self.options.file,
            )
        logger.debug("%s at %d:%d", message, location.line, location.column)
        self.diagnostics.append(
            Diagnostic(
                code="unsupported-construct",
                severity=Severity.WARNING,
                message=message,
                line=location.line,
                column=location.column,
            )
        )

    def _parent_end(self, parent: Container) -> int:
        source = parent.source
        if source.end_children is not None:
            return source.end_children.offset
        if source.end is not None:
            return source.end.offset
        return len(self.text) - 1

    def _next_start(self, cursor: Cursor) -> int | None:
        following = cursor.next
        if following is None:
            return None
        return self.source.lexical_start(following)

    def _before(self, parent: Container, start: int) -> RawText:
        last = parent.last
        if last is not None:
            begin = last.source.end.offset + 1
        else:
            begin = (parent.source.start_children or parent.source.start).offset
        return scan_before(self.source, begin, start)

    def _postfix_before(self, parent: AtRule, cursor: Cursor, start: int) -> RawText:
        """``before`` of the subject of a postfix construct.

        The subject is written ahead of the postfix at-rule, so its preceding
        text is measured from the sibling before that at-rule.
        """
        container = cursor.parent.parent_node
        index = container.index(parent)
        if index > 0:
            begin = container.nodes[index - 1].source.end.offset + 1
        else:
            source = container.source
            begin = (source.start_children or source.start).offset
        return scan_before(self.source, begin, start)

    def _node_before(self, parent: Container, cursor: Cursor, start: int) -> RawText:
        if isinstance(parent, AtRule) and parent.postfix:
            return self._postfix_before(parent, cursor, start)
        return self._before(parent, start)

    def _postfix_bound(self, parent: Container) -> int | None:
        """Last offset available to the subject of a postfix at-rule."""
        if not (isinstance(parent, AtRule) and parent.postfix):
            return None
        gap = parent.raws.get("postfix_stylus_before", parent.raws["postfix_before"])
        return parent.source.start.offset - len(gap) - 1

    def _block_info(
        self,
        header_end: int,
        block: StylusNode,
        parent: Container,
        cursor: Cursor,
    ) -> BlockInfo:
        if block.nodes:
            window_end = self.source.lexical_start(block.nodes[0])
        else:
            window_end = self._parent_end(parent) + 1
        return resolve_block(
            self.source,
            header_end,
            window_end,
            self._parent_end(parent),
            self._next_start(cursor),
        )

    def _set_before(self, node, before: RawText) -> None:
        node.raws["before"] = before.css
        if before.differs:
            node.raws["stylus_before"] = before.stylus

    def _set_block_raws(self, node: Container, block: BlockInfo) -> None:
        node.source.start_children = self._location(block.body_start)
        node.source.end = self._location(block.end_index)
        if block.is_closed:
            node.raws["after"] = block.after.css
            if block.after.differs:
                node.raws["stylus_after"] = block.after.stylus
            if block.body_end >= block.body_start:
                node.source.end_children = self._location(block.body_end)
        if block.own_semicolon:
            node.raws["own_semicolon"] = block.own_semicolon

    def _children(
        self, block: StylusNode, node: Container, cursor: Cursor
    ) -> None:
        if node.nodes is None:
            node.nodes = []
        for i, child in enumerate(block.nodes):
            self._process(child, node, Cursor(block.nodes, i, cursor, node))

    # ---- dispatch --------------------------------------------------------

    def _process(self, node: StylusNode, parent: Container, cursor: Cursor) -> None:
        if node.kind in UNSUPPORTED_KINDS:
            self._report(node, f"The parsing of `{node.kind.value}` is not supported")
            return
        getattr(self, f"visit_{node.kind.value}")(node, parent, cursor)

    def _stylesheet(self, tree: StylusNode) -> Root:
        root = Root(
            source=Source(self.input, start=Position(0, 1, 1)),
            raws={"semicolon": False, "after": ""},
        )
        if self.text:
            root.source.end = self._location(len(self.text) - 1)
        for i, node in enumerate(tree.nodes):
            self._process(node, root, Cursor(tree.nodes, i, None, root))
        root.settle_semicolon()
        if root.nodes:
            after = scan_after(self.source, len(self.text) - 1, block_comment_is_raw=False)
        elif self.text:
            after = RawText(
                css=self.source.css_text(0, len(self.text) - 1), stylus=self.text
            )
            root.raws = {}
        else:
            after = RawText("", "")
            root.raws = {}
        root.raws["after"] = after.css
        if after.css != after.stylus:
            root.raws["stylus_after"] = after.stylus
        root.diagnostics = self.diagnostics
        return root

    # ---- selectors -------------------------------------------------------

    def visit_group(self, node: StylusNode, parent: Container, cursor: Cursor) -> None:
        for i, selector in enumerate(node.nodes):
            self._process(selector, parent, Cursor(node.nodes, i, cursor, parent))

    def visit_selector(
        self, node: StylusNode, parent: Container, cursor: Cursor
    ) -> None:
        sibling = cursor.next_sibling
        if sibling is not None and sibling.kind is NodeKind.SELECTOR:
            self._selector_stack.append(node)
            return
        selectors = [*self._selector_stack, node]
        self._selector_stack.clear()
        locations = []
        for i, selector in enumerate(selectors):
            start = self.source.index_of(selector)
            end = -1
            if i + 1 < len(selectors):
                end = self.source.index_of(selectors[i + 1]) - 1
            locations.append([start, end])
        header_end = selector_end_index(self.source, self.source.index_of(node))
        self._rule_impl(locations, header_end, node.block, parent, cursor)

    def _rule_impl(
        self,
        locations: list[list[int]],
        header_end: int,
        block_node: StylusNode,
        parent: Container,
        cursor: Cursor,
    ) -> Rule:
        block = self._block_info(header_end, block_node, parent, cursor)
        locations[-1][1] = block.start_index - 1
        selector = scan_selector(self.source, locations)
        start = locations[0][0]

        rule = Rule(
            source=Source(self.input, start=self._location(start)),
            raws={"between": selector.between.css, "semicolon": False, "after": ""},
            selector=selector.value,
            segments=[(s, e) for s, e in locations],
            pythonic=not block.has_brace,
        )
        self._set_before(rule, self._node_before(parent, cursor, start))
        if selector.between.differs:
            rule.raws["stylus_between"] = selector.between.stylus
        raw = raw_value(selector.value, selector.raw.stylus, selector.raw.css)
        if raw is not None:
            rule.raws["selector"] = raw
        self._set_block_raws(rule, block)

        parent.append(rule)
        self._children(block_node, rule, cursor)
        rule.settle_semicolon()
        return rule

    # ---- properties ------------------------------------------------------

    def visit_property(
        self, node: StylusNode, parent: Container, cursor: Cursor
    ) -> None:
        name = node.segments[0] if node.segments else node
        self._decl_impl(node, name, parent, cursor)

    def _decl_impl(
        self,
        node: StylusNode,
        prop_node: StylusNode,
        parent: Container,
        cursor: Cursor,
        atblock: StylusNode | None = None,
    ) -> Declaration:
        prop_start = self.source.index_of(prop_node)
        prop, prop_end = scan_prop(self.source, prop_start)
        min_end = None
        if atblock is not None and atblock.nodes:
            min_end = self.source.index_of(_deepest_last(atblock))
        value = scan_value(
            self.source, prop_end + 1, self._postfix_bound(parent), min_end
        )
        start = min(self.source.index_of(node), prop_start)

        decl = Declaration(
            source=Source(
                self.input,
                start=self._location(start),
                end=self._location(value.end_index),
            ),
            raws={"between": value.between.css},
            prop=prop,
            value=value.value,
            important=value.important is not None,
            omitted_semicolon=not value.semicolon,
        )
        self._set_before(decl, self._node_before(parent, cursor, start))
        if value.between.differs:
            decl.raws["stylus_between"] = value.between.stylus
        if value.important is not None and value.important != " !important":
            decl.raws["important"] = value.important
        raw = raw_value(value.value, value.raw.stylus, value.raw.css)
        if raw is not None:
            decl.raws["value"] = raw
        parent.append(decl)
        return decl

    # ---- at-rules --------------------------------------------------------

    def _atrule_impl(
        self,
        node: StylusNode,
        block_node: StylusNode | None,
        parent: Container,
        cursor: Cursor,
        postfix: bool = False,
    ) -> AtRule:
        """Translate a header with an optional block into an :class:`AtRule`.

        With ``postfix`` the block holds the subject written before the
        header (``color red if cond``); the subject becomes the only child.
        """
        start = self.source.index_of(node)
        bound = self._postfix_bound(parent)
        if bound is None and block_node is not None and not postfix and block_node.nodes:
            bound = self.source.lexical_start(block_node.nodes[0]) - 1
        header = scan_at_rule_header(self.source, start, bound)

        at_rule = AtRule(
            source=Source(self.input, start=self._location(start)),
            raws={"between": header.between.css, "after_name": header.after_name},
            name=header.name,
            params=header.params,
            postfix=postfix,
        )
        if header.identifier != "@":
            at_rule.raws["identifier"] = header.identifier
        raw = raw_value(header.params, header.raw.stylus, header.raw.css)
        if raw is not None:
            at_rule.raws["params"] = raw

        if postfix:
            gap = scan_after(self.source, start - 1)
            at_rule.raws["before"] = ""
            at_rule.raws["postfix_before"] = gap.css
            if gap.css != gap.stylus:
                at_rule.raws["postfix_stylus_before"] = gap.stylus
        else:
            self._set_before(at_rule, self._node_before(parent, cursor, start))

        if block_node is not None and not postfix:
            block = self._block_info(header.end_index, block_node, parent, cursor)
            at_rule.pythonic = not block.has_brace
            at_rule.raws.update(between=block.between.css, semicolon=False, after="")
            if block.between.differs:
                at_rule.raws["stylus_between"] = block.between.stylus
            self._set_block_raws(at_rule, block)
        else:
            at_rule.source.end = self._location(header.end_index)
            if header.between.differs:
                at_rule.raws["stylus_between"] = header.between.stylus
            if not header.semicolon:
                at_rule.omitted_semicolon = True

        parent.append(at_rule)
        if block_node is not None:
            self._children(block_node, at_rule, cursor)
            if not postfix:
                at_rule.settle_semicolon()
        return at_rule

    def visit_media(self, node: StylusNode, parent: Container, cursor: Cursor) -> None:
        self._atrule_impl(node, node.block, parent, cursor)

    visit_supports = visit_media
    visit_keyframes = visit_media
    visit_atrule = visit_media

    def visit_charset(
        self, node: StylusNode, parent: Container, cursor: Cursor
    ) -> None:
        self._atrule_impl(node, None, parent, cursor)

    visit_import = visit_charset
    visit_extend = visit_charset

    # ---- conditionals and loops ------------------------------------------

    def visit_if(self, node: StylusNode, parent: Container, cursor: Cursor) -> None:
        if node.postfix:
            self._atrule_impl(node, node.block, parent, cursor, postfix=True)
            return
        chain = [node, *node.elses]
        self._atrule_impl(node, node.block, parent, Cursor(chain, 0, cursor, parent))
        for i, branch in enumerate(node.elses, start=1):
            self._atrule_impl(
                branch, branch.block, parent, Cursor(chain, i, cursor, parent)
            )

    def visit_each(self, node: StylusNode, parent: Container, cursor: Cursor) -> None:
        postfix = False
        if node.block is not None and node.block.nodes:
            first = self.source.lexical_start(node.block.nodes[0])
            postfix = first < self.source.index_of(node)
        self._atrule_impl(node, node.block, parent, cursor, postfix=postfix)

    # ---- identifiers, functions and calls --------------------------------

    def visit_ident(self, node: StylusNode, parent: Container, cursor: Cursor) -> None:
        value = node.val
        if value is None:
            self._report(node, "Identifier without a value is not supported")
            return
        if (
            value.kind is NodeKind.EXPRESSION
            and value.nodes
            and value.nodes[0].kind is NodeKind.ATBLOCK
        ):
            decl = self._decl_impl(node, node, parent, cursor, atblock=value.nodes[0])
            decl.assignment = True
        elif value.kind is NodeKind.FUNCTION:
            self.visit_function(value, parent, cursor)
        elif value.kind in (NodeKind.EXPRESSION, NodeKind.NULL):
            self._decl_impl(node, node, parent, cursor).assignment = True
        elif value.kind is NodeKind.BINOP:
            self._atrule_impl(node, None, parent, cursor).expression = True
        else:
            self._report(node, f"Unknown identifier value `{value.kind.value}`")

    def visit_function(
        self, node: StylusNode, parent: Container, cursor: Cursor
    ) -> None:
        if is_mixin_function(node):
            self._atrule_impl(node, node.block, parent, cursor).mixin = True
            return
        start = self.source.index_of(node)
        end = block_end_index(self.source, self._parent_end(parent), self._next_start(cursor))
        function = scan_function(self.source, start, end)

        at_rule = AtRule(
            source=Source(
                self.input,
                start=self._location(start),
                end=self._location(function.end_index),
            ),
            raws={
                "between": function.between.css,
                "after_name": "",
                "identifier": "",
            },
            name=function.name,
            params=function.params,
            function=True,
            omitted_semicolon=True,
        )
        self._set_before(at_rule, self._node_before(parent, cursor, start))
        if function.between.differs:
            at_rule.raws["stylus_between"] = function.between.stylus
        raw = raw_value(function.params, function.raw.stylus, function.raw.css)
        if raw is not None:
            at_rule.raws["params"] = raw
        parent.append(at_rule)
        at_rule.body = block_text(function.body, at_rule.depth)
        raw = raw_value(at_rule.body, function.body_raw.stylus, function.body_raw.css)
        if raw is not None:
            at_rule.raws["body"] = raw

    def visit_call(self, node: StylusNode, parent: Container, cursor: Cursor) -> None:
        at_rule = self._atrule_impl(node, node.block, parent, cursor)
        at_rule.call = True
        at_rule.call_block_mixin = node.block is not None

    def visit_binop(self, node: StylusNode, parent: Container, cursor: Cursor) -> None:
        self._atrule_impl(node, node.block, parent, cursor).expression = True

    def visit_ternary(
        self, node: StylusNode, parent: Container, cursor: Cursor
    ) -> None:
        self._atrule_impl(node, None, parent, cursor).expression = True

    # ---- expressions -----------------------------------------------------

    def visit_expression(
        self, node: StylusNode, parent: Container, cursor: Cursor
    ) -> None:
        if node.is_empty:
            self._empty_rule_impl(node, parent, cursor)
            return
        if is_selector_continuation(node, cursor.nodes, cursor.index):
            self._selector_stack.append(node)
            return
        if is_interpolation(node, self.source):
            self._interpolation_impl(node, parent, cursor)
            return
        if len(node.nodes) == 1:
            kind = node.nodes[0].kind
            if kind is NodeKind.CALL:
                self._atrule_impl(node, None, parent, cursor).call = True
                return
            if kind in (NodeKind.BINOP, NodeKind.MEMBER):
                self._atrule_impl(node, None, parent, cursor).expression = True
                return
        first = node.nodes[0].kind.value if node.nodes else None
        self._report(node, f"Unknown expression `{first}`")
        self._atrule_impl(node, None, parent, cursor).expression = True

    def _empty_rule_impl(
        self, node: StylusNode, parent: Container, cursor: Cursor
    ) -> Rule:
        """``{}`` on its own: a rule with an empty selector."""
        start = self.source.index_of(node)
        expression = scan_expression(self.source, start)
        rule = Rule(
            source=Source(
                self.input,
                start=self._location(start),
                end=self._location(expression.end_index),
            ),
            raws={"between": "", "after": expression.inner.css},
        )
        self._set_before(rule, self._node_before(parent, cursor, start))
        if expression.inner.differs:
            rule.raws["stylus_after"] = expression.inner.stylus
        if expression.semicolon:
            rule.raws["own_semicolon"] = expression.between.stylus + ";"
        parent.append(rule)
        return rule

    def _interpolation_impl(
        self, node: StylusNode, parent: Container, cursor: Cursor
    ) -> AtRule:
        """``{expr}`` on its own: an expression with no name."""
        start = self.source.index_of(node)
        expression = scan_expression(self.source, start)
        at_rule = AtRule(
            source=Source(
                self.input,
                start=self._location(start),
                end=self._location(expression.end_index),
            ),
            raws={
                "between": expression.between.css,
                "after_name": "",
                "identifier": "",
            },
            params=expression.params,
            expression=True,
            omitted_semicolon=not expression.semicolon,
        )
        self._set_before(at_rule, self._node_before(parent, cursor, start))
        raw = raw_value(expression.params, expression.raw.stylus, expression.raw.css)
        if raw is not None:
            at_rule.raws["params"] = raw
        parent.append(at_rule)
        return at_rule

    # ---- comments and literals -------------------------------------------

    def visit_comment(
        self, node: StylusNode, parent: Container, cursor: Cursor
    ) -> None:
        start = self.source.index_of(node)
        token = self.source.token_at(start)
        contents = str(token)[2:-2]
        text = contents.strip()
        if text:
            left = contents[: len(contents) - len(contents.lstrip())]
            right = contents[len(contents.rstrip()) :]
        else:
            left, right = contents, ""
        comment = Comment(
            source=Source(
                self.input,
                start=self._location(start),
                end=self._location(token.end_pos - 1),
            ),
            raws={"left": left, "right": right},
            text=text,
        )
        self._set_before(comment, self._node_before(parent, cursor, start))
        parent.append(comment)

    def visit_literal(
        self, node: StylusNode, parent: Container, cursor: Cursor
    ) -> None:
        if not node.css:
            self._report(node, "Literal blocks other than @css are not supported")
            return
        start = self.source.index_of(node)
        opening, closing = css_literal_indices(self.source, start)
        header = scan_at_rule_header(self.source, start, opening - 1)
        nested = splice_css_literal(
            self.text[opening + 1 : closing],
            self._location(opening + 1),
            self.input,
        )
        between = RawText(
            css=self.source.css_text(header.end_index + 1, opening - 1),
            stylus=self.source.text_between(header.end_index + 1, opening - 1),
        )
        at_rule = AtRule(
            source=Source(
                self.input,
                start=self._location(start),
                end=self._location(closing),
                start_children=self._location(opening + 1),
            ),
            raws={
                "between": between.css,
                "after_name": header.after_name,
                "semicolon": nested.raws.get("semicolon", False),
                "after": nested.raws.get("after", ""),
            },
            name=header.name,
            params=header.params,
        )
        if closing - 1 > opening:
            at_rule.source.end_children = self._location(closing - 1)
        self._set_before(at_rule, self._node_before(parent, cursor, start))
        if between.differs:
            at_rule.raws["stylus_between"] = between.stylus
        parent.append(at_rule)
        at_rule.nodes = []
        for child in list(nested.nodes):
            at_rule.append(child)


_MISSING_VISITORS = [
    kind.value
    for kind in NodeKind
    if kind not in UNSUPPORTED_KINDS and not hasattr(StylusParser, f"visit_{kind.value}")
]
if _MISSING_VISITORS:
    raise TypeError(f"StylusParser lacks visitors for: {', '.join(_MISSING_VISITORS)}")


def parse(text: str, options: ParseOptions | None = None) -> Root:
    """Translate Stylus ``text`` into a unified :class:`Root`."""
    return StylusParser(text, options).parse()
