"""Assembles the Stylus tree from the token stream.

Statements end at a newline, ``;`` or ``}``. A statement owns a block when it
is followed by ``{`` or when the next line is indented deeper than the
statement's own line. Only start offsets are recorded on the nodes: the
translator recovers every extent from the text.

Lines that could be either a selector or a property (``a``, ``a:hover``)
are held back until the next statement is known. They become part of a
selector group when a selector with a block follows directly, and are read
as properties (or bare expressions) otherwise.
"""

from __future__ import annotations

import logging
import re

from lark import Token

from stylast.errors import StylusSyntaxError
from stylast.stylus.lexer import CLOSERS, COMMENTS, OPENERS, TRIVIA, tokenize
from stylast.stylus.nodes import NodeKind, StylusNode

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64

_AT_KINDS: dict[str, NodeKind] = {
    "media": NodeKind.MEDIA,
    "supports": NodeKind.SUPPORTS,
    "charset": NodeKind.CHARSET,
    "import": NodeKind.IMPORT,
    "require": NodeKind.IMPORT,
    "extend": NodeKind.EXTEND,
    "extends": NodeKind.EXTEND,
}
_BODILESS_KINDS = frozenset({NodeKind.CHARSET, NodeKind.IMPORT, NodeKind.EXTEND})
_KEYFRAMES_RE = re.compile(r"(?:-[a-z]+-)?keyframes\Z")

_IDENT_RE = re.compile(r"-*[_a-zA-Z$][\w$-]*\Z")
_MEMBER_RE = re.compile(r"[_a-zA-Z$][\w$-]*(?:\.[_a-zA-Z$][\w$-]*)+\Z")
_FUNCTION_NAME_RE = re.compile(r"\+?-*[_a-zA-Z$][\w$-]*\Z")
_NUMBER_RE = re.compile(r"-?\.?\d")

_POSTFIX_KEYWORDS = frozenset({"if", "unless", "for"})
_COMPOUND_OPERATORS = frozenset({"?", "+", "-", "*", "/", "%", "||", "&&"})
_WORD_OPERATORS = frozenset(
    {"and", "or", "is", "isnt", "not", "in", "%", "**", "..", "...", "&&", "||"}
)
_SYMBOL_OPERATORS = frozenset({"+", "-", "*", "<", ">", "<=", ">="})

Statement = list[Token]


def _is_adjacent(left: Token, right: Token) -> bool:
    return left.end_pos == right.start_pos


def _is_value_like(token: Token) -> bool:
    if token.type in ("STRING", "LPAR", "URL"):
        return True
    return token.type == "WORD" and (
        token.startswith("$") or bool(_NUMBER_RE.match(token))
    )


class TreeBuilder:
    """Builds a :class:`StylusNode` tree for one source text."""

    def __init__(
        self, text: str, tokens: list[Token], max_depth: int = DEFAULT_MAX_DEPTH
    ):
        self.text = text
        self.tokens = tokens
        self.max_depth = max_depth
        self.pos = 0
        self._first_on_line: list[bool] = []
        self._indent: list[int] = []
        self._index_lines()

    # ---- entry point -----------------------------------------------------

    def build(self) -> StylusNode:
        root = StylusNode(NodeKind.ROOT, 0)
        root.nodes = self._body(indent=-1, depth=0)
        token = self._peek()
        if token is not None:
            raise self._error(f"Unexpected {token.value!r}", token)
        return root

    # ---- token helpers ---------------------------------------------------

    def _index_lines(self) -> None:
        at_line_start = True
        indent = 0
        for token in self.tokens:
            if token.type == "NEWLINE":
                at_line_start = True
                indent = 0
                self._first_on_line.append(False)
            elif token.type == "WS" and at_line_start:
                indent = len(token)
                self._first_on_line.append(False)
            else:
                self._first_on_line.append(at_line_start)
                at_line_start = False
            self._indent.append(indent)

    def _peek(self) -> Token | None:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _skip(self, types: frozenset[str]) -> None:
        while self.pos < len(self.tokens) and self.tokens[self.pos].type in types:
            self.pos += 1

    def _next_significant(self, index: int) -> int | None:
        while index < len(self.tokens):
            if self.tokens[index].type not in TRIVIA:
                return index
            index += 1
        return None

    def _matching(self, index: int) -> int:
        """Index of the token closing the bracket opened at ``index``."""
        opener = self.tokens[index]
        closer = OPENERS[opener.type]
        depth = 0
        for i in range(index, len(self.tokens)):
            kind = self.tokens[i].type
            if kind == opener.type:
                depth += 1
            elif kind == closer:
                depth -= 1
                if depth == 0:
                    return i
        raise self._error(f"Unclosed {opener.value!r}", opener)

    def _error(self, message: str, token: Token | None) -> StylusSyntaxError:
        if token is None:
            return StylusSyntaxError(message)
        return StylusSyntaxError(message, line=token.line, column=token.column)

    # ---- bodies ----------------------------------------------------------

    def _body(self, indent: int | None, depth: int) -> list[StylusNode]:
        """Read statements until ``}``, end of input or a dedent.

        ``indent`` is the indentation of the line owning an indented body;
        None for brace bodies, which only end at ``}``.
        """
        if depth > self.max_depth:
            raise self._error(
                f"Nesting exceeds the maximum depth of {self.max_depth}",
                self._peek(),
            )
        nodes: list[StylusNode] = []
        pending: list[Statement] = []
        while True:
            self._skip(TRIVIA | {"SEMICOLON"})
            token = self._peek()
            if token is None or token.type == "RBRACE":
                break
            if (
                indent is not None
                and self._first_on_line[self.pos]
                and self._indent[self.pos] <= indent
            ):
                break
            line_indent = self._indent[self.pos]

            if token.type == "BLOCK_COMMENT":
                self._flush(pending, nodes)
                nodes.append(StylusNode(NodeKind.COMMENT, token.start_pos))
                self.pos += 1
                continue
            if token.type == "WORD" and token.lower() == "@css":
                self._flush(pending, nodes)
                nodes.append(self._literal())
                continue

            header = self._header()
            terminator = self._peek()
            block = self._block(line_indent, depth)
            statement = [t for t in header if t.type not in ("WS", "NEWLINE")]
            statement = [t for t in statement if t.type not in COMMENTS]
            if block is None:
                ended_by_semicolon = (
                    terminator is not None and terminator.type == "SEMICOLON"
                )
                node = self._classify(
                    statement, allow_pending=not ended_by_semicolon
                )
                if node is None:
                    pending.append(statement)
                    continue
            else:
                node = self._classify_block(statement, block)
                if node.kind is NodeKind.GROUP:
                    if pending:
                        node.nodes[:0] = [
                            selector
                            for segment in pending
                            for selector in self._selectors(segment, block)
                        ]
                        node.start = node.nodes[0].start
                        pending.clear()
                    nodes.append(node)
                    continue
            self._flush(pending, nodes)
            nodes.append(node)
            if node.kind is NodeKind.IF and not node.postfix:
                self._elses(node, line_indent, depth)
        self._flush(pending, nodes)
        return nodes

    def _flush(self, pending: list[Statement], nodes: list[StylusNode]) -> None:
        for statement in pending:
            nodes.append(self._settle(statement))
        pending.clear()

    def _header(self) -> list[Token]:
        """Collect the tokens of one statement header, stopping at its end."""
        header: list[Token] = []
        depth = 0
        while self.pos < len(self.tokens):
            token = self.tokens[self.pos]
            kind = token.type
            if depth == 0:
                if kind in ("NEWLINE", "LINE_COMMENT", "SEMICOLON", "RBRACE"):
                    break
                if kind == "LBRACE":
                    if not self._is_interpolation(header, self.pos):
                        break
                    end = self._matching(self.pos)
                    header.extend(self.tokens[self.pos : end + 1])
                    self.pos = end + 1
                    continue
            if kind in OPENERS:
                depth += 1
            elif kind in CLOSERS:
                if depth == 0:
                    raise self._error(f"Unexpected {token.value!r}", token)
                depth -= 1
            header.append(token)
            self.pos += 1
        if depth:
            opener = next(t for t in reversed(header) if t.type in OPENERS)
            raise self._error(f"Unclosed {opener.value!r}", opener)
        return header

    def _is_interpolation(self, header: list[Token], index: int) -> bool:
        """Whether the ``{`` at ``index`` opens ``{expr}`` rather than a block."""
        if not header:
            return True
        previous = header[-1]
        if previous.type == "WS" or not _is_adjacent(previous, self.tokens[index]):
            return False
        return self._is_simple_braces(index, allow_empty=False)

    def _is_simple_braces(self, index: int, allow_empty: bool) -> bool:
        try:
            end = self._matching(index)
        except StylusSyntaxError:
            return False
        inner = self.tokens[index + 1 : end]
        if not allow_empty and not any(t.type != "WS" for t in inner):
            return False
        return not any(
            t.type in ("NEWLINE", "SEMICOLON", "COLON", "LBRACE", "LINE_COMMENT")
            for t in inner
        )

    def _block(self, line_indent: int, depth: int) -> StylusNode | None:
        token = self._peek()
        if token is None or token.type in ("SEMICOLON", "RBRACE"):
            return None
        if token.type == "LBRACE":
            return self._brace_block(depth)
        index = self._next_significant(self.pos)
        if index is None:
            return None
        following = self.tokens[index]
        if following.type == "LBRACE" and not self._is_simple_braces(
            index, allow_empty=True
        ):
            self.pos = index
            return self._brace_block(depth)
        if (
            self._first_on_line[index]
            and self._indent[index] > line_indent
            and following.type != "RBRACE"
        ):
            nodes = self._body(indent=line_indent, depth=depth + 1)
            start = nodes[0].start if nodes else token.start_pos
            return StylusNode(NodeKind.BLOCK, start, nodes=nodes)
        return None

    def _brace_block(self, depth: int) -> StylusNode:
        brace = self.tokens[self.pos]
        self.pos += 1
        nodes = self._body(indent=None, depth=depth + 1)
        if self._peek() is None:
            raise self._error("Unclosed block", brace)
        self.pos += 1
        return StylusNode(NodeKind.BLOCK, brace.start_pos, nodes=nodes)

    def _literal(self) -> StylusNode:
        keyword = self.tokens[self.pos]
        index = self._next_significant(self.pos + 1)
        if index is None or self.tokens[index].type != "LBRACE":
            raise self._error("Expected '{' after @css", keyword)
        self.pos = self._matching(index) + 1
        return StylusNode(NodeKind.LITERAL, keyword.start_pos, css=True)

    def _elses(self, node: StylusNode, line_indent: int, depth: int) -> None:
        while True:
            index = self._next_significant(self.pos)
            if index is None:
                return
            token = self.tokens[index]
            if token.type != "WORD" or token != "else":
                return
            if self._first_on_line[index]:
                if self._indent[index] != line_indent:
                    return
            elif self._previous_significant(index) != "RBRACE":
                return
            self.pos = index
            header = self._header()
            block = self._block(line_indent, depth)
            node.elses.append(StylusNode(NodeKind.ELSE, token.start_pos, block=block))
            words = [t for t in header if t.type == "WORD"]
            if len(words) < 2 or words[1] not in ("if", "unless"):
                return

    def _previous_significant(self, index: int) -> str | None:
        index -= 1
        while index >= 0 and self.tokens[index].type in TRIVIA:
            index -= 1
        return self.tokens[index].type if index >= 0 else None

    # ---- classification --------------------------------------------------

    def _classify(
        self, statement: Statement, allow_pending: bool
    ) -> StylusNode | None:
        """Map a statement without a block to a node.

        Returns None when the statement may be one segment of a selector
        group whose block is still to come.
        """
        first = statement[0]
        start = first.start_pos
        split = self._postfix_index(statement)
        if split is not None:
            return self._postfix(statement[:split], statement[split:])
        keyword = self._keyword_node(statement, None)
        if keyword is not None:
            return keyword

        if first.startswith("+") and self._is_call(statement):
            return StylusNode(NodeKind.CALL, start)
        if statement[-1].type == "COMMA":
            return None if allow_pending else self._orphan(statement)
        assignment = self._assignment(statement, None)
        if assignment is not None:
            return assignment
        if self._is_call(statement):
            call = StylusNode(NodeKind.CALL, start)
            return StylusNode(NodeKind.EXPRESSION, start, nodes=[call])
        if first.type == "LBRACE":
            return self._braces(statement, allow_pending)
        if any(t.type == "WORD" and t == "?" for t in self._top_level(statement)):
            return StylusNode(NodeKind.TERNARY, start)
        if self._is_binop(statement):
            binop = StylusNode(NodeKind.BINOP, start)
            return StylusNode(NodeKind.EXPRESSION, start, nodes=[binop])
        if len(statement) == 1 and first.type == "WORD" and _MEMBER_RE.match(first):
            member = StylusNode(NodeKind.MEMBER, start)
            return StylusNode(NodeKind.EXPRESSION, start, nodes=[member])
        if self._is_property(statement):
            if allow_pending and self._is_compact(statement):
                return None
            name = StylusNode(NodeKind.IDENT, start)
            return StylusNode(NodeKind.PROPERTY, start, segments=[name])
        return None if allow_pending else self._orphan(statement)

    def _classify_block(self, statement: Statement, block: StylusNode) -> StylusNode:
        first = statement[0]
        start = first.start_pos
        keyword = self._keyword_node(statement, block)
        if keyword is not None:
            return keyword
        if first.startswith("+") and self._is_call(statement):
            return StylusNode(NodeKind.CALL, start, block=block)
        if self._is_call(statement) and _FUNCTION_NAME_RE.match(first):
            function = StylusNode(NodeKind.FUNCTION, start, block=block)
            return StylusNode(NodeKind.IDENT, start, val=function)
        assignment = self._assignment(statement, block)
        if assignment is not None:
            return assignment
        group = StylusNode(NodeKind.GROUP, start, block=block)
        group.nodes = self._selectors(statement, block)
        return group

    def _keyword_node(
        self, statement: Statement, block: StylusNode | None
    ) -> StylusNode | None:
        first = statement[0]
        if first.type != "WORD":
            return None
        start = first.start_pos
        word = str(first)
        if word.startswith("@") and len(word) > 1:
            name = word[1:].lower()
            kind = _AT_KINDS.get(name, NodeKind.ATRULE)
            if _KEYFRAMES_RE.match(name):
                kind = NodeKind.KEYFRAMES
            if block is not None and kind in _BODILESS_KINDS:
                kind = NodeKind.ATRULE
            return StylusNode(kind, start, block=block)
        if word in ("if", "unless"):
            return StylusNode(NodeKind.IF, start, block=block)
        if word == "for":
            return StylusNode(NodeKind.EACH, start, block=block)
        if word == "else":
            logger.debug("'else' without a matching 'if' at offset %d", start)
            return StylusNode(NodeKind.ELSE, start, block=block)
        if word == "return":
            return StylusNode(NodeKind.RETURN, start)
        return None

    def _postfix_index(self, statement: Statement) -> int | None:
        depth = 0
        for i, token in enumerate(statement):
            if token.type in OPENERS:
                depth += 1
            elif token.type in CLOSERS:
                depth -= 1
            elif (
                i > 0
                and depth == 0
                and token.type == "WORD"
                and token in _POSTFIX_KEYWORDS
            ):
                return i
        return None

    def _postfix(self, subject: Statement, condition: Statement) -> StylusNode:
        node = self._settle(subject)
        keyword = condition[0]
        block = StylusNode(NodeKind.BLOCK, node.start, nodes=[node])
        if keyword == "for":
            return StylusNode(NodeKind.EACH, keyword.start_pos, block=block)
        return StylusNode(NodeKind.IF, keyword.start_pos, block=block, postfix=True)

    def _assignment(
        self, statement: Statement, block: StylusNode | None
    ) -> StylusNode | None:
        first = statement[0]
        if first.type != "WORD" or len(statement) < 2:
            return None
        name = str(first)
        second = statement[1]
        compound = False
        if (
            second.type == "EQUALS"
            and second == "="
            and name[-1] in "?+-*/%"
            and _is_adjacent(first, second)
            and _IDENT_RE.match(name[:-1] or "-")
        ):
            compound = True
            equals, rhs = second, statement[2:]
        elif not _IDENT_RE.match(name):
            return None
        elif second.type == "EQUALS" and second == "=":
            equals, rhs = second, statement[2:]
        elif (
            len(statement) > 2
            and statement[2].type == "EQUALS"
            and statement[2] == "="
            and _is_adjacent(second, statement[2])
            and (
                (second.type == "WORD" and second in _COMPOUND_OPERATORS)
                or second.type in ("COLON", "SLASH")
            )
        ):
            compound = second.type != "COLON"
            equals, rhs = statement[2], statement[3:]
        else:
            return None

        start = first.start_pos
        if rhs and rhs[0].type == "WORD" and rhs[0].lower() == "@block":
            atblock = StylusNode(
                NodeKind.ATBLOCK,
                rhs[0].start_pos,
                nodes=list(block.nodes) if block is not None else [],
            )
            value = StylusNode(NodeKind.EXPRESSION, rhs[0].start_pos, nodes=[atblock])
            return StylusNode(NodeKind.IDENT, start, val=value)
        if block is not None:
            return None
        if compound:
            value = StylusNode(NodeKind.BINOP, equals.start_pos)
        elif not rhs:
            value = StylusNode(NodeKind.NULL, equals.end_pos)
        else:
            operand = StylusNode(NodeKind.IDENT, rhs[0].start_pos)
            value = StylusNode(NodeKind.EXPRESSION, rhs[0].start_pos, nodes=[operand])
        return StylusNode(NodeKind.IDENT, start, val=value)

    def _braces(self, statement: Statement, allow_pending: bool) -> StylusNode | None:
        start = statement[0].start_pos
        depth = 0
        for i, token in enumerate(statement):
            if token.type == "LBRACE":
                depth += 1
            elif token.type == "RBRACE":
                depth -= 1
                if depth == 0:
                    close = i
                    break
        else:
            close = len(statement) - 1
        if close != len(statement) - 1:
            return None if allow_pending else self._orphan(statement)
        inner = statement[1:close]
        if not inner:
            return StylusNode(NodeKind.EXPRESSION, start, is_empty=True)
        ident = StylusNode(NodeKind.IDENT, inner[0].start_pos)
        return StylusNode(NodeKind.EXPRESSION, start, nodes=[ident])

    def _settle(self, statement: Statement) -> StylusNode:
        """Classify a statement that can no longer be held back."""
        node = self._classify(statement, allow_pending=False)
        if node is None:
            raise self._error("Unrecognized statement", statement[0])
        return node

    def _orphan(self, statement: Statement) -> StylusNode:
        start = statement[0].start_pos
        operands = [
            StylusNode(NodeKind.IDENT, token.start_pos)
            for token in self._top_level(statement)
            if token.type not in CLOSERS
        ]
        return StylusNode(NodeKind.EXPRESSION, start, nodes=operands)

    def _selectors(self, statement: Statement, block: StylusNode) -> list[StylusNode]:
        selectors: list[StylusNode] = []
        depth = 0
        part_start: int | None = None
        for token in statement:
            if token.type in OPENERS:
                depth += 1
            elif token.type in CLOSERS:
                depth -= 1
            if depth == 0 and token.type == "COMMA":
                part_start = None
                continue
            if part_start is None:
                part_start = token.start_pos
                selectors.append(StylusNode(NodeKind.SELECTOR, part_start, block=block))
        return selectors

    # ---- statement shapes ------------------------------------------------

    def _top_level(self, statement: Statement) -> list[Token]:
        """Tokens of ``statement`` that are not nested inside brackets."""
        result = []
        depth = 0
        for token in statement:
            if token.type in CLOSERS:
                depth -= 1
            if depth == 0:
                result.append(token)
            if token.type in OPENERS:
                depth += 1
        return result

    def _is_call(self, statement: Statement) -> bool:
        if len(statement) < 3:
            return False
        name, paren = statement[0], statement[1]
        if name.type != "WORD" or paren.type != "LPAR":
            return False
        if not _is_adjacent(name, paren) or not _FUNCTION_NAME_RE.match(name):
            return False
        depth = 0
        for i, token in enumerate(statement[1:], start=1):
            if token.type in OPENERS:
                depth += 1
            elif token.type in CLOSERS:
                depth -= 1
                if depth == 0:
                    return i == len(statement) - 1
        return False

    def _is_binop(self, statement: Statement) -> bool:
        if len(statement) < 3:
            return False
        left, operator = statement[0], statement[1]
        if operator.type == "EQUALS":
            return operator == "=="
        if operator.type == "SLASH":
            return _is_value_like(left)
        if operator.type != "WORD":
            return False
        if operator in _WORD_OPERATORS:
            return True
        if operator in ("!", "<", ">") and statement[2].type == "EQUALS":
            return _is_adjacent(operator, statement[2])
        return operator in _SYMBOL_OPERATORS and _is_value_like(left)

    def _is_property(self, statement: Statement) -> bool:
        if len(statement) < 2:
            return False
        name, second = statement[0], statement[1]
        if name.type != "WORD" or not _IDENT_RE.match(name):
            return False
        return second.type == "COLON" or not _is_adjacent(name, second)

    def _is_compact(self, statement: Statement) -> bool:
        """``a:hover`` reads as a selector too; ``a: b`` and ``a b`` do not."""
        return all(_is_adjacent(a, b) for a, b in zip(statement, statement[1:]))


def build_tree(
    text: str,
    tokens: list[Token] | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> StylusNode:
    """Parse Stylus ``text`` into a tree of :class:`StylusNode`.

    Raises:
        StylusSyntaxError: when the text is not valid for the supported
            Stylus subset.
    """
    if tokens is None:
        tokens = tokenize(text)
    return TreeBuilder(text, tokens, max_depth=max_depth).build()
