"""Source index: offset/location conversion and token lookup for one text."""

from __future__ import annotations

import re
from bisect import bisect_right
from collections.abc import Iterator

from lark import Token

from stylast.errors import OffsetError
from stylast.model.nodes import Position
from stylast.stylus.nodes import StylusNode

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


class SourceCode:
    """The text being translated together with its token table.

    Offsets are 0-based indexes into ``text``; locations are 1-based.
    Offsets outside the text raise :class:`OffsetError`.
    """

    def __init__(self, text: str, tokens: list[Token]):
        self.text = text
        self.tokens = tokens
        self._token_starts = [token.start_pos for token in tokens]
        self.line_starts = [0] + [m.end() for m in _LINE_BREAK_RE.finditer(text)]

    def __len__(self) -> int:
        return len(self.text)

    def _check(self, offset: int, allow_end: bool = False) -> None:
        limit = len(self.text) + 1 if allow_end else len(self.text)
        if not 0 <= offset < limit:
            raise OffsetError(f"offset {offset} is outside the source (0..{limit})")

    # ---- nodes -----------------------------------------------------------

    def index_of(self, node: StylusNode) -> int:
        self._check(node.start, allow_end=True)
        return node.start

    def lexical_start(self, node: StylusNode) -> int:
        """Offset of the first character belonging to ``node``.

        A postfix conditional starts at its keyword, but its subject (the
        first node of its block) comes earlier in the text.
        """
        start = self.index_of(node)
        if node.block is not None and node.block.nodes:
            start = min(start, self.lexical_start(node.block.nodes[0]))
        return start

    # ---- locations -------------------------------------------------------

    def location_of(self, offset: int) -> Position:
        self._check(offset, allow_end=True)
        line = bisect_right(self.line_starts, offset)
        column = offset - self.line_starts[line - 1] + 1
        return Position(offset=offset, line=line, column=column)

    def text_between(self, start: int, end: int) -> str:
        """Text from ``start`` to ``end``, both inclusive."""
        if end < start:
            return ""
        self._check(start)
        self._check(end)
        return self.text[start : end + 1]

    # ---- tokens ----------------------------------------------------------

    def token_index(self, offset: int) -> int:
        self._check(offset)
        return bisect_right(self._token_starts, offset) - 1

    def token_at(self, offset: int) -> Token:
        return self.tokens[self.token_index(offset)]

    def tokens_between(self, start: int, end: int) -> Iterator[tuple[Token, str]]:
        """Yield every token overlapping ``start..end`` with its clipped text."""
        if end < start:
            return
        for index in range(self.token_index(start), self.token_index(end) + 1):
            token = self.tokens[index]
            lo = max(token.start_pos, start)
            hi = min(token.end_pos, end + 1)
            yield token, self.text[lo:hi]

    def css_text(self, start: int, end: int) -> str:
        """Like :meth:`text_between`, without Stylus ``//`` comments."""
        return "".join(
            text
            for token, text in self.tokens_between(start, end)
            if token.type != "LINE_COMMENT"
        )

    def plain_text(self, start: int, end: int) -> str:
        """Like :meth:`text_between`, without any comment."""
        return "".join(
            text
            for token, text in self.tokens_between(start, end)
            if token.type not in ("LINE_COMMENT", "BLOCK_COMMENT")
        )
