"""Block resolution: where a block opens, where its body ends, what trails it."""

from __future__ import annotations

import re
from dataclasses import dataclass

from stylast.parser.scanners import EMPTY, RawText, scan_after, scan_own_semicolon
from stylast.parser.source_code import SourceCode

# Anything that may sit between a header and its "{": trivia, comments and
# closing brackets left over by the header scanners.
_OPENING_BRACE_RE = re.compile(r"(?:/\*[\s\S]*?\*/|//[^\n]*|\s|\)|\})*\{")
_CLOSING_BRACE_RE = re.compile(r"\}(\s*;)?\s*\Z")


@dataclass(frozen=True)
class BlockInfo:
    """Extent of a block.

    Attributes:
        has_brace: The block is written with braces.
        start_index: Offset of the ``{``; the body start for indented blocks.
        body_start: First offset inside the body.
        body_end: Last offset of the body content, before the trailing
            trivia and the closing ``}``.
        end_index: Last offset of the whole construct (the ``}``, or the
            ``;`` right after it).
        between: Text between the header and the ``{``.
        after: Trivia between the last child and the ``}``.
        own_semicolon: A ``;`` written after the ``}``, with its leading
            whitespace.
    """

    has_brace: bool
    start_index: int
    body_start: int
    body_end: int
    end_index: int
    between: RawText
    after: RawText
    own_semicolon: str | None

    @property
    def is_closed(self) -> bool:
        return self.has_brace and self.body_end < self.end_index


def block_end_index(source: SourceCode, parent_end: int, next_start: int | None) -> int:
    """Last offset of a block, judged from what follows it.

    The block ends right before the trivia preceding the next node when the
    next node lies inside the parent; otherwise before the trivia at the end
    of the parent.
    """
    if next_start is not None and next_start <= parent_end:
        return scan_after(source, next_start - 1).start_index - 1
    return scan_after(source, parent_end).start_index - 1


def resolve_block(
    source: SourceCode,
    header_end: int,
    window_end: int,
    parent_end: int,
    next_start: int | None,
) -> BlockInfo:
    """Locate the block following the header that ends at ``header_end``.

    ``window_end`` (exclusive) is where the first child starts, or the end of
    the parent for an empty block.
    """
    window = source.text[header_end + 1 : window_end]
    match = _OPENING_BRACE_RE.match(window)
    if match:
        brace = header_end + len(match.group())
        start_index = brace
        body_start = brace + 1
        between = RawText(
            css=source.css_text(header_end + 1, brace - 1),
            stylus=source.text_between(header_end + 1, brace - 1),
        )
    else:
        start_index = body_start = header_end + 1
        between = EMPTY

    end_index = block_end_index(source, parent_end, next_start)
    body_end = end_index
    after = EMPTY
    own_semicolon = None
    if match:
        closing = _CLOSING_BRACE_RE.search(source.text, body_start, end_index + 1)
        if closing:
            body_end = closing.start() - 1
            own_semicolon = scan_own_semicolon(source, end_index)
            after = scan_after(source, body_end, block_comment_is_raw=False).text
    return BlockInfo(
        has_brace=match is not None,
        start_index=start_index,
        body_start=body_start,
        body_end=body_end,
        end_index=end_index,
        between=between,
        after=after,
        own_semicolon=own_semicolon,
    )
