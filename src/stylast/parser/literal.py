"""Splicing of ``@css { ... }`` literals into the Stylus tree.

The body is parsed as plain CSS and every location is shifted so that it
points into the enclosing Stylus text.
"""

from __future__ import annotations

from stylast.errors import CssSyntaxError
from stylast.model.nodes import Input, Position, Root
from stylast.parser.css import parse_css


def remap(outer: Position, line: int, column: int) -> tuple[int, int]:
    """Map a ``line``/``column`` of the literal body to the outer text.

    ``outer`` is where the body starts. Only the first line of the body is
    shifted horizontally.
    """
    if line == 1:
        return outer.line, outer.column + column - 1
    return outer.line + line - 1, column


def _shift(position: Position | None, outer: Position) -> Position | None:
    if position is None:
        return None
    line, column = remap(outer, position.line, position.column)
    return Position(offset=outer.offset + position.offset, line=line, column=column)


def splice_css_literal(css: str, start: Position, input: Input) -> Root:
    """Parse the body of a literal that begins at ``start`` in ``input``.

    Raises:
        CssSyntaxError: with the location of the error in the outer text.
    """
    try:
        root = parse_css(css, input)
    except CssSyntaxError as e:
        line, column = remap(start, e.line or 1, e.column or 1)
        raise CssSyntaxError(e.reason, line=line, column=column, file=input.file) from e
    for node in root.walk():
        source = node.source
        source.start = _shift(source.start, start)
        source.end = _shift(source.end, start)
        source.start_children = _shift(source.start_children, start)
        source.end_children = _shift(source.end_children, start)
    return root
