"""stylast: Stylus source as a PostCSS-style CSS AST that keeps its formatting."""
from __future__ import annotations

from dataclasses import replace

from stylast.config import ParseOptions
from stylast.errors import (
    CssSyntaxError,
    OffsetError,
    ParseError,
    StylusSyntaxError,
    UnsupportedConstructError,
)
from stylast.model import (
    AtRule,
    Comment,
    Declaration,
    Diagnostic,
    Root,
    Rule,
    Severity,
)
from stylast.parser import StylusParser
from stylast.stringifier import stringify


def parse(
    text: str, *, file: str | None = None, options: ParseOptions | None = None
) -> Root:
    """Parse Stylus ``text`` into a unified :class:`Root`.

    ``file`` only names the input in error messages; it overrides
    ``options.file``.

    Raises:
        StylusSyntaxError: the text is not valid Stylus.
        CssSyntaxError: an ``@css`` literal is not valid CSS.
        UnsupportedConstructError: in strict mode, on a construct that has
            no unified node.
    """
    options = options or ParseOptions()
    if file is not None:
        options = replace(options, file=file)
    return StylusParser(text, options).parse()


__all__ = [
    "AtRule",
    "Comment",
    "CssSyntaxError",
    "Declaration",
    "Diagnostic",
    "OffsetError",
    "ParseError",
    "ParseOptions",
    "Root",
    "Rule",
    "Severity",
    "StylusParser",
    "StylusSyntaxError",
    "UnsupportedConstructError",
    "parse",
    "stringify",
]
