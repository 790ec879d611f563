"""Translation of Stylus source into the unified CSS AST."""

from stylast.parser.css import CssParser, parse_css
from stylast.parser.parser import UNSUPPORTED_KINDS, StylusParser, parse
from stylast.parser.source_code import SourceCode

__all__ = [
    "CssParser",
    "SourceCode",
    "StylusParser",
    "UNSUPPORTED_KINDS",
    "parse",
    "parse_css",
]
