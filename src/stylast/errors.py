"""Error types raised while translating Stylus source."""

from __future__ import annotations


class ParseError(Exception):
    """Raised when Stylus source cannot be translated.

    ``line`` and ``column`` are 1-based and always refer to the outer
    document, even when the failure happened inside an ``@css`` literal.
    """

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        file: str | None = None,
    ):
        self.reason = message
        self.line = line
        self.column = column
        self.file = file
        super().__init__(self._format())

    def _format(self) -> str:
        location = self.file or "<input>"
        if self.line is not None:
            location += f":{self.line}"
            if self.column is not None:
                location += f":{self.column}"
        return f"{location}: {self.reason}"


class StylusSyntaxError(ParseError):
    """The Stylus lexer or tree builder rejected the input."""


class CssSyntaxError(ParseError):
    """An embedded ``@css { ... }`` literal is not valid CSS."""


class UnsupportedConstructError(ParseError):
    """A construct has no unified node shape (raised only in strict mode)."""


class OffsetError(AssertionError):
    """An offset computed by a scanner or the block resolver is out of range.

    This is a defect in the translator, never a user error.
    """
