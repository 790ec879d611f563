"""Tokenizer for the Stylus subset, driven by a Lark terminal grammar."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from lark import Lark, Token
from lark.exceptions import UnexpectedCharacters, UnexpectedInput

from stylast.errors import StylusSyntaxError

GRAMMAR_PATH = Path(__file__).parent / "grammar.lark"

# Token types that never carry meaning between two statements.
TRIVIA = frozenset({"WS", "NEWLINE", "LINE_COMMENT"})
COMMENTS = frozenset({"BLOCK_COMMENT", "LINE_COMMENT"})
OPENERS = {"LPAR": "RPAR", "LSQB": "RSQB", "LBRACE": "RBRACE"}
CLOSERS = frozenset(OPENERS.values())


@lru_cache(maxsize=None)
def _parser() -> Lark:
    return Lark(
        GRAMMAR_PATH.read_text(),
        parser="lalr",
        lexer="basic",
        start="start",
        keep_all_tokens=True,
    )


def _describe(error: UnexpectedInput) -> str:
    if isinstance(error, UnexpectedCharacters):
        if error.char in "\"'":
            return "Unclosed string"
        return f"Unexpected character {error.char!r}"
    return "Unexpected input"


def tokenize(text: str) -> list[Token]:
    """Split ``text`` into tokens covering every character of it.

    Raises:
        StylusSyntaxError: when a character cannot start any token, which in
            practice means an unterminated string.
    """
    if not text:
        return []
    try:
        tree = _parser().parse(text)
    except UnexpectedInput as e:
        line = getattr(e, "line", None)
        column = getattr(e, "column", None)
        raise StylusSyntaxError(_describe(e), line=line, column=column) from e
    return [child for child in tree.children if isinstance(child, Token)]
