"""Raw-text scanners.

Every scanner reads a stretch of the source text and returns the pieces a
node needs: the normalized value plus its verbatim forms. Two verbatim forms
are kept for every piece of text: ``stylus`` is the exact source, ``css`` is
the same text without Stylus ``//`` comments.
"""

from __future__ import annotations

import re
import textwrap
from dataclasses import dataclass

from stylast.errors import OffsetError
from stylast.parser.source_code import SourceCode
from stylast.stylus.lexer import CLOSERS, OPENERS, TRIVIA

_NAME_RE = re.compile(r"[\w$.\-]*")
_FUNCTION_NAME_RE = re.compile(r"\+?[\w$\-]+")
_IMPORTANT_RE = re.compile(r"\s*!\s*important\s*\Z", re.IGNORECASE)

_BETWEEN_TYPES = frozenset({"WS", "COLON", "EQUALS", "BLOCK_COMMENT"})


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RawText:
    css: str
    stylus: str

    @property
    def differs(self) -> bool:
        return self.css != self.stylus


EMPTY = RawText("", "")


@dataclass(frozen=True)
class RawAfter:
    """Trailing trivia of a stretch of text, and where it begins."""

    css: str
    stylus: str
    start_index: int

    @property
    def text(self) -> RawText:
        return RawText(self.css, self.stylus)


@dataclass(frozen=True)
class ParsedSelector:
    value: str
    raw: RawText
    between: RawText


@dataclass(frozen=True)
class ParsedHeader:
    """Header of an at-rule like construct: ``@name params``."""

    identifier: str
    name: str
    after_name: str
    params: str
    raw: RawText
    between: RawText
    semicolon: bool
    end_index: int


@dataclass(frozen=True)
class ParsedValue:
    between: RawText
    value: str
    raw: RawText
    important: str | None
    semicolon: bool
    end_index: int


@dataclass(frozen=True)
class ParsedFunction:
    name: str
    params: str
    raw: RawText
    between: RawText
    body: str
    body_raw: RawText
    end_index: int


@dataclass(frozen=True)
class ParsedExpression:
    params: str
    raw: RawText
    inner: RawText
    between: RawText
    semicolon: bool
    end_index: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _slice(source: SourceCode, start: int, end: int) -> RawText:
    return RawText(
        css=source.css_text(start, end), stylus=source.text_between(start, end)
    )


def _matching(source: SourceCode, index: int) -> int:
    """Token index closing the bracket whose token index is ``index``."""
    tokens = source.tokens
    opener = tokens[index].type
    closer = OPENERS[opener]
    depth = 0
    for i in range(index, len(tokens)):
        kind = tokens[i].type
        if kind == opener:
            depth += 1
        elif kind == closer:
            depth -= 1
            if depth == 0:
                return i
    raise OffsetError(f"unbalanced {tokens[index]!r} at {tokens[index].start_pos}")


def interpolation_close(source: SourceCode, index: int, at_start: bool) -> int | None:
    """Token index of the ``}`` ending ``{expr}`` at token ``index``.

    None when the brace at ``index`` opens a block instead. A brace glued to
    the preceding token, or starting a statement, is interpolation when its
    content fits on one line.
    """
    tokens = source.tokens
    if not at_start and (index == 0 or tokens[index - 1].type in TRIVIA):
        return None
    try:
        close = _matching(source, index)
    except OffsetError:
        return None
    inner = tokens[index + 1 : close]
    if not at_start and not any(t.type != "WS" for t in inner):
        return None
    if any(
        t.type in ("NEWLINE", "SEMICOLON", "COLON", "LBRACE", "LINE_COMMENT")
        for t in inner
    ):
        return None
    return close


def _last_significant(source: SourceCode, start: int, end: int) -> int:
    """Offset of the last character in ``start..end`` that is not trivia."""
    result = start - 1
    for token, text in source.tokens_between(start, end):
        if token.type not in TRIVIA:
            result = max(token.start_pos, start) + len(text) - 1
    return result


# ---------------------------------------------------------------------------
# Before / after
# ---------------------------------------------------------------------------


def _is_free_semicolon(source: SourceCode, offset: int) -> bool:
    """Whether the ``;`` at ``offset`` follows another ``;``, a ``{`` or nothing."""
    tokens = source.tokens
    index = source.token_index(offset) - 1
    while index >= 0 and (
        tokens[index].type in TRIVIA or tokens[index].type == "BLOCK_COMMENT"
    ):
        index -= 1
    return index < 0 or tokens[index].type in ("SEMICOLON", "LBRACE")


def scan_before(source: SourceCode, start: int, node_start: int) -> RawText:
    """The text between the previous node (ending before ``start``) and a node."""
    if node_start < start:
        raise OffsetError(f"node at {node_start} starts before {start}")
    return _slice(source, start, node_start - 1)


def scan_after(
    source: SourceCode, index: int, block_comment_is_raw: bool = True
) -> RawAfter:
    """Walk back from ``index`` over whitespace and comments.

    Line comments always count as formatting; block comments only when
    ``block_comment_is_raw`` (otherwise they are nodes of their own). A
    ``;`` that ends no statement counts as formatting too.
    """
    pos = index
    while pos >= 0:
        token = source.token_at(pos)
        kind = token.type
        if kind in ("WS", "NEWLINE"):
            pos = token.start_pos - 1
            continue
        if token.end_pos - 1 != pos:
            break
        if kind == "LINE_COMMENT" or (
            kind == "BLOCK_COMMENT" and block_comment_is_raw
        ):
            pos = token.start_pos - 1
            continue
        if kind == "SEMICOLON" and _is_free_semicolon(source, pos):
            pos = token.start_pos - 1
            continue
        break
    start = pos + 1
    return RawAfter(
        css=source.css_text(start, index),
        stylus=source.text_between(start, index),
        start_index=start,
    )


def scan_own_semicolon(source: SourceCode, end: int) -> str | None:
    """The ``;`` (with leading whitespace) following a closing ``}``."""
    text = source.text
    if end < 0 or text[end] != ";":
        return None
    index = end - 1
    while index >= 0 and text[index].isspace():
        index -= 1
    if index < 0 or text[index] != "}":
        return None
    return text[index + 1 : end + 1]


# ---------------------------------------------------------------------------
# Selectors
# ---------------------------------------------------------------------------


def selector_end_index(source: SourceCode, start: int) -> int:
    """Offset of the last character of the selector header starting at ``start``."""
    tokens = source.tokens
    index = source.token_index(start)
    depth = 0
    end = start - 1
    while index < len(tokens):
        token = tokens[index]
        kind = token.type
        if depth == 0:
            if kind in ("NEWLINE", "LINE_COMMENT", "SEMICOLON", "RBRACE"):
                break
            if kind == "LBRACE":
                close = interpolation_close(
                    source, index, at_start=token.start_pos == start
                )
                if close is None:
                    break
                end = tokens[close].end_pos - 1
                index = close + 1
                continue
        if kind in OPENERS:
            depth += 1
        elif kind in CLOSERS:
            depth -= 1
        if kind != "WS":
            end = token.end_pos - 1
        index += 1
    return end


def scan_selector(source: SourceCode, locations: list[list[int]]) -> ParsedSelector:
    """Join selector segments into one selector.

    ``locations`` holds inclusive ``[start, end]`` pairs; the last one ends
    right before the block. Trailing trivia of the last segment becomes the
    rule's ``between``. Segments written one per line without a comma get
    one inserted in the CSS form.
    """
    stylus_parts: list[str] = []
    css_parts: list[str] = []
    plain_parts: list[str] = []
    between = EMPTY
    for i, (start, end) in enumerate(locations):
        last = i == len(locations) - 1
        significant = _last_significant(source, start, end)
        if last:
            between = _slice(source, significant + 1, end)
            end = significant
        stylus_parts.append(source.text_between(start, end))
        if last or source.text[significant] == ",":
            css_parts.append(source.css_text(start, end))
            plain_parts.append(source.plain_text(start, end))
            continue
        css_parts.append(
            source.css_text(start, significant)
            + ","
            + source.css_text(significant + 1, end)
        )
        plain_parts.append(
            source.plain_text(start, significant)
            + ","
            + source.plain_text(significant + 1, end)
        )
    return ParsedSelector(
        value="".join(plain_parts).strip(),
        raw=RawText(css="".join(css_parts), stylus="".join(stylus_parts)),
        between=between,
    )


# ---------------------------------------------------------------------------
# At-rule headers
# ---------------------------------------------------------------------------


def scan_at_rule_header(
    source: SourceCode, start: int, bound: int | None = None
) -> ParsedHeader:
    """Read ``[@|+]name params`` starting at ``start``.

    Params stop at the end of the line, a ``;``, a ``}``, a ``{`` opening a
    block, or past ``bound`` (inclusive). When a ``;`` ends the header, the
    whitespace before it is returned as ``between`` and ``end_index`` points
    at the ``;``.
    """
    text = source.text
    tokens = source.tokens
    pos = start
    identifier = ""
    if pos < len(text) and text[pos] in "@+":
        identifier = text[pos]
        pos += 1
    name = _NAME_RE.match(text, pos).group()
    pos += len(name)
    limit = len(text) - 1 if bound is None else bound

    first_param: int | None = None
    params_end: int | None = None  # exclusive
    stop = None
    index = source.token_index(pos) if pos < len(text) else len(tokens)
    depth = 0
    while index < len(tokens):
        token = tokens[index]
        kind = token.type
        if token.start_pos > limit:
            break
        if depth == 0:
            if kind in ("NEWLINE", "LINE_COMMENT", "SEMICOLON", "RBRACE"):
                stop = token
                break
            if kind == "LBRACE":
                close = interpolation_close(source, index, at_start=False)
                if close is None:
                    stop = token
                    break
                if first_param is None:
                    first_param = max(token.start_pos, pos)
                params_end = tokens[close].end_pos
                index = close + 1
                continue
        if kind in OPENERS:
            depth += 1
        elif kind in CLOSERS:
            depth -= 1
        if kind != "WS":
            if first_param is None:
                first_param = max(token.start_pos, pos)
            params_end = token.end_pos
        index += 1

    if first_param is None:
        after_name = ""
        params = ""
        raw = EMPTY
        end_index = pos - 1
    else:
        after_name = text[pos:first_param]
        end_index = params_end - 1
        raw = _slice(source, first_param, end_index)
        params = source.plain_text(first_param, end_index).strip()

    between = EMPTY
    semicolon = stop is not None and stop.type == "SEMICOLON"
    if semicolon:
        between = _slice(source, end_index + 1, stop.start_pos - 1)
        end_index = stop.start_pos
    return ParsedHeader(
        identifier=identifier,
        name=name,
        after_name=after_name,
        params=params,
        raw=raw,
        between=between,
        semicolon=semicolon,
        end_index=end_index,
    )


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


def scan_prop(source: SourceCode, start: int) -> tuple[str, int]:
    """Read a property name (words and glued interpolations).

    Returns the name and the offset of its last character.
    """
    tokens = source.tokens
    index = source.token_index(start)
    end = start - 1
    while index < len(tokens):
        token = tokens[index]
        if token.type == "WORD":
            end = token.end_pos - 1
            index += 1
            continue
        if token.type == "LBRACE":
            close = interpolation_close(source, index, at_start=end < start)
            if close is not None:
                end = tokens[close].end_pos - 1
                index = close + 1
                continue
        break
    return source.text_between(start, end), end


def scan_value(
    source: SourceCode,
    start: int,
    bound: int | None = None,
    min_end: int | None = None,
) -> ParsedValue:
    """Read ``between`` and the value of a declaration, from ``start``.

    The value ends at the end of its line, a ``;`` or a ``}``, unless brackets
    are still open. It never ends before ``min_end`` and never extends past
    ``bound``. Whitespace before an ending ``;`` is kept in the value raw.
    """
    text = source.text
    tokens = source.tokens
    index = source.token_index(start) if start < len(text) else len(tokens)
    value_start = start
    while index < len(tokens):
        token = tokens[index]
        if bound is not None and token.start_pos > bound:
            break
        if token.type not in _BETWEEN_TYPES:
            break
        if token.type == "EQUALS" and token != "=":
            break
        value_start = token.end_pos
        index += 1

    value_end = value_start  # exclusive
    semicolon = None
    depth = 0
    while index < len(tokens):
        token = tokens[index]
        kind = token.type
        if bound is not None and token.start_pos > bound:
            break
        if depth == 0 and (min_end is None or token.start_pos > min_end):
            if kind in ("NEWLINE", "LINE_COMMENT", "RBRACE"):
                break
            if kind == "SEMICOLON":
                semicolon = token
                break
        if kind in OPENERS:
            depth += 1
        elif kind in CLOSERS:
            depth = max(depth - 1, 0)
        if kind not in TRIVIA:
            value_end = token.end_pos
        index += 1

    stylus_between = text[start:value_start]
    css_between = stylus_between
    if ":" not in css_between and "=" not in css_between:
        css_between = ":" + css_between

    value_text = text[value_start:value_end]
    important = None
    match = _IMPORTANT_RE.search(value_text)
    if match:
        important = match.group()
        value_text = value_text[: match.start()]
    portion_end = value_start + len(value_text)  # exclusive
    if semicolon is not None:
        tail = text[value_end : semicolon.start_pos]
        if important is not None:
            important += tail
        else:
            portion_end = semicolon.start_pos
        end_index = semicolon.start_pos
    else:
        end_index = value_end - 1

    return ParsedValue(
        between=RawText(css=css_between, stylus=stylus_between),
        value=source.plain_text(value_start, portion_end - 1).strip(),
        raw=_slice(source, value_start, portion_end - 1),
        important=important,
        semicolon=semicolon is not None,
        end_index=end_index,
    )


# ---------------------------------------------------------------------------
# Function definitions and expressions
# ---------------------------------------------------------------------------


def _dedented_body(body: str) -> str:
    return textwrap.dedent(body).strip()


def scan_function(source: SourceCode, start: int, end: int) -> ParsedFunction:
    """Read a function definition kept as opaque text, ending at ``end``.

    The normalized ``body`` is the dedented content without braces or
    comments; ``body_raw`` is the verbatim body including its braces.
    """
    text = source.text
    name = _FUNCTION_NAME_RE.match(text, start).group()
    paren = start + len(name)
    if paren >= len(text) or text[paren] != "(":
        raise OffsetError(f"expected '(' at {paren}")
    close_index = _matching(source, source.token_index(paren))
    params_end = source.tokens[close_index].start_pos
    params_raw = _slice(source, paren, params_end)
    params = source.plain_text(paren, params_end).strip()

    rest = params_end + 1
    brace = None
    for token, _ in source.tokens_between(rest, end):
        if token.type in TRIVIA or token.type == "BLOCK_COMMENT":
            continue
        if token.type == "LBRACE":
            brace = token.start_pos
        break

    if brace is not None:
        between = _slice(source, rest, brace - 1)
        body_start = brace
        closing = text.rfind("}", brace, end + 1)
        inner = (brace + 1, closing - 1 if closing > brace else end)
    else:
        between = EMPTY
        body_start = rest
        inner = (rest, end)
    return ParsedFunction(
        name=name,
        params=params,
        raw=params_raw,
        between=between,
        body=_dedented_body(source.css_text(*inner)),
        body_raw=_slice(source, body_start, end),
        end_index=end,
    )


def scan_expression(source: SourceCode, start: int) -> ParsedExpression:
    """Read ``{...}`` at ``start``, plus a ``;`` following it on the same line."""
    if source.text[start] != "{":
        raise OffsetError(f"expected '{{' at {start}")
    tokens = source.tokens
    close_index = _matching(source, source.token_index(start))
    close = tokens[close_index].start_pos
    raw = _slice(source, start, close)

    between = EMPTY
    end_index = close
    semicolon = False
    index = close_index + 1
    while index < len(tokens) and tokens[index].type == "WS":
        index += 1
    if index < len(tokens) and tokens[index].type == "SEMICOLON":
        between = _slice(source, close + 1, tokens[index].start_pos - 1)
        end_index = tokens[index].start_pos
        semicolon = True
    return ParsedExpression(
        params=source.plain_text(start, close).strip(),
        raw=raw,
        inner=_slice(source, start + 1, close - 1),
        between=between,
        semicolon=semicolon,
        end_index=end_index,
    )


def css_literal_indices(source: SourceCode, start: int) -> tuple[int, int]:
    """Offsets of the braces around the body of ``@css`` at ``start``."""
    tokens = source.tokens
    index = source.token_index(start)
    while index < len(tokens) and tokens[index].type != "LBRACE":
        index += 1
    if index == len(tokens):
        raise OffsetError(f"no '{{' after @css at {start}")
    close_index = _matching(source, index)
    return tokens[index].start_pos, tokens[close_index].start_pos
