"""Unified CSS AST: the node shapes every Stylus construct is mapped onto.

The model mirrors the PostCSS conventions: every node carries a ``source``
range, a ``raws`` bag with the formatting needed to print it back, and a
``parent`` link. Stylus specific structure (indentation blocks, postfix
conditionals, mixins...) is recorded through boolean flags on the nodes.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, ClassVar

from stylast.errors import StylusSyntaxError
from stylast.model.diagnostic import Diagnostic


# ---------------------------------------------------------------------------
# Source locations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Position:
    """A point in the source: 0-based ``offset``, 1-based ``line``/``column``."""

    offset: int
    line: int
    column: int


@dataclass(frozen=True)
class Input:
    """The document a tree was parsed from."""

    css: str
    file: str | None = None

    def error(
        self, message: str, line: int | None = None, column: int | None = None
    ) -> StylusSyntaxError:
        return StylusSyntaxError(message, line=line, column=column, file=self.file)


@dataclass
class Source:
    """Source range of a node.

    ``end`` is inclusive. ``start_children``/``end_children`` delimit the
    body of a block when the node owns one.
    """

    input: Input | None
    start: Position
    end: Position | None = None
    start_children: Position | None = None
    end_children: Position | None = None


@dataclass(frozen=True)
class RawValue:
    """Normalized ``value`` plus the verbatim text it was read from.

    ``raw`` is safe to print as CSS (Stylus line comments removed); ``stylus``
    holds the exact source bytes and is only set when it differs from ``raw``.
    """

    value: str
    raw: str
    stylus: str | None = None

    @property
    def verbatim(self) -> str:
        return self.raw if self.stylus is None else self.stylus


def raw_value(value: str, stylus: str, css: str) -> RawValue | None:
    """Build the dual representation of a field, or None when nothing deviates."""
    if stylus == value:
        return None
    return RawValue(value=value, raw=css, stylus=None if css == stylus else stylus)


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class Node:
    type: ClassVar[str] = "node"

    source: Source | None = field(default=None, repr=False)
    raws: dict[str, Any] = field(default_factory=dict, repr=False)
    parent: Container | None = field(default=None, repr=False)

    @property
    def is_semicolon_optional(self) -> bool:
        """Whether a ``;`` may follow this node inside its parent's body."""
        return False

    @property
    def depth(self) -> int:
        """Nesting level below the root: 0 for top-level nodes."""
        depth = 0
        parent = self.parent
        while parent is not None and parent.parent is not None:
            depth += 1
            parent = parent.parent
        return depth

    def raw(self, key: str, stylus: bool = False) -> str:
        """Return the ``key`` raw, preferring the verbatim Stylus variant."""
        if stylus:
            verbatim = self.raws.get("stylus_" + key)
            if verbatim is not None:
                return verbatim
        return self.raws.get(key) or ""

    def to_string(self, syntax: str = "stylus") -> str:
        from stylast.stringifier import stringify

        return stringify(self, syntax=syntax)


@dataclass(eq=False)
class Container(Node):
    type: ClassVar[str] = "container"

    nodes: list[Node] | None = None

    def append(self, node: Node) -> Node:
        if self.nodes is None:
            self.nodes = []
        node.parent = self
        self.nodes.append(node)
        return node

    def index(self, node: Node) -> int:
        for i, child in enumerate(self.nodes or ()):
            if child is node:
                return i
        raise ValueError(f"{node!r} is not a child of {self!r}")

    @property
    def first(self) -> Node | None:
        return self.nodes[0] if self.nodes else None

    @property
    def last(self) -> Node | None:
        return self.nodes[-1] if self.nodes else None

    def walk(self) -> Iterator[Node]:
        """Yield every descendant in document order."""
        for child in self.nodes or ():
            yield child
            if isinstance(child, Container):
                yield from child.walk()

    def settle_semicolon(self) -> None:
        """Record in ``raws`` whether the last statement ended with ``;``.

        Comments are not statements. Without any statement the raw is removed.
        """
        last = next(
            (n for n in reversed(self.nodes or ()) if not isinstance(n, Comment)),
            None,
        )
        if last is None:
            self.raws.pop("semicolon", None)
        elif last.is_semicolon_optional:
            self.raws["semicolon"] = not getattr(last, "omitted_semicolon", False)


@dataclass(eq=False)
class Root(Container):
    type: ClassVar[str] = "root"

    nodes: list[Node] | None = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list, repr=False)


@dataclass(eq=False)
class Rule(Container):
    """A selector group and its block.

    ``segments`` holds the inclusive ``(start, end)`` offsets of every
    Stylus selector merged into this rule.
    """

    type: ClassVar[str] = "rule"

    nodes: list[Node] | None = field(default_factory=list)
    selector: str = ""
    segments: list[tuple[int, int]] = field(default_factory=list, repr=False)
    pythonic: bool = False

    @property
    def has_brace_block(self) -> bool:
        return not self.pythonic

    @property
    def has_own_semicolon(self) -> bool:
        return bool(self.raws.get("own_semicolon"))


@dataclass(eq=False)
class AtRule(Container):
    """Every Stylus construct that is neither a selector nor a property.

    Besides real CSS at-rules this covers conditionals, loops, mixins, function
    definitions, calls and bare expressions; the flags tell them apart.
    ``body`` is only set for opaque function definitions: the braced body laid
    out as the canonical printer writes it at the node's depth.
    """

    type: ClassVar[str] = "atrule"

    name: str = ""
    params: str = ""
    body: str | None = None
    pythonic: bool = False
    postfix: bool = False
    mixin: bool = False
    function: bool = False
    call: bool = False
    call_block_mixin: bool = False
    expression: bool = False
    omitted_semicolon: bool = False

    @property
    def is_semicolon_optional(self) -> bool:
        return self.nodes is None or self.postfix

    @property
    def has_brace_block(self) -> bool:
        return self.nodes is not None and not self.pythonic and not self.postfix

    @property
    def has_own_semicolon(self) -> bool:
        return bool(self.raws.get("own_semicolon"))


@dataclass(eq=False)
class Declaration(Node):
    type: ClassVar[str] = "decl"

    prop: str = ""
    value: str = ""
    important: bool = False
    assignment: bool = False
    omitted_semicolon: bool = False

    @property
    def is_semicolon_optional(self) -> bool:
        return True


@dataclass(eq=False)
class Comment(Node):
    type: ClassVar[str] = "comment"

    text: str = ""
