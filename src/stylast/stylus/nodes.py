"""Stylus parse tree: the read-only input of the translator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class NodeKind(Enum):
    ROOT = "root"
    GROUP = "group"
    SELECTOR = "selector"
    PROPERTY = "property"
    COMMENT = "comment"
    MEDIA = "media"
    CHARSET = "charset"
    SUPPORTS = "supports"
    IMPORT = "import"
    KEYFRAMES = "keyframes"
    EXTEND = "extend"
    LITERAL = "literal"
    ATRULE = "atrule"
    TERNARY = "ternary"
    EXPRESSION = "expression"
    IDENT = "ident"
    FUNCTION = "function"
    CALL = "call"
    BINOP = "binop"
    MEMBER = "member"
    EACH = "each"
    IF = "if"
    ELSE = "else"
    BLOCK = "block"
    ATBLOCK = "atblock"
    NULL = "null"
    RETURN = "return"


@dataclass(eq=False)
class StylusNode:
    """A node of the Stylus tree.

    Only ``start`` (the offset of the first character of the construct) is
    positional; everything else about extents is recovered from the text.

    Attributes:
        kind: The node kind tag.
        start: 0-based offset of the node's first character.
        nodes: Children of groups, blocks and expressions.
        block: The nested block of selectors, at-rules, conditionals, loops,
            functions and calls.
        val: The value of an identifier (assignment, function definition).
        elses: ``else``/``else if`` branches of a conditional.
        segments: Sub-nodes of a property; the first one marks the name.
        postfix: The conditional follows its subject on the same line.
        css: A literal block written as ``@css { ... }``.
        is_empty: An empty ``{}`` expression.
    """

    kind: NodeKind
    start: int
    nodes: list[StylusNode] = field(default_factory=list)
    block: StylusNode | None = None
    val: StylusNode | None = None
    elses: list[StylusNode] = field(default_factory=list)
    segments: list[StylusNode] = field(default_factory=list)
    postfix: bool = False
    css: bool = False
    is_empty: bool = False

    def __repr__(self) -> str:
        return f"StylusNode({self.kind.value}@{self.start})"
