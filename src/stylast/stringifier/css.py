"""Canonical printer: normalized values, braces, explicit terminators.

The output is valid input for the Stylus parser again, and printing the
re-parsed tree gives the same text.
"""

from __future__ import annotations

import re
import textwrap

from stylast.model.nodes import (
    AtRule,
    Comment,
    Container,
    Declaration,
    Node,
    Root,
    Rule,
)

INDENT = "    "

_COMMENT_RE = re.compile(r"/\*[\s\S]*?\*/")

# Conditional and loop heads always print a block, even an empty one.
_BLOCK_HEADS = frozenset({"if", "unless", "else", "for"})


def _reindent(text: str, indent: str) -> str:
    """Put every line after the first at ``indent``, keeping relative nesting."""
    first, newline, rest = text.partition("\n")
    if not newline:
        return text
    lines = textwrap.dedent(rest).split("\n")
    return "\n".join([first] + [indent + line if line.strip() else "" for line in lines])


def block_text(inner: str, depth: int) -> str:
    """Wrap ``inner`` in braces, indented for a node at ``depth``."""
    if not inner:
        return "{}"
    indent = INDENT * (depth + 1)
    lines = [indent + line if line.strip() else "" for line in inner.split("\n")]
    return "{\n" + "\n".join(lines) + "\n" + INDENT * depth + "}"


def _operator(node: Declaration) -> str:
    between = _COMMENT_RE.sub("", node.raws.get("between", ":")).strip()
    if not between or (between.startswith(":") and between != ":="):
        return ": "
    return f" {between} "


class CssStringifier:
    """Prints a tree in canonical form, ignoring formatting raws."""

    def stringify(self, node: Node) -> str:
        if isinstance(node, Root):
            lines = [self.node(child, 0) for child in node.nodes or ()]
            return "\n".join(lines) + "\n" if lines else ""
        return self.node(node, 0)

    def node(self, node: Node, depth: int) -> str:
        return INDENT * depth + self.statement(node, depth)

    def statement(self, node: Node, depth: int, terminate: bool = True) -> str:
        if isinstance(node, Rule):
            return self.rule(node, depth)
        if isinstance(node, AtRule):
            return self.atrule(node, depth, terminate)
        if isinstance(node, Declaration):
            return self.decl(node, depth, terminate)
        if isinstance(node, Comment):
            return f"/* {node.text} */" if node.text else "/**/"
        raise TypeError(f"cannot print {type(node).__name__}")

    def decl(self, node: Declaration, depth: int, terminate: bool = True) -> str:
        value = _reindent(node.value, INDENT * (depth + 1))
        text = node.prop + _operator(node) + value
        if node.important:
            text += " !important"
        return text + ";" if terminate else text

    def rule(self, node: Rule, depth: int) -> str:
        if not node.selector:
            return self.block(node, depth)
        return _reindent(node.selector, INDENT * depth) + " " + self.block(node, depth)

    def atrule(self, node: AtRule, depth: int, terminate: bool = True) -> str:
        header = node.raws.get("identifier", "@") + node.name
        if node.params:
            if node.raws.get("after_name"):
                header += " "
            header += _reindent(node.params, INDENT * (depth + 1))
        if node.postfix:
            subject = "".join(
                self.statement(child, depth, terminate=False) for child in node.nodes or ()
            )
            text = f"{subject} {header}"
            return text + ";" if terminate else text
        if node.function:
            return header + " " + self.function_body(node, depth)
        if node.nodes is None and node.name not in _BLOCK_HEADS:
            return header + ";" if terminate else header
        return header + " " + self.block(node, depth)

    def function_body(self, node: AtRule, depth: int) -> str:
        if not node.body:
            return "{}"
        return _reindent(node.body, INDENT * depth)

    def block(self, node: Container, depth: int) -> str:
        if not node.nodes:
            return "{}"
        children = [self.node(child, depth + 1) for child in node.nodes]
        return "{\n" + "\n".join(children) + "\n" + INDENT * depth + "}"
