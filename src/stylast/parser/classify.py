"""Predicates over the Stylus tree that decide how a node is translated."""

from __future__ import annotations

from collections.abc import Sequence

from stylast.parser.scanners import scan_expression
from stylast.parser.source_code import SourceCode
from stylast.stylus.nodes import NodeKind, StylusNode


def _block_nodes(node: StylusNode | None) -> list[StylusNode]:
    if node is None or node.block is None:
        return []
    return node.block.nodes


def is_mixin_function(node: StylusNode) -> bool:
    """Whether a function definition only holds style content.

    Such a function is a mixin: its body is translated like any block.
    Anything computing a value (return, arithmetic, comments...) keeps the
    whole body opaque.
    """
    nodes = _block_nodes(node)
    return bool(nodes) and is_all_mixin_nodes(nodes)


def is_all_mixin_nodes(nodes: Sequence[StylusNode]) -> bool:
    for node in nodes:
        kind = node.kind
        if kind is NodeKind.PROPERTY:
            continue
        if kind is NodeKind.GROUP:
            if node.nodes and all(
                s.kind is NodeKind.SELECTOR and is_all_mixin_nodes(_block_nodes(s))
                for s in node.nodes
            ):
                continue
            return False
        if kind is NodeKind.IF:
            branches = [node, *node.elses]
            if all(
                b.block is not None and is_all_mixin_nodes(b.block.nodes)
                for b in branches
            ):
                continue
            return False
        if kind is NodeKind.EACH:
            if node.block is not None and is_all_mixin_nodes(node.block.nodes):
                continue
            return False
        if kind is NodeKind.EXPRESSION and is_selector_continuation(
            node, nodes, nodes.index(node)
        ):
            continue
        return False
    return True


def is_selector_continuation(
    node: StylusNode, siblings: Sequence[StylusNode], index: int
) -> bool:
    """Whether a bare member expression is really the first line of a selector.

    ``a.b`` alone on a line followed by a selector with a block is one
    selector list written over several lines.
    """
    if not _is_member(node):
        return False
    for sibling in siblings[index + 1 :]:
        if sibling.kind is NodeKind.GROUP:
            return bool(sibling.nodes) and sibling.nodes[0].kind is NodeKind.SELECTOR
        if not _is_member(sibling):
            return False
    return False


def _is_member(node: StylusNode) -> bool:
    return (
        node.kind is NodeKind.EXPRESSION
        and len(node.nodes) == 1
        and node.nodes[0].kind is NodeKind.MEMBER
    )


def is_interpolation(node: StylusNode, source: SourceCode) -> bool:
    """Whether an expression is nothing but ``{...}`` on its line."""
    start = source.index_of(node)
    if source.text[start] != "{":
        return False
    expression = scan_expression(source, start)
    tokens = source.tokens
    index = source.token_index(expression.end_index) + 1
    while index < len(tokens) and tokens[index].type == "WS":
        index += 1
    return index == len(tokens) or tokens[index].type in (
        "NEWLINE",
        "LINE_COMMENT",
        "RBRACE",
    )
