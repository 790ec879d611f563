"""Stylus lexer and tree builder for the subset stylast understands."""

from stylast.stylus.builder import DEFAULT_MAX_DEPTH, TreeBuilder, build_tree
from stylast.stylus.lexer import tokenize
from stylast.stylus.nodes import NodeKind, StylusNode

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "NodeKind",
    "StylusNode",
    "TreeBuilder",
    "build_tree",
    "tokenize",
]
