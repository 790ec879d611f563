"""Unified CSS AST and diagnostic models."""

from stylast.model.diagnostic import Diagnostic, Severity
from stylast.model.nodes import (
    AtRule,
    Comment,
    Container,
    Declaration,
    Input,
    Node,
    Position,
    RawValue,
    Root,
    Rule,
    Source,
    raw_value,
)

__all__ = [
    "AtRule",
    "Comment",
    "Container",
    "Declaration",
    "Diagnostic",
    "Input",
    "Node",
    "Position",
    "RawValue",
    "Root",
    "Rule",
    "Severity",
    "Source",
    "raw_value",
]
