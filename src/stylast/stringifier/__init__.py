"""Printers turning a unified tree back into text."""

from __future__ import annotations

from stylast.model.nodes import Node
from stylast.stringifier.css import CssStringifier
from stylast.stringifier.stylus import StylusStringifier

STRINGIFIERS = {
    "stylus": StylusStringifier,
    "css": CssStringifier,
}


def stringify(node: Node, syntax: str = "stylus") -> str:
    """Print ``node``.

    ``syntax="stylus"`` reproduces the parsed source byte for byte;
    ``syntax="css"`` prints the canonical form.
    """
    try:
        stringifier = STRINGIFIERS[syntax]
    except KeyError:
        raise ValueError(
            f"unknown syntax {syntax!r}; expected one of {sorted(STRINGIFIERS)}"
        ) from None
    return stringifier().stringify(node)


__all__ = ["CssStringifier", "STRINGIFIERS", "StylusStringifier", "stringify"]
