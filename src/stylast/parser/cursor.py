from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from functools import cached_property

from stylast.model.nodes import Container
from stylast.stylus.nodes import StylusNode


@dataclass(eq=False)
class Cursor:
    """Position of a Stylus node among its siblings during translation.

    ``parent`` is the cursor of the enclosing node and ``parent_node`` the
    unified container the node is translated into.
    """

    nodes: Sequence[StylusNode]
    index: int
    parent: Cursor | None = None
    parent_node: Container | None = None

    @property
    def node(self) -> StylusNode:
        return self.nodes[self.index]

    @property
    def next_sibling(self) -> StylusNode | None:
        index = self.index + 1
        return self.nodes[index] if index < len(self.nodes) else None

    @cached_property
    def next(self) -> StylusNode | None:
        """The node following this one in the text, looking through parents."""
        sibling = self.next_sibling
        if sibling is not None:
            return sibling
        return self.parent.next if self.parent is not None else None
