"""Verbatim printer: writes a tree back as the exact Stylus it came from."""

from __future__ import annotations

from stylast.model.nodes import (
    AtRule,
    Comment,
    Container,
    Declaration,
    Node,
    Root,
    Rule,
)


class StylusStringifier:
    """Prints nodes from their raws, preferring the verbatim Stylus forms.

    A normalized field (``selector``, ``value``, ``params``, ``body``) that no
    longer matches its raw has been edited and is printed as is.
    """

    def __init__(self) -> None:
        self._parts: list[str] = []

    def stringify(self, node: Node) -> str:
        self._parts = []
        self.node(node)
        return "".join(self._parts)

    def _write(self, text: str) -> None:
        self._parts.append(text)

    def _raw(self, node: Node, key: str) -> str:
        return node.raw(key, stylus=True)

    def _field(self, node: Node, key: str) -> str:
        value = getattr(node, key) or ""
        raw = node.raws.get(key)
        if raw is not None and raw.value == value:
            return raw.verbatim
        return value

    # ---- nodes -----------------------------------------------------------

    def node(self, node: Node, semicolon: bool = False) -> None:
        if isinstance(node, Root):
            self.root(node)
        elif isinstance(node, Rule):
            self.rule(node)
        elif isinstance(node, AtRule):
            self.atrule(node, semicolon)
        elif isinstance(node, Declaration):
            self.decl(node, semicolon)
        elif isinstance(node, Comment):
            self.comment(node)
        else:
            raise TypeError(f"cannot print {type(node).__name__}")

    def root(self, node: Root) -> None:
        self.body(node)
        self._write(self._raw(node, "after"))

    def comment(self, node: Comment) -> None:
        self._write(
            "/*" + self._raw(node, "left") + node.text + self._raw(node, "right") + "*/"
        )

    def decl(self, node: Declaration, semicolon: bool = False) -> None:
        text = node.prop + self._raw(node, "between") + self._field(node, "value")
        if node.important:
            text += node.raws.get("important", " !important")
        if semicolon:
            text += ";"
        self._write(text)

    def rule(self, node: Rule) -> None:
        self._write(self._field(node, "selector") + self._raw(node, "between"))
        self.block(node)
        self._write(node.raws.get("own_semicolon") or "")

    def atrule(self, node: AtRule, semicolon: bool = False) -> None:
        if node.postfix:
            self.postfix(node)
            if semicolon:
                self._write(";")
            return
        header = (
            node.raws.get("identifier", "@")
            + node.name
            + self._raw(node, "after_name")
            + self._field(node, "params")
        )
        if node.function:
            self._write(header + self._raw(node, "between") + self._field(node, "body"))
        elif node.nodes is None:
            self._write(header + self._raw(node, "between") + (";" if semicolon else ""))
        else:
            self._write(header + self._raw(node, "between"))
            self.block(node)
        self._write(node.raws.get("own_semicolon") or "")

    def postfix(self, node: AtRule) -> None:
        """Subject first, then the conditional written after it."""
        self.body(node)
        self._write(
            self._raw(node, "postfix_before")
            + node.raws.get("identifier", "")
            + node.name
            + self._raw(node, "after_name")
            + self._field(node, "params")
            + self._raw(node, "between")
        )

    # ---- bodies ----------------------------------------------------------

    def block(self, node: Container) -> None:
        if node.pythonic:
            self.body(node)
            return
        self._write("{")
        self.body(node)
        self._write(self._raw(node, "after") + "}")

    def body(self, node: Container) -> None:
        nodes = node.nodes or []
        last = len(nodes) - 1
        while last >= 0 and isinstance(nodes[last], Comment):
            last -= 1
        for i, child in enumerate(nodes):
            self._write(self._raw(child, "before"))
            self.node(child, self._semicolon(node, child, i == last))

    def _semicolon(self, parent: Container, child: Node, is_last: bool) -> bool:
        if not child.is_semicolon_optional or getattr(child, "omitted_semicolon", False):
            return False
        if isinstance(parent, AtRule) and parent.postfix:
            return False
        return not is_last or bool(parent.raws.get("semicolon"))
