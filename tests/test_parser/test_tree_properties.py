"""Whole-tree properties checked over every fixture."""

from pathlib import Path

import pytest

from stylast import AtRule, parse, stringify
from stylast.model import Container, Node, RawValue

FIXTURES = Path(__file__).parent.parent / "fixtures"

FIXTURE_FILES = sorted(FIXTURES.glob("*.styl"))


def _load(path: Path) -> Node:
    return parse(path.read_text(), file=path.name)


def _canonical(path: Path) -> Node:
    return parse(stringify(_load(path), syntax="css"))


def _check_ranges(container: Container) -> None:
    nodes = container.nodes or []
    for previous, current in zip(nodes, nodes[1:]):
        assert previous.source.end.offset < current.source.start.offset, (
            previous,
            current,
        )
    for node in nodes:
        source = node.source
        assert source.start.offset <= source.end.offset
        if not isinstance(node, Container):
            continue
        if source.start_children is not None:
            assert source.start.offset <= source.start_children.offset
            assert source.start_children.offset <= source.end.offset + 1
        if source.end_children is not None:
            assert source.start_children.offset <= source.end_children.offset
            assert source.end_children.offset <= source.end.offset
        # The subject of a postfix construct is written before its keyword.
        if not (isinstance(node, AtRule) and node.postfix):
            for child in node.nodes or []:
                assert source.start.offset <= child.source.start.offset
                assert child.source.end.offset <= source.end.offset
        _check_ranges(node)


def _verbatim_raws(root: Node) -> list[tuple[Node, str]]:
    return [
        (node, key)
        for node in [root, *root.walk()]
        for key, value in node.raws.items()
        if isinstance(value, RawValue) or key.startswith("stylus_")
    ]


class TestSourceRanges:
    @pytest.mark.parametrize("path", FIXTURE_FILES, ids=lambda p: p.name)
    def test_siblings_are_ordered_and_children_contained(self, path: Path) -> None:
        _check_ranges(_load(path))

    @pytest.mark.parametrize("path", FIXTURE_FILES, ids=lambda p: p.name)
    def test_canonical_form(self, path: Path) -> None:
        _check_ranges(_canonical(path))


class TestMinimality:
    @pytest.mark.parametrize("path", FIXTURE_FILES, ids=lambda p: p.name)
    def test_canonical_input_has_no_verbatim_raws(self, path: Path) -> None:
        assert _verbatim_raws(_canonical(path)) == []

    def test_function_body(self) -> None:
        root = parse(stringify(parse("foo(a)\n  return a\n"), syntax="css"))
        function = root.first
        assert function.body == "{\n    return a\n}"
        assert "body" not in function.raws

    def test_nested_function_body(self) -> None:
        root = parse(".a {\n    foo(a) {\n        return a\n    }\n}\n")
        function = root.first.first
        assert function.function
        assert function.body == "{\n        return a\n    }"
        assert "body" not in function.raws

    def test_formatted_input_keeps_verbatim_raws(self) -> None:
        root = parse(".a // c\n  b  c\n")
        assert (root.first.first, "stylus_before") in _verbatim_raws(root)
