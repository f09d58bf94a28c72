from __future__ import annotations

from templatemorph.parser import Availability


class FakeNode:
    """Minimal stand-in for a parsed node: just the attributes the morpher reads."""

    def __init__(self, name: str, attrs: dict[str, str] | None = None, children=None, data=None) -> None:
        self.name = name
        self.attrs = attrs if attrs is not None else {}
        self.children = list(children or [])
        self.data = data
        self.parent = None
        for child in self.children:
            child.parent = self


def el(name: str, attrs: dict[str, str] | None = None, *children: FakeNode) -> FakeNode:
    return FakeNode(name, dict(attrs or {}), children)


def text(data: str) -> FakeNode:
    return FakeNode("#text", None, None, data)


def comment(data: str) -> FakeNode:
    return FakeNode("#comment", None, None, data)


def fragment(*children: FakeNode) -> FakeNode:
    return FakeNode("#document-fragment", None, children)


class FakeCapability:
    """Capability that hands out a prepared tree and counts parses."""

    def __init__(self, root: FakeNode | None) -> None:
        self.root = root
        self.calls = 0
        self.availability = Availability.AVAILABLE if root is not None else Availability.UNAVAILABLE

    def parse(self, template: str):
        self.calls += 1
        return self.root
