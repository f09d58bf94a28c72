"""Serialize parsed nodes back to the markup they were parsed from.

Morphing substitutes an element's serialized form as a literal substring of
the template, so serialization has to reproduce the template's own text
(quote style, bare attributes, `/>`, unescaped `&&` in expressions) rather
than canonical HTML. An element is therefore sliced from the source from
its start tag up to its matching end tag wherever the parser recorded where
it starts, and only rebuilt from the node when it did not. Text is never
rebuilt from parsed data when a slice is possible, because the parser has
already decoded its entities.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from justhtml.constants import VOID_ELEMENTS

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from typing import Any

_TAG_OPEN_RE = re.compile(r"<([^\s/>]+)")
_TAG_CLOSE_RE = re.compile(r"\s*/?>")
_ATTR_RE = re.compile(r"""\s*([^\s"'>/=]+)(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'>]+))?""")


@dataclass(frozen=True, slots=True)
class StartTag:
    """A start tag as written in the source, split into attribute tokens.

    Each token keeps its leading whitespace, so dropping a token leaves the
    rest of the tag untouched.
    """

    name: str
    head: str
    attrs: tuple[tuple[str, str], ...]
    tail: str
    end: int

    def render(self, keep: Iterable[str] | None = None) -> str:
        if keep is None:
            return self.head + "".join(raw for _, raw in self.attrs) + self.tail
        names = {str(k).lower() for k in keep}
        return self.head + "".join(raw for name, raw in self.attrs if name in names) + self.tail


def scan_start_tag(source: str, pos: int) -> StartTag | None:
    """Split the start tag beginning at `source[pos]`, or None if there is none."""
    m = _TAG_OPEN_RE.match(source, pos)
    if m is None:
        return None

    attrs: list[tuple[str, str]] = []
    i = m.end()
    while True:
        close = _TAG_CLOSE_RE.match(source, i)
        if close is not None:
            return StartTag(
                name=m.group(1),
                head=m.group(0),
                attrs=tuple(attrs),
                tail=close.group(0),
                end=close.end(),
            )
        attr = _ATTR_RE.match(source, i)
        if attr is None or attr.end() == i:
            # Unterminated tag, or a stray character the tokenizer would
            # have skipped. Either way the source no longer lines up.
            return None
        attrs.append((attr.group(1).lower(), attr.group(0)))
        i = attr.end()


def node_source(node: Any, default: str) -> str:
    """Return the HTML the node was parsed from, looking up through its parents."""
    cur = node
    while cur is not None:
        src = getattr(cur, "_source_html", None)
        if src is not None:
            return src
        cur = getattr(cur, "parent", None)
    return default


def reconstruct_start_tag(name: str, attrs: Mapping[str, str | None] | None, *, self_closing: bool = False) -> str:
    parts = [f"<{name}"]
    for key, value in (attrs or {}).items():
        if value is None or value == "":
            parts.append(f" {key}")
        else:
            parts.append(f' {key}="{value}"')
    parts.append("/>" if self_closing else ">")
    return "".join(parts)


def start_tag(node: Any, source: str) -> tuple[str, int | None]:
    """Return the node's start tag with its current attributes, and where it ends in `source`.

    The end offset is None when the tag had to be rebuilt.
    """
    name = str(node.name)
    attrs = getattr(node, "attrs", None) or {}
    for offset_attr in ("_start_tag_start", "origin_offset"):
        pos = getattr(node, offset_attr, None)
        if pos is None:
            continue
        scanned = scan_start_tag(source, pos)
        if scanned is not None and scanned.name.lower() == name.lower():
            return scanned.render(attrs), scanned.end
    return reconstruct_start_tag(name, attrs, self_closing=bool(getattr(node, "_self_closing", False))), None


def end_tag(node: Any, source: str) -> str:
    start = getattr(node, "_end_tag_start", None)
    end = getattr(node, "_end_tag_end", None)
    if start is not None and end is not None:
        raw = source[start:end]
        if raw.startswith("</"):
            return raw

    if getattr(node, "_self_closing", False):
        return ""
    if getattr(node, "_end_tag_present", None) is False:
        return ""
    name = str(node.name)
    if name.lower() in VOID_ELEMENTS:
        return ""
    return f"</{name}>"


def child_nodes(node: Any) -> list[Any]:
    """Children of `node`; for `<template>` elements, the children of its content."""
    content = getattr(node, "template_content", None)
    if content is not None:
        return list(content.children or ())
    return list(getattr(node, "children", None) or ())


def _comment_markup(data: str) -> str:
    # `<?r ... ?>` is tokenized as a bogus comment whose data keeps the
    # leading "?", which is enough to write the instruction back out.
    if data.startswith("?"):
        return f"<{data}>"
    return f"<!--{data}-->"


def _find_end_tag(source: str, name: str, pos: int, limit: int) -> int | None:
    """Offset just past the end tag closing an element of `name` opened before `pos`."""
    pattern = re.compile(rf"<(/?){re.escape(name)}(?=[\s/>])", re.IGNORECASE)
    depth = 1
    while True:
        m = pattern.search(source, pos, limit)
        if m is None:
            return None
        if m.group(1):
            close = source.find(">", m.end(), limit)
            if close == -1:
                return None
            depth -= 1
            if depth == 0:
                return close + 1
            pos = close + 1
            continue
        nested = scan_start_tag(source, m.start())
        if nested is None or nested.end > limit:
            pos = m.end()
            continue
        depth += 1
        pos = nested.end


def _next_sibling_offset(node: Any) -> int | None:
    parent = getattr(node, "parent", None)
    if parent is None:
        return None
    siblings = child_nodes(parent)
    for i, sibling in enumerate(siblings):
        if sibling is node:
            if i + 1 < len(siblings):
                return getattr(siblings[i + 1], "origin_offset", None)
            return None
    return None


def _parent_content_end(node: Any, source: str) -> int | None:
    """Where the markup inside the node's parent stops: the start of its end tag."""
    parent = getattr(node, "parent", None)
    if parent is None:
        return None
    if str(parent.name).startswith("#"):
        # Only the top-level fragment spans the whole source.
        return len(source) if getattr(parent, "parent", None) is None else None
    _, tag_end = start_tag(parent, source)
    if tag_end is None:
        return None
    end = element_end(parent, source, tag_end)
    if end is None:
        return None
    close = source.rfind("</", tag_end, end)
    if close != -1 and _end_tag_re(str(parent.name)).fullmatch(source, close, end):
        return close
    return end


def _end_tag_re(name: str) -> re.Pattern[str]:
    return re.compile(rf"</{re.escape(name)}\s*>", re.IGNORECASE)


def element_end(node: Any, source: str, tag_end: int) -> int | None:
    """Offset just past the element's markup in `source`, end tag included.

    `tag_end` is where the element's start tag ends. The matching end tag is
    searched for up to where the next sibling starts, or where the parent's
    content stops. An element without an end tag of its own ends at that
    boundary. None when no boundary is known and no end tag was found.
    """
    end = getattr(node, "_end_tag_end", None)
    if end is not None and end >= tag_end:
        return end

    limit = _next_sibling_offset(node)
    if limit is None or limit < tag_end:
        limit = _parent_content_end(node, source)
        if limit is not None and limit < tag_end:
            limit = None

    found = _find_end_tag(source, str(node.name), tag_end, len(source) if limit is None else limit)
    if found is not None:
        return found
    return limit


def to_markup(node: Any, source: str) -> str:
    """Serialize `node` (with its current attributes) as it reads in `source`.

    Everything after the start tag is sliced from the source when the
    element could be located there. That slice ignores attribute changes
    further down the tree, so callers must serialize an element before
    touching any of its descendants.
    """
    name = str(node.name)
    if name == "#text":
        return str(node.data or "")
    if name == "#comment":
        return _comment_markup(str(node.data or ""))
    if name == "!doctype":
        return f"<!DOCTYPE {getattr(node.data, 'name', None) or 'html'}>"
    if name.startswith("#"):
        return "".join(to_markup(child, source) for child in child_nodes(node))

    tag, tag_end = start_tag(node, source)
    if name.lower() in VOID_ELEMENTS:
        return tag

    if tag_end is not None:
        end = element_end(node, source, tag_end)
        if end is not None:
            return tag + source[tag_end:end]

    inner = "".join(to_markup(child, source) for child in child_nodes(node))
    return tag + inner + end_tag(node, source)
