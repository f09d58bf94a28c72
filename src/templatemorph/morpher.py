"""Rewrite control attributes on HTML elements into template control flow.

Given the default rules, an element such as

    <div if="@name">#@name</div>

becomes

    <?r if @name ?><div>#@name</div><?r end ?>

and likewise for `unless`, `for`, `each` and `times`:

    <div each="[1,2,3]">#{_e}</div>
    <?r [1,2,3].each do |_e| ?><div>#{_e}</div><?r end ?>

Blocks yield `_e` for `each` and `_t` for `times`; the name is the first
letter of the morph with an underscore prefixed. A variable with the same
name defined outside the block is overwritten.

Rewriting works on the template string: each matched element's serialized
form is replaced, everywhere it occurs, by the expanded rule pattern. Two
identical pieces of matching markup are therefore always rewritten the same
way. Templates that contain no `name=` for any rule are returned without
being parsed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .parser import Availability, HTMLCapability
from .rules import MorphRegistry

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from typing import Any, Protocol

    from .rules import MorphRule

    class ReportCallback(Protocol):
        def __call__(self, msg: str, *, node: Any | None = None) -> None: ...


logger = logging.getLogger(__name__)


def iter_elements(root: Any) -> Iterator[Any]:
    """Yield element nodes below `root` depth-first, parents before children."""
    from .markup import child_nodes

    # Iterative traversal keeps deep templates off the recursion limit.
    stack = list(reversed(child_nodes(root)))
    while stack:
        node = stack.pop()
        name = str(node.name)
        if name.startswith("#") or name == "!doctype":
            continue
        yield node
        stack.extend(reversed(child_nodes(node)))


class Morpher:
    """Attribute morpher bound to a rule registry and a parser capability.

    Both collaborators are injectable. Without arguments the morpher uses
    the default rules and imports `justhtml` on first use; pass
    `availability=Availability.UNAVAILABLE` (or a prepared `capability`) to
    run it in pass-through mode.
    """

    def __init__(
        self,
        rules: MorphRegistry | Mapping[str, str] | None = None,
        *,
        capability: HTMLCapability | None = None,
        availability: Availability = Availability.UNKNOWN,
        fragment_context: str = "div",
        report: ReportCallback | None = None,
    ) -> None:
        if isinstance(rules, MorphRegistry):
            self.registry = rules
        else:
            self.registry = MorphRegistry(rules)
        if capability is None:
            capability = HTMLCapability(availability=availability, fragment_context=fragment_context)
        self.capability = capability
        self.report = report

    @property
    def availability(self) -> Availability:
        return self.capability.availability

    def configure(self, rules: Mapping[str, str], *, replace: bool = False) -> None:
        self.registry.configure(rules, replace=replace)

    def transform(self, template: str) -> str:
        """Return `template` with every recognised control attribute morphed.

        Never raises for string input: without candidate rules, or without
        the parser, the template comes back unchanged.
        """
        if not isinstance(template, str):
            template = str(template)

        rules = self.registry.candidates(template)
        if not rules:
            return template

        root = self.capability.parse(template)
        if root is None:
            return template

        # markup needs justhtml itself, so it is only imported once parsing worked.
        from .markup import node_source

        source = node_source(root, template)
        result = template
        substituted: set[str] = set()
        for element in iter_elements(root):
            result = self._morph_element(element, rules, result, source, substituted)
        return result

    __call__ = transform

    def _morph_element(
        self,
        node: Any,
        rules: list[MorphRule],
        template: str,
        source: str,
        substituted: set[str],
    ) -> str:
        from .markup import to_markup

        attrs = getattr(node, "attrs", None)
        if not attrs:
            return template

        for rule in rules:
            if rule.name not in attrs:
                continue
            expression = attrs[rule.name] or ""
            old = to_markup(node, source)
            del attrs[rule.name]
            replacement = rule.expand(expression, to_markup(node, source))

            if old in template:
                template = template.replace(old, replacement)
                substituted.add(old)
                logger.debug("Morphed %r on <%s>: %r", rule.name, node.name, expression)
                if self.report is not None:
                    self.report(f"Morphed '{rule.name}' on <{node.name}>", node=node)
            elif old not in substituted:
                # Identical markup rewritten earlier is expected to be gone.
                logger.debug("No literal match for <%s> carrying %r: %r", node.name, rule.name, old)
                if self.report is not None:
                    self.report(f"No literal match for <{node.name}> carrying '{rule.name}'", node=node)
        return template

    def __repr__(self) -> str:
        return f"Morpher({self.registry!r}, availability={self.availability.value!r})"


_default_morpher: Morpher | None = None


def default_morpher() -> Morpher:
    """The process-wide morpher used by `transform` and `configure`."""
    global _default_morpher
    if _default_morpher is None:
        _default_morpher = Morpher()
    return _default_morpher


def transform(template: str) -> str:
    return default_morpher().transform(template)


def configure(rules: Mapping[str, str], *, replace: bool = False) -> None:
    """Add or override rules on the default morpher; `replace=True` drops the others.

    `configure({}, replace=True)` switches morphing off.
    """
    default_morpher().configure(rules, replace=replace)
