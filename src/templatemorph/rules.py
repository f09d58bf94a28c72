"""Morph rules and the registry that orders them.

A morph rule pairs an attribute name with a replacement pattern. The pattern
may reference three placeholders:

  %morph       the attribute name ('if')
  %expression  the attribute value ('@foo')
  %content     the element with the attribute removed ('<a>x</a>')

The registry keeps rules in insertion order. That order matters: when an
element carries several recognised attributes, the first rule in the
registry produces the outermost wrapper.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping


_STANDARD_PATTERN = "<?r %morph %expression ?>%content<?r end ?>"

DEFAULT_MORPHS: dict[str, str] = {
    "if": _STANDARD_PATTERN,
    "unless": _STANDARD_PATTERN,
    "for": _STANDARD_PATTERN,
    "each": "<?r %expression.%morph do |_e| ?>%content<?r end ?>",
    "times": "<?r %expression.%morph do |_t| ?>%content<?r end ?>",
}


@dataclass(frozen=True, slots=True)
class MorphRule:
    name: str
    pattern: str

    def __init__(self, name: object, pattern: object) -> None:
        object.__setattr__(self, "name", str(name))
        object.__setattr__(self, "pattern", str(pattern))

    @property
    def trigger(self) -> str:
        """Substring whose presence makes this rule a candidate."""
        return f"{self.name}="

    def expand(self, expression: str, content: str) -> str:
        # Order is significant: a placeholder that appears inside an
        # already substituted value is substituted as well.
        return (
            self.pattern.replace("%morph", self.name)
            .replace("%expression", expression)
            .replace("%content", content)
        )


class MorphRegistry:
    """Ordered attribute-name to rule mapping.

    `MorphRegistry()` starts with `DEFAULT_MORPHS`; pass a mapping (an empty
    one disables morphing entirely) to start from something else.
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Mapping[str, str] | None = None) -> None:
        self._rules: dict[str, MorphRule] = {}
        self.configure(DEFAULT_MORPHS if rules is None else rules)

    def configure(self, rules: Mapping[str, str], *, replace: bool = False) -> None:
        """Merge `rules` into the registry, or swap the whole set with `replace=True`.

        Patterns are not validated. A broken pattern only shows up once the
        rewritten template reaches the template compiler.
        """
        if replace:
            self._rules = {}
        for name, pattern in rules.items():
            self.register(name, pattern)

    def register(self, name: str, pattern: str) -> MorphRule:
        rule = MorphRule(name, pattern)
        self._rules[rule.name] = rule
        return rule

    def unregister(self, name: str) -> None:
        self._rules.pop(str(name), None)

    def get(self, name: str) -> MorphRule | None:
        return self._rules.get(str(name))

    def names(self) -> list[str]:
        return list(self._rules)

    def as_dict(self) -> dict[str, str]:
        return {name: rule.pattern for name, rule in self._rules.items()}

    def copy(self) -> MorphRegistry:
        return MorphRegistry(self.as_dict())

    def candidates(self, template: str) -> list[MorphRule]:
        """Rules whose `name=` occurs somewhere in `template`, in registry order."""
        return [rule for rule in self._rules.values() if rule.trigger in template]

    def __contains__(self, name: object) -> bool:
        return str(name) in self._rules

    def __iter__(self) -> Iterator[MorphRule]:
        return iter(list(self._rules.values()))

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"MorphRegistry({self.names()!r})"
