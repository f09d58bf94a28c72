"""Ordered string-to-string passes applied to template source before compilation.

The morpher is the only pass registered by default. Removing it from the
pipeline (or disabling its stage) turns morphing off without paying for the
candidate check; emptying its rules has the same effect at a small cost.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .morpher import default_morpher

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@dataclass(frozen=True, slots=True)
class Stage:
    transform: Callable[[str], str]
    name: str
    enabled: bool

    def __init__(
        self,
        transform: Callable[[str], str],
        *,
        name: str | None = None,
        enabled: bool = True,
    ) -> None:
        if name is None:
            name = getattr(transform, "__name__", None) or type(transform).__name__
        object.__setattr__(self, "transform", transform)
        object.__setattr__(self, "name", str(name))
        object.__setattr__(self, "enabled", bool(enabled))


class TransformPipeline:
    def __init__(self, stages: list[Stage] | tuple[Stage, ...] | None = None) -> None:
        if stages is None:
            stages = [Stage(default_morpher(), name="morpher")]
        self._stages: list[Stage] = list(stages)

    def apply(self, template: str) -> str:
        for stage in self._stages:
            if not stage.enabled:
                continue
            template = stage.transform(template)
        return template

    __call__ = apply

    def append(self, stage: Stage) -> None:
        self._stages.append(stage)

    def insert(self, index: int, stage: Stage) -> None:
        self._stages.insert(index, stage)

    def remove(self, name: str) -> None:
        """Drop every stage called `name`; unknown names are ignored."""
        self._stages = [stage for stage in self._stages if stage.name != name]

    def names(self) -> list[str]:
        return [stage.name for stage in self._stages]

    def __iter__(self) -> Iterator[Stage]:
        return iter(list(self._stages))

    def __len__(self) -> int:
        return len(self._stages)
