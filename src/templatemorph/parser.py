"""Access to the HTML fragment parser.

Morphing needs `justhtml`. When it cannot be imported the morpher degrades
to an identity transform: the first failed import is logged once and the
capability stays unavailable for its whole lifetime.
"""

from __future__ import annotations

import importlib
import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


class _StrEnum(str, Enum):
    """Backport of enum.StrEnum (Python 3.11+)."""


class Availability(_StrEnum):
    UNKNOWN = "unknown"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class HTMLCapability:
    """Lazily imported HTML fragment parser.

    `availability` may be injected: `Availability.UNAVAILABLE` turns parsing
    off without touching the import system, which is how the fallback path
    is tested.
    """

    def __init__(
        self,
        *,
        availability: Availability = Availability.UNKNOWN,
        module: str = "justhtml",
        fragment_context: str = "div",
    ) -> None:
        self.module = str(module)
        self.fragment_context = str(fragment_context)
        self._availability = Availability(availability)
        self._lock = threading.Lock()
        self._document_cls: Any = None
        self._context_cls: Any = None

    @property
    def availability(self) -> Availability:
        return self._availability

    def probe(self) -> Availability:
        """Import the parser on first use; later calls return the cached outcome."""
        if self._availability is Availability.UNAVAILABLE or self._document_cls is not None:
            return self._availability

        with self._lock:
            if self._availability is Availability.UNAVAILABLE or self._document_cls is not None:
                return self._availability
            try:
                package = importlib.import_module(self.module)
            except ModuleNotFoundError as exc:
                # Only a missing parser means "unavailable". A broken or
                # incompatible install fails loudly.
                if exc.name is None or not (self.module == exc.name or self.module.startswith(f"{exc.name}.")):
                    raise
                logger.warning(
                    "Install %s to enable attribute morphing; templates pass through unchanged (%s)",
                    self.module,
                    exc,
                )
                self._availability = Availability.UNAVAILABLE
                return self._availability

            # justhtml 2.x no longer ships this module; the pin in
            # pyproject.toml keeps us on the 1.x layout.
            context = importlib.import_module(f"{self.module}.context")
            self._document_cls = package.JustHTML
            self._context_cls = context.FragmentContext
            self._availability = Availability.AVAILABLE
            return self._availability

    def parse(self, template: str) -> Any | None:
        """Parse `template` as a fragment and return its root, or None when unavailable."""
        if self.probe() is not Availability.AVAILABLE:
            return None
        doc = self._document_cls(
            template,
            fragment_context=self._context_cls(self.fragment_context),
            sanitize=False,
            track_node_locations=True,
        )
        return doc.root

    def __repr__(self) -> str:
        return f"HTMLCapability(module={self.module!r}, availability={self._availability.value!r})"
