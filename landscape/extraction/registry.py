"""
Extractor registry — explicit catalog of extractor classes keyed by id.

Constructed at program start and passed into the orchestrator.  Listing
preserves insertion order.  Registering an id twice replaces the class in
place and logs a warning.  The registry freezes on the first run; any
later ``register`` is a contract violation.
"""

from __future__ import annotations

import logging
import threading

from landscape.core.exceptions import FatalExtractorError
from landscape.extraction.base import BaseExtractor

logger = logging.getLogger(__name__)


class ExtractorRegistry:
    def __init__(self, classes: list[type[BaseExtractor]] | None = None) -> None:
        self._classes: dict[str, type[BaseExtractor]] = {}
        self._frozen = False
        self._lock = threading.Lock()
        for cls in classes or []:
            self.register(cls)

    def register(self, cls: type[BaseExtractor]) -> type[BaseExtractor]:
        """Add or replace an extractor class.  Usable as a decorator."""
        if not isinstance(cls, type) or not issubclass(cls, BaseExtractor):
            raise FatalExtractorError(f"{cls!r} is not a BaseExtractor subclass")
        cls.validate_identity()
        with self._lock:
            if self._frozen:
                raise FatalExtractorError(
                    f"Registry is frozen; cannot register {cls.extractor_id} after the first run"
                )
            if cls.extractor_id in self._classes:
                logger.warning(
                    "Extractor replaced extractor_id=%s old=%s new=%s",
                    cls.extractor_id, self._classes[cls.extractor_id].__name__, cls.__name__,
                )
            self._classes[cls.extractor_id] = cls
        return cls

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, extractor_id: str) -> type[BaseExtractor] | None:
        return self._classes.get(extractor_id)

    def ids(self) -> list[str]:
        return list(self._classes)

    def position(self, extractor_id: str) -> int:
        return self.ids().index(extractor_id)

    def list(
        self,
        *,
        modules: list[str] | None = None,
        categories: list[str] | None = None,
        extractor_ids: list[str] | None = None,
    ) -> list[type[BaseExtractor]]:
        """Registry-ordered classes matching every given filter."""
        out = []
        for eid, cls in self._classes.items():
            if modules and cls.module not in modules:
                continue
            if categories and cls.category not in categories:
                continue
            if extractor_ids and eid not in extractor_ids:
                continue
            out.append(cls)
        return out

    def describe(self) -> list[dict]:
        return [cls.describe() for cls in self._classes.values()]

    def __contains__(self, extractor_id: str) -> bool:
        return extractor_id in self._classes

    def __len__(self) -> int:
        return len(self._classes)
