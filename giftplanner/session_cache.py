"""In-memory cache scoped to a single running session."""

from __future__ import annotations

import logging
from typing import Any, Iterator, Optional

logger = logging.getLogger(__name__)


class SessionCache:
    """Key/value store shared by the fetchers for one session.

    Entries never expire.  The owner calls :meth:`clear` when the session ends
    (the web server does so in its lifespan hook).
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}

    @classmethod
    def create(cls) -> "SessionCache":
        cache = cls()
        logger.debug("Session cache created")
        return cache

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        return self._entries.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = value

    def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.debug("Session cache cleared (%s entries dropped)", count)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)
