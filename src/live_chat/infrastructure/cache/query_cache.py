"""In-process store of fetched views, keyed like the REST queries that fill it."""
from __future__ import annotations

import logging
from typing import Any, Callable

from live_chat.application.ports.cache import QueryKey

logger = logging.getLogger(__name__)

InvalidationListener = Callable[[QueryKey], None]


class QueryCache:
    """Implements application.ports.cache.QueryInvalidator.

    Invalidating a key drops every entry whose key starts with it, so
    ``("conversations",)`` also clears ``("conversations", "open")``.
    """

    def __init__(self) -> None:
        self._entries: dict[QueryKey, Any] = {}
        self._listeners: list[InvalidationListener] = []

    def get(self, key: QueryKey, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def set(self, key: QueryKey, value: Any) -> None:
        self._entries[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def invalidate(self, key: QueryKey) -> None:
        stale = [k for k in self._entries if k[: len(key)] == key]
        for k in stale:
            del self._entries[k]
        logger.debug("Invalidated %s (%d entries)", key, len(stale))
        for listener in list(self._listeners):
            try:
                listener(key)
            except Exception:
                logger.exception("Invalidation listener failed for %s", key)

    def add_listener(self, listener: InvalidationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove
