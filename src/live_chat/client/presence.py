from __future__ import annotations

import logging
from functools import partial
from types import MappingProxyType
from typing import Mapping

from live_chat.application.ports.scheduler import Scheduler, TimerHandle
from live_chat.config import settings

logger = logging.getLogger(__name__)


class TypingPresenceTracker:
    """Who is typing in which conversation, as reported by the other side.

    Each entry expires ``timeout_ms`` after the last typing frame for that
    conversation. A newer frame cancels the pending expiry of the older one.
    """

    def __init__(self, scheduler: Scheduler, timeout_ms: int | None = None) -> None:
        self._scheduler = scheduler
        self._timeout_ms = settings.TYPING_TIMEOUT_MS if timeout_ms is None else timeout_ms
        self._entries: dict[str, str] = {}
        self._expiries: dict[str, TimerHandle] = {}

    def mark_typing(self, conversation_id: str, sender_type: str) -> None:
        self._entries[conversation_id] = sender_type
        previous = self._expiries.pop(conversation_id, None)
        if previous is not None:
            previous.cancel()
        self._expiries[conversation_id] = self._scheduler.call_later(
            self._timeout_ms, partial(self._expire, conversation_id),
        )

    def clear(self) -> None:
        for handle in self._expiries.values():
            handle.cancel()
        self._expiries.clear()
        self._entries.clear()

    def snapshot(self) -> Mapping[str, str]:
        return MappingProxyType(dict(self._entries))

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _expire(self, conversation_id: str) -> None:
        self._expiries.pop(conversation_id, None)
        if self._entries.pop(conversation_id, None) is not None:
            logger.debug("Typing indicator expired for conversation %s", conversation_id)
