from __future__ import annotations

from typing import Protocol

QueryKey = tuple[str | None, ...]

CONVERSATIONS_KEY: QueryKey = ("conversations",)
CONVERSATION_STATS_KEY: QueryKey = ("conversationStats",)


def chat_messages_key(conversation_id: str | None) -> QueryKey:
    return ("chatMessages", conversation_id)


class QueryInvalidator(Protocol):
    def invalidate(self, key: QueryKey) -> None: ...
