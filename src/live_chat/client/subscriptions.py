from __future__ import annotations

from live_chat.domain.value_objects.enums import FrameType
from live_chat.infrastructure.ws.protocol import ChatFrame


def subscribe_frame(conversation_id: str) -> ChatFrame:
    return ChatFrame(type=FrameType.SUBSCRIBE, conversation_id=conversation_id)


class SubscriptionTracker:
    """Remembers the single active conversation across reconnects. Last call wins."""

    def __init__(self) -> None:
        self._active: str | None = None

    @property
    def active_conversation_id(self) -> str | None:
        return self._active

    def activate(self, conversation_id: str) -> ChatFrame:
        self._active = conversation_id
        return subscribe_frame(conversation_id)

    def clear(self) -> None:
        self._active = None

    def resubscribe_frame(self) -> ChatFrame | None:
        if self._active is None:
            return None
        return subscribe_frame(self._active)
