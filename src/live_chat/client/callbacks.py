from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from live_chat.infrastructure.ws.protocol import ChatFrame


@dataclass(frozen=True, slots=True)
class TypingEvent:
    conversation_id: str
    sender_id: str
    sender_type: str


@dataclass(slots=True)
class ChatCallbacks:
    """Caller hooks. The client reads them at dispatch time, so they can be swapped at any point."""

    on_message: Callable[[ChatFrame], None] | None = None
    on_typing: Callable[[TypingEvent], None] | None = None
    on_error: Callable[[str], None] | None = None
