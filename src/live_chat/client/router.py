"""Inbound frame dispatch for the chat client."""
from __future__ import annotations

import logging
from typing import Callable

from live_chat.application.exceptions import FrameDecodeError
from live_chat.application.ports.cache import (
    CONVERSATION_STATS_KEY,
    CONVERSATIONS_KEY,
    QueryInvalidator,
    chat_messages_key,
)
from live_chat.client.callbacks import ChatCallbacks, TypingEvent
from live_chat.client.heartbeat import HeartbeatMonitor
from live_chat.client.presence import TypingPresenceTracker
from live_chat.domain.value_objects.enums import FrameType, SenderType
from live_chat.infrastructure.ws.protocol import ChatFrame, decode_frame

logger = logging.getLogger(__name__)

FrameHandler = Callable[[ChatFrame], None]


class MessageRouter:
    """Classifies frames by ``type`` and applies exactly one side effect per frame."""

    def __init__(
        self,
        *,
        invalidator: QueryInvalidator,
        presence: TypingPresenceTracker,
        heartbeat: HeartbeatMonitor,
        callbacks: Callable[[], ChatCallbacks],
        on_client_id: Callable[[str | None], None] | None = None,
    ) -> None:
        self._invalidator = invalidator
        self._presence = presence
        self._heartbeat = heartbeat
        self._callbacks = callbacks
        self._on_client_id = on_client_id
        self._handlers: dict[str, FrameHandler] = {
            FrameType.PING: self._on_ping,
            FrameType.PONG: self._on_pong,
            FrameType.MESSAGE: self._on_message,
            FrameType.TYPING: self._on_typing,
            FrameType.READ: self._on_read,
            FrameType.STATUS: self._on_list_change,
            FrameType.SUBSCRIBED: self._on_subscribed,
            FrameType.NEW_MESSAGE_NOTIFICATION: self._on_list_change,
            FrameType.LIVE_AGENT_REQUEST: self._on_live_agent_request,
            FrameType.ERROR: self._on_error,
            FrameType.CONNECTED: self._on_connected,
        }

    def route_raw(self, raw: str | bytes) -> None:
        try:
            frame = decode_frame(raw)
        except FrameDecodeError as exc:
            logger.warning("Discarding malformed frame: %s", exc.detail)
            return
        self.route(frame)

    def route(self, frame: ChatFrame) -> None:
        handler = self._handlers.get(frame.type)
        if handler is None:
            logger.debug("Ignoring frame of unknown type %r", frame.type)
            return
        try:
            handler(frame)
        except Exception:
            logger.exception("Error handling %s frame", frame.type)

    def _on_ping(self, frame: ChatFrame) -> None:
        self._heartbeat.reply()

    def _on_pong(self, frame: ChatFrame) -> None:
        self._heartbeat.acknowledge()

    def _on_message(self, frame: ChatFrame) -> None:
        self._invalidator.invalidate(chat_messages_key(frame.conversation_id))
        self._invalidate_lists()
        self._notify_message(frame)

    def _on_typing(self, frame: ChatFrame) -> None:
        if not (frame.conversation_id and frame.sender_id):
            return
        sender_type = frame.sender_type or SenderType.VISITOR
        self._presence.mark_typing(frame.conversation_id, sender_type)
        on_typing = self._callbacks().on_typing
        if on_typing is not None:
            on_typing(TypingEvent(frame.conversation_id, frame.sender_id, sender_type))

    def _on_read(self, frame: ChatFrame) -> None:
        self._invalidator.invalidate(chat_messages_key(frame.conversation_id))

    def _on_list_change(self, frame: ChatFrame) -> None:
        self._invalidate_lists()

    def _on_subscribed(self, frame: ChatFrame) -> None:
        logger.debug("Subscribed to conversation %s", frame.conversation_id)

    def _on_live_agent_request(self, frame: ChatFrame) -> None:
        # Delivered through on_message; consumers branch on frame.type.
        self._invalidate_lists()
        self._notify_message(frame)

    def _on_error(self, frame: ChatFrame) -> None:
        on_error = self._callbacks().on_error
        if on_error is not None:
            on_error(frame.message or "")

    def _on_connected(self, frame: ChatFrame) -> None:
        logger.info("Relay assigned client id %s", frame.client_id)
        if self._on_client_id is not None:
            self._on_client_id(frame.client_id)

    def _invalidate_lists(self) -> None:
        self._invalidator.invalidate(CONVERSATIONS_KEY)
        self._invalidator.invalidate(CONVERSATION_STATS_KEY)

    def _notify_message(self, frame: ChatFrame) -> None:
        on_message = self._callbacks().on_message
        if on_message is not None:
            on_message(frame)
