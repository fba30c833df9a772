"""In-process registry of relay connections and conversation subscriptions."""
from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from typing import Any, Iterable

from fastapi import WebSocket

from live_chat.domain.value_objects.enums import ClientType, FrameType
from live_chat.infrastructure.ws.protocol import ChatFrame, encode_frame, epoch_ms, utc_now_iso

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase
PREVIEW_LENGTH = 100


def generate_client_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"client_{epoch_ms()}_{suffix}"


@dataclass(slots=True)
class RelayClient:
    client_id: str
    ws: WebSocket
    is_admin: bool = False
    user_id: str | None = None
    visitor_id: str | None = None
    active_conversation_id: str | None = None


class ConnectionManager:
    """Tracks connected chat clients and the single conversation each one follows."""

    def __init__(self) -> None:
        self._clients: dict[str, RelayClient] = {}
        self._subscriptions: dict[str, set[str]] = {}

    async def connect(self, ws: WebSocket) -> RelayClient:
        await ws.accept()
        client = RelayClient(client_id=generate_client_id(), ws=ws)
        self._clients[client.client_id] = client
        logger.info("WS connected: %s (total=%d)", client.client_id, len(self._clients))
        await self.send(client, ChatFrame(type=FrameType.CONNECTED, client_id=client.client_id))
        return client

    def disconnect(self, client_id: str) -> None:
        if self._clients.pop(client_id, None) is None:
            return
        for conversation_id in list(self._subscriptions):
            self.unsubscribe(client_id, conversation_id)
        logger.info("WS disconnected: %s", client_id)

    def get(self, client_id: str) -> RelayClient | None:
        return self._clients.get(client_id)

    def __len__(self) -> int:
        return len(self._clients)

    def join(self, client_id: str, frame: ChatFrame) -> None:
        client = self._clients.get(client_id)
        if client is None:
            return
        if frame.client_type == ClientType.ADMIN:
            client.is_admin = True
            client.user_id = frame.sender_id
        else:
            client.visitor_id = frame.visitor_id
        logger.info("Client %s joined as %s", client_id, frame.client_type or ClientType.VISITOR)

    def subscribe(self, client_id: str, conversation_id: str) -> None:
        client = self._clients.get(client_id)
        if client is None:
            return
        if client.active_conversation_id and client.active_conversation_id != conversation_id:
            self.unsubscribe(client_id, client.active_conversation_id)
        self._subscriptions.setdefault(conversation_id, set()).add(client_id)
        client.active_conversation_id = conversation_id
        logger.debug("Client %s subscribed to conversation %s", client_id, conversation_id)

    def unsubscribe(self, client_id: str, conversation_id: str) -> None:
        subs = self._subscriptions.get(conversation_id)
        if subs is None:
            return
        subs.discard(client_id)
        if not subs:
            del self._subscriptions[conversation_id]

    def subscribers(self, conversation_id: str) -> frozenset[str]:
        return frozenset(self._subscriptions.get(conversation_id, ()))

    async def send(self, client: RelayClient, frame: ChatFrame) -> bool:
        try:
            await client.ws.send_text(encode_frame(frame))
        except Exception:
            logger.debug("Dropping dead socket %s", client.client_id, exc_info=True)
            self.disconnect(client.client_id)
            return False
        return True

    async def broadcast_to_conversation(
        self,
        conversation_id: str,
        frame: ChatFrame,
        *,
        exclude: str | None = None,
    ) -> int:
        """Send to every subscriber of a conversation except ``exclude``."""
        targets = [
            self._clients[cid]
            for cid in self.subscribers(conversation_id)
            if cid != exclude and cid in self._clients
        ]
        return await self._send_all(targets, frame)

    async def broadcast_to_admins(self, frame: ChatFrame) -> int:
        return await self._send_all([c for c in self._clients.values() if c.is_admin], frame)

    async def broadcast_new_message(self, conversation_id: str, message: dict[str, Any]) -> None:
        frame = ChatFrame.model_validate({
            **message,
            "type": FrameType.MESSAGE,
            "conversationId": conversation_id,
            "timestamp": utc_now_iso(),
        })
        await self.broadcast_to_conversation(conversation_id, frame)
        content = message.get("content")
        await self.broadcast_to_admins(ChatFrame(
            type=FrameType.NEW_MESSAGE_NOTIFICATION,
            conversation_id=conversation_id,
            preview=content[:PREVIEW_LENGTH] if isinstance(content, str) else None,
        ))

    async def broadcast_conversation_update(self, conversation_id: str, update: dict[str, Any]) -> None:
        frame = ChatFrame.model_validate({
            **update,
            "type": FrameType.STATUS,
            "conversationId": conversation_id,
        })
        await self.broadcast_to_conversation(conversation_id, frame)

    async def broadcast_live_agent_request(self, conversation_id: str, visitor: dict[str, Any]) -> None:
        frame = ChatFrame.model_validate({
            **visitor,
            "type": FrameType.LIVE_AGENT_REQUEST,
            "conversationId": conversation_id,
            "timestamp": utc_now_iso(),
        })
        subscribers = self.subscribers(conversation_id)
        await self.broadcast_to_conversation(conversation_id, frame)
        # Admins already following the conversation got it above.
        admins = [c for c in self._clients.values() if c.is_admin and c.client_id not in subscribers]
        await self._send_all(admins, frame)

    async def broadcast_agent_status(self, agent: dict[str, Any]) -> None:
        await self.broadcast_to_admins(ChatFrame.model_validate({**agent, "type": FrameType.STATUS}))

    async def _send_all(self, targets: Iterable[RelayClient], frame: ChatFrame) -> int:
        sent = 0
        for client in list(targets):
            if await self.send(client, frame):
                sent += 1
        return sent

