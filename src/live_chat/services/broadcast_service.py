"""Server-pushed chat events: publish through the fan-out bus, deliver locally on receipt."""
from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from live_chat.application.exceptions import ValidationError
from live_chat.application.ports.bus import EventPublisher
from live_chat.domain.value_objects.enums import FrameType
from live_chat.infrastructure.ws.manager import ConnectionManager
from live_chat.infrastructure.ws.protocol import ChatFrame

logger = logging.getLogger(__name__)

NEW_MESSAGE = "chat.new_message"
CONVERSATION_UPDATED = "chat.conversation_updated"
LIVE_AGENT_REQUESTED = "chat.live_agent_requested"
AGENT_STATUS_CHANGED = "chat.agent_status_changed"


class LocalEventPublisher:
    """Implements application.ports.bus.EventPublisher for a single relay instance."""

    def __init__(self, manager: ConnectionManager) -> None:
        self._manager = manager

    async def publish(self, event_type: str, data: dict[str, Any]) -> None:
        await dispatch(self._manager, event_type, data)


def _require_conversation_id(conversation_id: str) -> str:
    conversation_id = conversation_id.strip()
    if not conversation_id:
        raise ValidationError("conversation id must not be blank")
    return conversation_id


def _require_frame(frame_type: FrameType, payload: dict[str, Any]) -> None:
    """Reject a payload that would not survive as a frame once broadcast."""
    try:
        ChatFrame.model_validate({**payload, "type": frame_type})
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise ValidationError(f"invalid {frame_type} payload: {field}: {error['msg']}") from exc


async def publish_new_message(
    publisher: EventPublisher, conversation_id: str, message: dict[str, Any],
) -> None:
    conversation_id = _require_conversation_id(conversation_id)
    _require_frame(FrameType.MESSAGE, message)
    await publisher.publish(NEW_MESSAGE, {"conversationId": conversation_id, "message": message})


async def publish_conversation_update(
    publisher: EventPublisher, conversation_id: str, update: dict[str, Any],
) -> None:
    conversation_id = _require_conversation_id(conversation_id)
    _require_frame(FrameType.STATUS, update)
    await publisher.publish(CONVERSATION_UPDATED, {"conversationId": conversation_id, "update": update})


async def publish_live_agent_request(
    publisher: EventPublisher, conversation_id: str, visitor: dict[str, Any],
) -> None:
    conversation_id = _require_conversation_id(conversation_id)
    _require_frame(FrameType.LIVE_AGENT_REQUEST, visitor)
    await publisher.publish(LIVE_AGENT_REQUESTED, {"conversationId": conversation_id, "visitor": visitor})


async def publish_agent_status(publisher: EventPublisher, agent: dict[str, Any]) -> None:
    _require_frame(FrameType.STATUS, agent)
    await publisher.publish(AGENT_STATUS_CHANGED, {"agent": agent})


async def dispatch(manager: ConnectionManager, event_type: str, data: dict[str, Any]) -> None:
    """Deliver one bus event to the sockets connected to this instance."""
    if event_type == AGENT_STATUS_CHANGED:
        await manager.broadcast_agent_status(data.get("agent") or {})
        return

    conversation_id = data.get("conversationId")
    if not isinstance(conversation_id, str) or not conversation_id:
        logger.warning("Dropping %s event without conversationId", event_type)
        return

    if event_type == NEW_MESSAGE:
        await manager.broadcast_new_message(conversation_id, data.get("message") or {})
    elif event_type == CONVERSATION_UPDATED:
        await manager.broadcast_conversation_update(conversation_id, data.get("update") or {})
    elif event_type == LIVE_AGENT_REQUESTED:
        await manager.broadcast_live_agent_request(conversation_id, data.get("visitor") or {})
    else:
        logger.debug("Ignoring unknown fan-out event: %s", event_type)
