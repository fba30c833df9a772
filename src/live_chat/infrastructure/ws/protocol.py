"""JSON frames exchanged between chat clients and the relay."""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from live_chat.application.exceptions import FrameDecodeError


class ChatFrame(BaseModel):
    """One frame on the wire. Field names are camelCase in JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    type: str
    conversation_id: str | None = None
    message_id: str | None = None
    content: str | None = None
    sender_id: str | None = None
    sender_type: str | None = None
    sender_name: str | None = None
    message_type: str | None = None
    is_read: bool | None = None
    created_at: str | None = None
    timestamp: int | float | str | None = None  # epoch ms on ping/pong, ISO elsewhere
    client_id: str | None = None
    client_type: str | None = None
    visitor_id: str | None = None
    preview: str | None = None
    visitor_name: str | None = None
    visitor_phone: str | None = None
    visitor_email: str | None = None
    message: str | None = None


def encode_frame(frame: ChatFrame | Mapping[str, Any]) -> str:
    if not isinstance(frame, ChatFrame):
        frame = ChatFrame.model_validate(dict(frame))
    return frame.model_dump_json(by_alias=True, exclude_none=True)


def decode_frame(raw: str | bytes) -> ChatFrame:
    try:
        return ChatFrame.model_validate_json(raw)
    except PydanticValidationError as exc:
        raise FrameDecodeError(f"invalid frame: {exc.errors()[0]['msg']}") from exc


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def epoch_ms() -> int:
    return int(time.time() * 1000)
