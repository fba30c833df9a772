from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NewMessageBroadcast(_CamelModel):
    id: str
    content: str
    sender_id: str | None = None
    sender_type: Literal["admin", "visitor", "system"] = "visitor"
    sender_name: str | None = None
    message_type: str = "text"
    is_read: bool = False
    created_at: str | None = None


class ConversationUpdateBroadcast(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    status: str | None = None


class LiveAgentRequestBroadcast(_CamelModel):
    visitor_name: str | None = None
    visitor_phone: str | None = None
    visitor_email: str | None = None
    preview: str | None = None


class AgentStatusBroadcast(_CamelModel):
    agent_id: str
    agent_name: str
    status: Literal["online", "away", "offline"]
    status_message: str | None = None


class AcceptedResponse(BaseModel):
    status: str = "accepted"
