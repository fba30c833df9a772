"""Internal hooks the REST backend calls to push chat events to connected clients."""
from __future__ import annotations

from fastapi import APIRouter, status

from live_chat.api.deps import PublisherDep
from live_chat.api.v1.schemas.broadcast import (
    AcceptedResponse,
    AgentStatusBroadcast,
    ConversationUpdateBroadcast,
    LiveAgentRequestBroadcast,
    NewMessageBroadcast,
)
from live_chat.services import broadcast_service

router = APIRouter(prefix="/internal/chat", tags=["internal"])


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=AcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def broadcast_message(
    conversation_id: str,
    body: NewMessageBroadcast,
    publisher: PublisherDep,
) -> AcceptedResponse:
    await broadcast_service.publish_new_message(
        publisher, conversation_id, body.model_dump(by_alias=True, exclude_none=True),
    )
    return AcceptedResponse()


@router.post(
    "/conversations/{conversation_id}/status",
    response_model=AcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def broadcast_conversation_update(
    conversation_id: str,
    body: ConversationUpdateBroadcast,
    publisher: PublisherDep,
) -> AcceptedResponse:
    await broadcast_service.publish_conversation_update(
        publisher, conversation_id, body.model_dump(by_alias=True, exclude_none=True),
    )
    return AcceptedResponse()


@router.post(
    "/conversations/{conversation_id}/live-agent-request",
    response_model=AcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def broadcast_live_agent_request(
    conversation_id: str,
    body: LiveAgentRequestBroadcast,
    publisher: PublisherDep,
) -> AcceptedResponse:
    await broadcast_service.publish_live_agent_request(
        publisher, conversation_id, body.model_dump(by_alias=True, exclude_none=True),
    )
    return AcceptedResponse()


@router.post(
    "/agent-status",
    response_model=AcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def broadcast_agent_status(
    body: AgentStatusBroadcast,
    publisher: PublisherDep,
) -> AcceptedResponse:
    await broadcast_service.publish_agent_status(
        publisher, body.model_dump(by_alias=True, exclude_none=True),
    )
    return AcceptedResponse()
