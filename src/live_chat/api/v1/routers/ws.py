from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from live_chat.application.exceptions import FrameDecodeError
from live_chat.config import settings
from live_chat.domain.value_objects.enums import FrameType
from live_chat.infrastructure.ws.manager import ConnectionManager, RelayClient
from live_chat.infrastructure.ws.protocol import ChatFrame, decode_frame, epoch_ms, utc_now_iso

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket(settings.CHAT_WS_PATH)
async def ws_chat(websocket: WebSocket) -> None:
    manager: ConnectionManager = websocket.app.state.manager
    client = await manager.connect(websocket)

    heartbeat_task = asyncio.create_task(
        _heartbeat(manager, client), name=f"ws-heartbeat-{client.client_id}",
    )
    try:
        await _read_loop(manager, client)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", client.client_id)
    finally:
        heartbeat_task.cancel()
        manager.disconnect(client.client_id)


async def _heartbeat(manager: ConnectionManager, client: RelayClient) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    while True:
        await asyncio.sleep(interval)
        frame = ChatFrame(type=FrameType.PING, timestamp=epoch_ms())
        if not await manager.send(client, frame):
            return


async def _read_loop(manager: ConnectionManager, client: RelayClient) -> None:
    while True:
        raw = await client.ws.receive_text()
        try:
            frame = decode_frame(raw)
        except FrameDecodeError as exc:
            logger.warning("Invalid frame from %s: %s", client.client_id, exc.detail)
            await manager.send(client, ChatFrame(type=FrameType.ERROR, message="Invalid message format"))
            continue
        await _handle_frame(manager, client, frame)


async def _handle_frame(manager: ConnectionManager, client: RelayClient, frame: ChatFrame) -> None:
    if frame.type == FrameType.PING:
        await manager.send(client, ChatFrame(type=FrameType.PONG, timestamp=frame.timestamp))

    elif frame.type == FrameType.PONG:
        pass

    elif frame.type == FrameType.JOIN:
        manager.join(client.client_id, frame)

    elif frame.type == FrameType.SUBSCRIBE:
        if frame.conversation_id:
            manager.subscribe(client.client_id, frame.conversation_id)
            await manager.send(
                client, ChatFrame(type=FrameType.SUBSCRIBED, conversation_id=frame.conversation_id),
            )

    elif frame.type == FrameType.MESSAGE:
        if frame.conversation_id:
            await manager.broadcast_to_conversation(
                frame.conversation_id,
                ChatFrame(
                    type=FrameType.MESSAGE,
                    conversation_id=frame.conversation_id,
                    content=frame.content,
                    sender_id=frame.sender_id,
                    sender_type=frame.sender_type,
                    sender_name=frame.sender_name,
                    timestamp=utc_now_iso(),
                ),
                exclude=client.client_id,
            )

    elif frame.type == FrameType.TYPING:
        if frame.conversation_id:
            await manager.broadcast_to_conversation(
                frame.conversation_id,
                ChatFrame(
                    type=FrameType.TYPING,
                    conversation_id=frame.conversation_id,
                    sender_id=frame.sender_id,
                    sender_type=frame.sender_type,
                ),
                exclude=client.client_id,
            )

    elif frame.type == FrameType.READ:
        if frame.conversation_id:
            await manager.broadcast_to_conversation(
                frame.conversation_id,
                ChatFrame(
                    type=FrameType.READ,
                    conversation_id=frame.conversation_id,
                    message_id=frame.message_id,
                    sender_id=frame.sender_id,
                ),
                exclude=client.client_id,
            )

    else:
        await manager.send(
            client, ChatFrame(type=FrameType.ERROR, message=f"Unknown message type: {frame.type}"),
        )

