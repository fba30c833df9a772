"""Interactive chat client for poking at a running relay.

    python -m live_chat.scripts.chat_console --visitor-id v1 --conversation conv-42

Lines typed are sent as messages to the active conversation. Commands:
``/sub <id>``, ``/typing``, ``/read <message id>``, ``/quit``.
"""
from __future__ import annotations

import argparse
import asyncio
import logging

from live_chat.client.callbacks import ChatCallbacks, TypingEvent
from live_chat.client.connection import ChatClient
from live_chat.config import settings
from live_chat.domain.entities.identity import Identity
from live_chat.domain.value_objects.enums import ClientType, FrameType
from live_chat.infrastructure.ws.client_socket import websockets_socket_factory
from live_chat.infrastructure.ws.protocol import ChatFrame
from live_chat.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--origin", default=settings.CHAT_ORIGIN)
    parser.add_argument("--admin", action="store_true", help="join as an admin operator")
    parser.add_argument("--sender-id")
    parser.add_argument("--visitor-id")
    parser.add_argument("--conversation", help="conversation to subscribe to on start")
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args(argv)


def _print_frame(frame: ChatFrame) -> None:
    who = frame.sender_name or frame.sender_id or frame.sender_type or "?"
    if frame.type == FrameType.LIVE_AGENT_REQUEST:
        print(f"[{frame.conversation_id}] live agent requested by {frame.visitor_name or 'visitor'}")
    else:
        print(f"[{frame.conversation_id}] {who}: {frame.content}")


def _print_typing(event: TypingEvent) -> None:
    print(f"[{event.conversation_id}] {event.sender_type} is typing...")


def _print_error(message: str) -> None:
    print(f"! relay error: {message}")


async def run_console(args: argparse.Namespace) -> None:
    identity = Identity(
        client_type=ClientType.ADMIN if args.admin else ClientType.VISITOR,
        sender_id=args.sender_id,
        visitor_id=args.visitor_id,
    )
    client = ChatClient(
        args.origin,
        identity,
        websockets_socket_factory,
        callbacks=ChatCallbacks(on_message=_print_frame, on_typing=_print_typing, on_error=_print_error),
    )
    if args.conversation:
        client.subscribe_to_conversation(args.conversation)
    client.connect()

    loop = asyncio.get_running_loop()
    try:
        while True:
            line = (await loop.run_in_executor(None, input)).strip()
            if not line:
                continue
            if line == "/quit":
                break
            command, _, rest = line.partition(" ")
            conversation_id = client.active_conversation_id
            if command == "/sub" and rest:
                client.subscribe_to_conversation(rest.strip())
            elif command == "/typing" and conversation_id:
                client.send_typing(conversation_id)
            elif command == "/read" and conversation_id and rest:
                client.send_read(conversation_id, rest.strip())
            elif command.startswith("/"):
                print(f"? unknown command or no active conversation: {command}")
            elif conversation_id is None:
                print("? subscribe to a conversation first (/sub <id>)")
            elif not client.send_message(ChatFrame(
                type=FrameType.MESSAGE,
                conversation_id=conversation_id,
                content=line,
                sender_id=identity.effective_sender_id,
                sender_type=identity.sender_type,
            )):
                print("? not connected, message dropped")
    except EOFError:
        pass
    finally:
        client.disconnect()


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    configure_logging(args.log_level)
    asyncio.run(run_console(args))


if __name__ == "__main__":
    main()
