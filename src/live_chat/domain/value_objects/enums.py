from __future__ import annotations

from enum import StrEnum


class ConnectionStatus(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ClientType(StrEnum):
    ADMIN = "admin"
    VISITOR = "visitor"


class SenderType(StrEnum):
    ADMIN = "admin"
    VISITOR = "visitor"
    SYSTEM = "system"


class FrameType(StrEnum):
    MESSAGE = "message"
    TYPING = "typing"
    READ = "read"
    CONNECTED = "connected"
    STATUS = "status"
    SUBSCRIBE = "subscribe"
    SUBSCRIBED = "subscribed"
    NEW_MESSAGE_NOTIFICATION = "new_message_notification"
    LIVE_AGENT_REQUEST = "live_agent_request"
    PING = "ping"
    PONG = "pong"
    ERROR = "error"
    JOIN = "join"


class CloseReason(StrEnum):
    """Why a socket went away; only ABNORMAL and CONNECT_FAILED are retried."""

    CLIENT_DISCONNECT = "client_disconnect"
    NORMAL = "normal"
    ABNORMAL = "abnormal"
    CONNECT_FAILED = "connect_failed"

    @property
    def should_reconnect(self) -> bool:
        return self in (CloseReason.ABNORMAL, CloseReason.CONNECT_FAILED)


class VisibilityState(StrEnum):
    VISIBLE = "visible"
    HIDDEN = "hidden"


NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006
