"""Chat client connection manager.

One ``ChatClient`` owns at most one live socket. Every socket is bound to the
connect generation that created it, and events from older generations are
dropped so a superseded socket can never flip the client's state.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping
from urllib.parse import urlsplit, urlunsplit

from pydantic import ValidationError as PydanticValidationError

from live_chat.application.exceptions import TransportError
from live_chat.application.ports.cache import QueryInvalidator
from live_chat.application.ports.scheduler import LoopScheduler, Scheduler, TimerHandle
from live_chat.application.ports.transport import Socket, SocketFactory
from live_chat.client.backoff import BackoffPolicy
from live_chat.client.callbacks import ChatCallbacks
from live_chat.client.heartbeat import HeartbeatMonitor
from live_chat.client.presence import TypingPresenceTracker
from live_chat.client.router import MessageRouter
from live_chat.client.subscriptions import SubscriptionTracker
from live_chat.config import settings
from live_chat.domain.entities.identity import Identity
from live_chat.domain.value_objects.enums import (
    NORMAL_CLOSURE,
    CloseReason,
    ConnectionStatus,
    FrameType,
)
from live_chat.infrastructure.cache.query_cache import QueryCache
from live_chat.infrastructure.ws.protocol import ChatFrame, encode_frame

logger = logging.getLogger(__name__)


def build_chat_url(origin: str, path: str | None = None) -> str:
    """Same host as the page; ``wss`` only when the page itself is served over TLS."""
    parts = urlsplit(origin)
    scheme = "wss" if parts.scheme == "https" else "ws"
    return urlunsplit((scheme, parts.netloc, path or settings.CHAT_WS_PATH, "", ""))


def close_reason_for(code: int) -> CloseReason:
    return CloseReason.NORMAL if code == NORMAL_CLOSURE else CloseReason.ABNORMAL


class _GenerationListener:
    """Forwards socket events to the client, tagged with the generation they belong to."""

    __slots__ = ("_client", "_generation")

    def __init__(self, client: ChatClient, generation: int) -> None:
        self._client = client
        self._generation = generation

    def on_open(self) -> None:
        self._client._handle_open(self._generation)

    def on_message(self, raw: str) -> None:
        self._client._handle_message(self._generation, raw)

    def on_close(self, code: int) -> None:
        self._client._handle_close(self._generation, code)

    def on_error(self, error: BaseException) -> None:
        self._client._handle_error(self._generation, error)


class ChatClient:
    def __init__(
        self,
        origin: str,
        identity: Identity,
        socket_factory: SocketFactory,
        *,
        scheduler: Scheduler | None = None,
        invalidator: QueryInvalidator | None = None,
        callbacks: ChatCallbacks | None = None,
        backoff: BackoffPolicy | None = None,
        heartbeat_interval_ms: int | None = None,
        typing_timeout_ms: int | None = None,
    ) -> None:
        self._url = build_chat_url(origin)
        self._identity = identity
        self._socket_factory = socket_factory
        self._scheduler = scheduler or LoopScheduler()
        self._invalidator = invalidator if invalidator is not None else QueryCache()
        self._callbacks = callbacks or ChatCallbacks()
        self._backoff = backoff or BackoffPolicy()

        self._socket: Socket | None = None
        self._status = ConnectionStatus.DISCONNECTED
        self._generation = 0
        self._reconnect_attempt = 0
        self._reconnect_timer: TimerHandle | None = None
        self._client_id: str | None = None

        self._heartbeat = HeartbeatMonitor(self._scheduler, self.send_message, heartbeat_interval_ms)
        self._presence = TypingPresenceTracker(self._scheduler, typing_timeout_ms)
        self._subscriptions = SubscriptionTracker()
        self._router = MessageRouter(
            invalidator=self._invalidator,
            presence=self._presence,
            heartbeat=self._heartbeat,
            callbacks=lambda: self._callbacks,
            on_client_id=self._set_client_id,
        )

    # -- state ------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status is ConnectionStatus.CONNECTED

    @property
    def socket_open(self) -> bool:
        return self._socket is not None and self._socket.is_open

    @property
    def reconnect_attempt(self) -> int:
        return self._reconnect_attempt

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None

    @property
    def active_conversation_id(self) -> str | None:
        return self._subscriptions.active_conversation_id

    @property
    def typing_users(self) -> Mapping[str, str]:
        return self._presence.snapshot()

    @property
    def client_id(self) -> str | None:
        return self._client_id

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def heartbeat(self) -> HeartbeatMonitor:
        return self._heartbeat

    @property
    def callbacks(self) -> ChatCallbacks:
        return self._callbacks

    @callbacks.setter
    def callbacks(self, callbacks: ChatCallbacks) -> None:
        self._callbacks = callbacks

    # -- lifecycle --------------------------------------------------------

    def connect(self) -> None:
        if self._status is not ConnectionStatus.DISCONNECTED:
            logger.debug("connect() ignored, already %s", self._status)
            return
        self._cancel_reconnect()
        self._generation += 1
        generation = self._generation
        self._status = ConnectionStatus.CONNECTING
        logger.info("Connecting to %s (attempt=%d)", self._url, self._reconnect_attempt)
        try:
            socket = self._socket_factory(self._url, _GenerationListener(self, generation))
        except Exception as exc:
            logger.warning("Could not open connection to %s: %s", self._url, exc)
            self._status = ConnectionStatus.DISCONNECTED
            self._schedule_reconnect(CloseReason.CONNECT_FAILED)
            return
        self._socket = socket

    reconnect = connect

    def disconnect(self) -> None:
        self._cancel_reconnect()
        self._heartbeat.stop()
        self._presence.clear()
        self._subscriptions.clear()
        socket, self._socket = self._socket, None
        # Anything the old socket still reports belongs to a dead generation.
        self._generation += 1
        self._client_id = None
        self._status = ConnectionStatus.DISCONNECTED
        if socket is not None:
            logger.info("Closing connection to %s (%s)", self._url, CloseReason.CLIENT_DISCONNECT)
            socket.close(NORMAL_CLOSURE)

    def reset_backoff(self) -> None:
        self._reconnect_attempt = 0

    def set_identity(self, identity: Identity) -> None:
        if identity == self._identity:
            return
        self._identity = identity
        if self.is_connected:
            self.send_message(self._join_frame())

    # -- outbound ---------------------------------------------------------

    def send_message(self, frame: ChatFrame | Mapping[str, Any]) -> bool:
        """Best-effort send. Returns False when the frame was dropped."""
        socket = self._socket
        if socket is None or not self.is_connected or not socket.is_open:
            logger.debug("Dropping outbound %s frame: not connected", _frame_type(frame))
            return False
        try:
            socket.send(encode_frame(frame))
        except PydanticValidationError:
            logger.warning("Dropping invalid outbound frame %r", frame)
            return False
        except TransportError as exc:
            logger.warning("Send failed: %s", exc.detail)
            return False
        return True

    def send_typing(self, conversation_id: str) -> bool:
        return self.send_message(ChatFrame(
            type=FrameType.TYPING,
            conversation_id=conversation_id,
            sender_id=self._identity.effective_sender_id,
            sender_type=self._identity.sender_type,
        ))

    def send_read(self, conversation_id: str, message_id: str) -> bool:
        return self.send_message(ChatFrame(
            type=FrameType.READ,
            conversation_id=conversation_id,
            message_id=message_id,
            sender_id=self._identity.effective_sender_id,
        ))

    def subscribe_to_conversation(self, conversation_id: str) -> bool:
        return self.send_message(self._subscriptions.activate(conversation_id))

    # -- socket events ----------------------------------------------------

    def _handle_open(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug("Ignoring open from superseded connection #%d", generation)
            return
        self._status = ConnectionStatus.CONNECTED
        self._reconnect_attempt = 0
        logger.info("Connected to %s", self._url)
        self._heartbeat.start()
        self.send_message(self._join_frame())
        resubscribe = self._subscriptions.resubscribe_frame()
        if resubscribe is not None:
            self.send_message(resubscribe)

    def _handle_message(self, generation: int, raw: str) -> None:
        if generation != self._generation:
            logger.debug("Ignoring frame from superseded connection #%d", generation)
            return
        self._router.route_raw(raw)

    def _handle_close(self, generation: int, code: int) -> None:
        if generation != self._generation:
            logger.debug("Ignoring close(%d) from superseded connection #%d", code, generation)
            return
        self._socket = None
        self._client_id = None
        self._status = ConnectionStatus.DISCONNECTED
        self._heartbeat.stop()
        reason = close_reason_for(code)
        if reason.should_reconnect:
            self._schedule_reconnect(reason, code)
        else:
            logger.info("Connection to %s closed cleanly", self._url)

    def _handle_error(self, generation: int, error: BaseException) -> None:
        # The close event that follows decides about reconnecting.
        logger.warning("Transport error on connection #%d: %s", generation, error)

    # -- internals --------------------------------------------------------

    def _schedule_reconnect(self, reason: CloseReason, code: int | None = None) -> None:
        self._heartbeat.stop()
        self._cancel_reconnect()
        delay = self._backoff.delay_for(self._reconnect_attempt)
        self._reconnect_attempt += 1
        logger.info(
            "Disconnected (%s, code=%s), reconnecting in %dms (attempt %d)",
            reason, code, delay, self._reconnect_attempt,
        )
        self._reconnect_timer = self._scheduler.call_later(delay, self._on_reconnect_timer)

    def _on_reconnect_timer(self) -> None:
        self._reconnect_timer = None
        self.connect()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _join_frame(self) -> ChatFrame:
        return ChatFrame(
            type=FrameType.JOIN,
            client_type=self._identity.client_type,
            sender_id=self._identity.sender_id,
            visitor_id=self._identity.visitor_id,
        )

    def _set_client_id(self, client_id: str | None) -> None:
        self._client_id = client_id


def _frame_type(frame: ChatFrame | Mapping[str, Any]) -> Any:
    if isinstance(frame, ChatFrame):
        return frame.type
    return frame.get("type")
