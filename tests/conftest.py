"""Shared test fixtures."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable

import pytest

from live_chat.application.ports.cache import QueryKey
from live_chat.application.ports.transport import SocketListener
from live_chat.client.callbacks import ChatCallbacks, TypingEvent
from live_chat.client.connection import ChatClient
from live_chat.domain.entities.identity import Identity
from live_chat.domain.value_objects.enums import ClientType
from live_chat.infrastructure.ws.protocol import ChatFrame


@dataclass
class FakeTimer:
    due: float
    delay: int
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class FakeScheduler:
    """Manual clock; timers only fire inside advance()."""

    now_ms: float = 0.0
    timers: list[FakeTimer] = field(default_factory=list)

    def now(self) -> float:
        return self.now_ms

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(due=self.now_ms + delay_ms, delay=delay_ms, callback=callback)
        self.timers.append(timer)
        return timer

    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def pending_delays(self) -> list[int]:
        return [t.delay for t in self.pending()]

    def advance(self, ms: float) -> None:
        target = self.now_ms + ms
        while True:
            due = [t for t in self.pending() if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.now_ms = timer.due
            timer.fired = True
            timer.callback()
        self.now_ms = target


@dataclass
class FakeSocket:
    url: str
    listener: SocketListener
    is_open: bool = False
    sent: list[str] = field(default_factory=list)
    close_codes: list[int] = field(default_factory=list)

    def send(self, text: str) -> None:
        self.sent.append(text)

    def close(self, code: int = 1000) -> None:
        self.is_open = False
        self.close_codes.append(code)

    # Drivers for the events a real transport would emit.

    def open(self) -> None:
        self.is_open = True
        self.listener.on_open()

    def receive(self, payload: dict[str, Any] | str) -> None:
        raw = payload if isinstance(payload, str) else json.dumps(payload)
        self.listener.on_message(raw)

    def drop(self, code: int = 1006) -> None:
        self.is_open = False
        self.listener.on_close(code)

    def fail(self, error: BaseException | None = None, code: int = 1006) -> None:
        self.is_open = False
        self.listener.on_error(error or ConnectionError("boom"))
        self.listener.on_close(code)

    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(s) for s in self.sent]


@dataclass
class FakeSocketFactory:
    sockets: list[FakeSocket] = field(default_factory=list)
    fail_next: int = 0

    def __call__(self, url: str, listener: SocketListener) -> FakeSocket:
        if self.fail_next:
            self.fail_next -= 1
            raise OSError("connection refused")
        socket = FakeSocket(url, listener)
        self.sockets.append(socket)
        return socket

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]


@dataclass
class RecordingInvalidator:
    keys: list[QueryKey] = field(default_factory=list)

    def invalidate(self, key: QueryKey) -> None:
        self.keys.append(key)


@dataclass
class RecordingCallbacks:
    messages: list[ChatFrame] = field(default_factory=list)
    typing: list[TypingEvent] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def as_callbacks(self) -> ChatCallbacks:
        return ChatCallbacks(
            on_message=self.messages.append,
            on_typing=self.typing.append,
            on_error=self.errors.append,
        )


@dataclass
class FakePubSub:
    """Replays ``messages`` from listen(), then raises ``fail_with`` if set."""

    messages: list[dict[str, Any]] = field(default_factory=list)
    fail_with: Exception | None = None
    subscribed: list[str] = field(default_factory=list)
    unsubscribed: list[str] = field(default_factory=list)
    closed: bool = False

    async def subscribe(self, channel: str) -> None:
        self.subscribed.append(channel)

    async def listen(self):
        for message in self.messages:
            yield message
        if self.fail_with is not None:
            raise self.fail_with

    async def unsubscribe(self, channel: str) -> None:
        self.unsubscribed.append(channel)

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class FakeRedis:
    """Hands out the queued pubsubs in order, one per subscription."""

    pubsubs: list[FakePubSub] = field(default_factory=list)
    published: list[tuple[str, str]] = field(default_factory=list)

    def pubsub(self) -> FakePubSub:
        return self.pubsubs.pop(0)

    async def publish(self, channel: str, payload: str) -> int:
        self.published.append((channel, payload))
        return 1


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def factory() -> FakeSocketFactory:
    return FakeSocketFactory()


@pytest.fixture
def invalidator() -> RecordingInvalidator:
    return RecordingInvalidator()


@pytest.fixture
def recorded() -> RecordingCallbacks:
    return RecordingCallbacks()


@pytest.fixture
def visitor_identity() -> Identity:
    return Identity(client_type=ClientType.VISITOR, visitor_id="v1")


@pytest.fixture
def admin_identity() -> Identity:
    return Identity(client_type=ClientType.ADMIN, sender_id="admin-7")


def make_client(
    factory: FakeSocketFactory,
    scheduler: FakeScheduler,
    *,
    identity: Identity | None = None,
    invalidator: RecordingInvalidator | None = None,
    callbacks: ChatCallbacks | None = None,
    origin: str = "https://events.example.com",
) -> ChatClient:
    return ChatClient(
        origin,
        identity or Identity(client_type=ClientType.VISITOR, visitor_id="v1"),
        factory,
        scheduler=scheduler,
        invalidator=invalidator or RecordingInvalidator(),
        callbacks=callbacks,
    )


@pytest.fixture
def client(factory, scheduler, invalidator, recorded, visitor_identity) -> ChatClient:
    return make_client(
        factory,
        scheduler,
        identity=visitor_identity,
        invalidator=invalidator,
        callbacks=recorded.as_callbacks(),
    )


def connect_and_open(client: ChatClient, factory: FakeSocketFactory) -> FakeSocket:
    client.connect()
    socket = factory.last
    socket.open()
    return socket
