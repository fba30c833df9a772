"""Redis Pub/Sub fan-out so every relay instance reaches its own sockets."""
from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from live_chat.application.exceptions import FrameDecodeError
from live_chat.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)

OnEventCallback = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]


class RedisPubSubPublisher:
    """Implements application.ports.bus.EventPublisher."""

    def __init__(self, redis: aioredis.Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel

    async def publish(self, event_type: str, data: dict[str, Any]) -> None:
        await self._redis.publish(self._channel, serialize_event(event_type, data))


class RedisPubSubSubscriber:
    """Feeds broadcasts published by any relay instance into this one.

    The publishing instance hears its own events too, so local delivery goes
    through here as well. A lost Redis connection is retried after
    ``retry_delay`` seconds; until then peers' broadcasts are missed.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        on_event: OnEventCallback,
        *,
        retry_delay: float = 1.0,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._on_event = on_event
        self._retry_delay = retry_delay
        self._task: asyncio.Task[None] | None = None
        self.delivered = 0
        self.dropped = 0

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="relay-fanout-subscriber")
        logger.info("Fan-out subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Fan-out subscriber stopped (delivered=%d dropped=%d)", self.delivered, self.dropped)

    async def handle(self, message: dict[str, Any]) -> bool:
        """Deliver one raw pubsub message. Returns True when it reached the relay."""
        if message.get("type") != "message":
            return False
        try:
            event_type, data = deserialize_event(message["data"])
        except FrameDecodeError as exc:
            self.dropped += 1
            logger.warning("Dropping fan-out message: %s", exc.detail)
            return False
        try:
            await self._on_event(event_type, data)
        except Exception:
            self.dropped += 1
            logger.exception("Error delivering fan-out event %s", event_type)
            return False
        self.delivered += 1
        return True

    async def _run(self) -> None:
        while True:
            try:
                await self._listen()
                return
            except RedisConnectionError as exc:
                logger.warning(
                    "Fan-out subscription on %s lost (%s), resubscribing in %.1fs",
                    self._channel, exc, self._retry_delay,
                )
                await asyncio.sleep(self._retry_delay)

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                await self.handle(message)
        finally:
            try:
                await pubsub.unsubscribe(self._channel)
            except RedisError as exc:
                logger.debug("Unsubscribe from %s failed: %s", self._channel, exc)
            await pubsub.aclose()
