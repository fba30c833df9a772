from __future__ import annotations

import logging
from typing import Callable

from live_chat.application.ports.scheduler import Scheduler, TimerHandle
from live_chat.config import settings
from live_chat.domain.value_objects.enums import FrameType
from live_chat.infrastructure.ws.protocol import ChatFrame

logger = logging.getLogger(__name__)


class HeartbeatMonitor:
    """Application-level ping loop.

    The interval stays below the relay's idle timeout so the client always
    pings first. The monitor also answers pings initiated by the relay.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        send: Callable[[ChatFrame], bool],
        interval_ms: int | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._send = send
        self._interval_ms = settings.HEARTBEAT_INTERVAL_MS if interval_ms is None else interval_ms
        self._handle: TimerHandle | None = None
        self._last_pong_at: float | None = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    @property
    def last_pong_at(self) -> float | None:
        return self._last_pong_at

    def start(self) -> None:
        self.stop()
        self._arm()

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def reply(self) -> None:
        self._send(ChatFrame(type=FrameType.PONG, timestamp=self._timestamp()))

    def acknowledge(self) -> None:
        self._last_pong_at = self._scheduler.now()

    def _arm(self) -> None:
        self._handle = self._scheduler.call_later(self._interval_ms, self._tick)

    def _tick(self) -> None:
        self._handle = None
        if not self._send(ChatFrame(type=FrameType.PING, timestamp=self._timestamp())):
            logger.debug("Heartbeat ping dropped")
        self._arm()

    def _timestamp(self) -> int:
        return int(self._scheduler.now())
