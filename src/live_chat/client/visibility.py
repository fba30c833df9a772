from __future__ import annotations

import logging

from live_chat.client.connection import ChatClient
from live_chat.domain.value_objects.enums import VisibilityState

logger = logging.getLogger(__name__)


class VisibilityReconciler:
    """Retries immediately when the hosting view comes back to the foreground."""

    def __init__(self, client: ChatClient) -> None:
        self._client = client
        self._state = VisibilityState.VISIBLE

    @property
    def state(self) -> VisibilityState:
        return self._state

    def handle(self, state: VisibilityState) -> None:
        self._state = state
        if state is not VisibilityState.VISIBLE:
            return
        if self._client.is_connected or self._client.socket_open:
            return
        logger.info("View became visible while disconnected, reconnecting now")
        self._client.reset_backoff()
        self._client.connect()
