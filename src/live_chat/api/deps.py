"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from live_chat.application.ports.bus import EventPublisher
from live_chat.infrastructure.ws.manager import ConnectionManager


def get_manager(request: Request) -> ConnectionManager:
    return request.app.state.manager


def get_publisher(request: Request) -> EventPublisher:
    return request.app.state.publisher


ManagerDep = Annotated[ConnectionManager, Depends(get_manager)]
PublisherDep = Annotated[EventPublisher, Depends(get_publisher)]
