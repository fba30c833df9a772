from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import partial
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from live_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from live_chat.api.v1.routers import broadcast, health, ws
from live_chat.application.exceptions import ValidationError
from live_chat.config import settings
from live_chat.infrastructure.bus.redis_pubsub import RedisPubSubPublisher, RedisPubSubSubscriber
from live_chat.infrastructure.ws.manager import ConnectionManager
from live_chat.services import broadcast_service
from live_chat.services.broadcast_service import LocalEventPublisher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    if not settings.RELAY_FANOUT_ENABLED:
        logger.info("Fan-out disabled, broadcasts stay in-process")
        yield
        return

    manager: ConnectionManager = app.state.manager
    app.state.redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    logger.info("Redis connection pool created")

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        partial(broadcast_service.dispatch, manager),
    )
    await subscriber.start()
    app.state.publisher = RedisPubSubPublisher(app.state.redis, settings.REDIS_PUBSUB_CHANNEL)

    yield

    await subscriber.stop()
    app.state.publisher = LocalEventPublisher(manager)
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Live Chat Relay",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.manager = ConnectionManager()
    app.state.publisher = LocalEventPublisher(app.state.manager)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(broadcast.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})
