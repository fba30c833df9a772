from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from live_chat.api.deps import ManagerDep
from live_chat.config import settings

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(manager: ManagerDep) -> dict[str, str | int]:
    return {"status": "ok", "connections": len(manager)}


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    if not settings.RELAY_FANOUT_ENABLED:
        return JSONResponse(content={"status": "ready", "fanout": "local"})

    try:
        await request.app.state.redis.ping()
    except Exception as exc:  # noqa: BLE001
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "errors": [f"redis: {exc}"]},
        )
    return JSONResponse(content={"status": "ready", "fanout": "redis"})
