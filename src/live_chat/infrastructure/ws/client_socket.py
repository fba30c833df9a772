"""Client-side socket backed by the ``websockets`` library."""
from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Any, Awaitable, Callable

import websockets
from websockets.exceptions import ConnectionClosed

from live_chat.application.exceptions import TransportError
from live_chat.application.ports.transport import SocketListener
from live_chat.config import settings
from live_chat.domain.value_objects.enums import ABNORMAL_CLOSURE, NORMAL_CLOSURE

logger = logging.getLogger(__name__)

Connector = Callable[..., Awaitable[Any]]


class WebsocketsSocket:
    """Implements application.ports.transport.Socket.

    Opening, reading and writing run in background tasks on the current loop.
    Outbound frames go through a queue with a single writer, so send order is
    preserved. The listener always gets exactly one ``on_close`` unless the
    socket is closed locally before it ever opened.
    """

    def __init__(
        self,
        url: str,
        listener: SocketListener,
        *,
        connector: Connector | None = None,
        open_timeout: float | None = None,
    ) -> None:
        self._url = url
        self._listener = listener
        self._connector = connector or websockets.connect
        self._open_timeout = settings.WS_OPEN_TIMEOUT_SECONDS if open_timeout is None else open_timeout
        self._ws: Any = None
        self._close_code: int | None = None
        self._outbox: asyncio.Queue[str | None] = asyncio.Queue()
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"chat-socket-{url}")

    @property
    def is_open(self) -> bool:
        return self._ws is not None and self._close_code is None

    def send(self, text: str) -> None:
        if not self.is_open:
            raise TransportError("socket is not open")
        self._outbox.put_nowait(text)

    def close(self, code: int = NORMAL_CLOSURE) -> None:
        if self._close_code is not None:
            return
        self._close_code = code
        if self._ws is None:
            self._task.cancel()
        else:
            self._outbox.put_nowait(None)

    async def wait_closed(self) -> None:
        with suppress(asyncio.CancelledError):
            await self._task

    async def _run(self) -> None:
        try:
            ws = await self._connector(
                self._url,
                open_timeout=self._open_timeout,
                ping_interval=None,
            )
        except asyncio.CancelledError:
            return
        except Exception as exc:
            self._listener.on_error(exc)
            self._listener.on_close(ABNORMAL_CLOSURE)
            return

        self._ws = ws
        if self._close_code is not None:
            await ws.close(code=self._close_code)
            return

        self._listener.on_open()
        writer = asyncio.create_task(self._write_loop(ws), name=f"chat-socket-writer-{self._url}")
        try:
            async for raw in ws:
                if isinstance(raw, bytes):
                    raw = raw.decode("utf-8", errors="replace")
                self._listener.on_message(raw)
        except ConnectionClosed:
            pass
        except Exception as exc:
            self._listener.on_error(exc)
            with suppress(Exception):
                await ws.close(code=ABNORMAL_CLOSURE)
        finally:
            writer.cancel()
            with suppress(asyncio.CancelledError):
                await writer

        code = ws.close_code if ws.close_code is not None else ABNORMAL_CLOSURE
        self._ws = None
        logger.debug("Socket %s closed with code %d", self._url, code)
        self._listener.on_close(code)

    async def _write_loop(self, ws: Any) -> None:
        while True:
            text = await self._outbox.get()
            if text is None:
                await ws.close(code=self._close_code or NORMAL_CLOSURE)
                return
            try:
                await ws.send(text)
            except ConnectionClosed:
                return
            except Exception as exc:
                self._listener.on_error(exc)
                # Nothing queued after this point can be delivered.
                if self._close_code is None:
                    self._close_code = ABNORMAL_CLOSURE
                with suppress(Exception):
                    await ws.close(code=ABNORMAL_CLOSURE)
                return


def websockets_socket_factory(url: str, listener: SocketListener) -> WebsocketsSocket:
    return WebsocketsSocket(url, listener)
