from __future__ import annotations

from typing import Callable, Protocol


class SocketListener(Protocol):
    """Receives the lifecycle events of exactly one socket."""

    def on_open(self) -> None: ...

    def on_message(self, raw: str) -> None: ...

    def on_close(self, code: int) -> None: ...

    def on_error(self, error: BaseException) -> None: ...


class Socket(Protocol):
    @property
    def is_open(self) -> bool: ...

    def send(self, text: str) -> None: ...

    def close(self, code: int = 1000) -> None: ...


# Factories must not invoke listener callbacks before returning.
# Raising means the transport could not even be constructed.
SocketFactory = Callable[[str, SocketListener], Socket]
