from __future__ import annotations


class ChatError(Exception):
    """Base live chat error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class FrameDecodeError(ChatError):
    pass


class TransportError(ChatError):
    pass


class ValidationError(ChatError):
    pass
