from __future__ import annotations

from dataclasses import dataclass

from live_chat.domain.value_objects.enums import ClientType, SenderType


@dataclass(frozen=True, slots=True)
class Identity:
    """Who this client is on the relay. Immutable; swap the whole object to change it."""

    client_type: ClientType = ClientType.VISITOR
    sender_id: str | None = None
    visitor_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.client_type == ClientType.ADMIN

    @property
    def sender_type(self) -> SenderType:
        return SenderType.ADMIN if self.is_admin else SenderType.VISITOR

    @property
    def effective_sender_id(self) -> str | None:
        """Id stamped on outbound typing/read frames."""
        if self.is_admin:
            return self.sender_id
        return self.sender_id or self.visitor_id
