from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from live_chat.application.exceptions import FrameDecodeError


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_event(event_type: str, data: dict[str, Any]) -> str:
    return json.dumps({"event": event_type, "data": data}, cls=_Encoder)


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    try:
        envelope = json.loads(raw)
        event_type, data = envelope["event"], envelope["data"]
    except (ValueError, TypeError, KeyError) as exc:
        raise FrameDecodeError(f"invalid fan-out envelope: {exc}") from exc
    if not isinstance(event_type, str) or not isinstance(data, dict):
        raise FrameDecodeError("invalid fan-out envelope: wrong field types")
    return event_type, data
