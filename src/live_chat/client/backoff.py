from __future__ import annotations

from typing import Sequence

from live_chat.config import settings


class BackoffPolicy:
    """Fixed reconnect delay table, clamped at its last entry. No jitter."""

    def __init__(self, table_ms: Sequence[int] | None = None) -> None:
        table = tuple(settings.RECONNECT_BACKOFF_MS if table_ms is None else table_ms)
        if not table:
            raise ValueError("backoff table must not be empty")
        if any(later < earlier for earlier, later in zip(table, table[1:])):
            raise ValueError("backoff table must be non-decreasing")
        self._table = table

    @property
    def table(self) -> tuple[int, ...]:
        return self._table

    def delay_for(self, attempt: int) -> int:
        if attempt < 0:
            raise ValueError("attempt must be non-negative")
        return self._table[min(attempt, len(self._table) - 1)]
