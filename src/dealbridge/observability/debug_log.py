"""Bounded in-memory log of recent webhook and reconciliation activity.

Operators have no other view into fire-and-forget processing besides the
regular log stream, so the last few entries are kept in memory and served
from GET /debug/logs. One DebugLog instance lives on app.state.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from typing import Any

DEFAULT_MAXLEN = 20


class DebugLog:
    """Ring buffer of the most recent entries (oldest dropped first).

    Args:
        maxlen: Number of entries retained.
    """

    def __init__(self, maxlen: int = DEFAULT_MAXLEN) -> None:
        if maxlen < 1:
            raise ValueError("maxlen must be at least 1")
        self._entries: deque[dict[str, Any]] = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._entries.maxlen or 0

    def record(self, event: str, **fields: Any) -> dict[str, Any]:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": event,
            **fields,
        }
        self._entries.append(entry)
        return entry

    def entries(self) -> list[dict[str, Any]]:
        """Snapshot, oldest first."""
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
