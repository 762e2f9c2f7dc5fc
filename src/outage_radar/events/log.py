"""Bounded history of recent status events, served by ``/api/events``."""

from __future__ import annotations

import asyncio
from collections import Counter, deque
from datetime import UTC, datetime
from typing import Optional

from outage_radar.events.emitter import StatusEvent


class EventLog:
    """Keeps the last ``max_size`` events. Implements EventListener protocol."""

    def __init__(self, max_size: int = 100) -> None:
        self._events: deque[StatusEvent] = deque(maxlen=max_size)
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._events)

    async def on_event(self, event: StatusEvent) -> None:
        async with self._lock:
            self._events.append(event)

    async def get_recent(
        self,
        limit: int = 20,
        event_type: str | None = None,
        since: datetime | None = None,
    ) -> list[StatusEvent]:
        """Newest first, optionally narrowed to one type or to events after *since*.

        A naive *since* is taken to be UTC.
        """
        if since is not None and since.tzinfo is None:
            since = since.replace(tzinfo=UTC)
        async with self._lock:
            matches = [
                e
                for e in reversed(self._events)
                if (not event_type or e.event_type == event_type) and (since is None or e.timestamp > since)
            ]
        return matches[: max(limit, 0)]

    async def latest(self, event_type: str) -> Optional[StatusEvent]:
        async with self._lock:
            for event in reversed(self._events):
                if event.event_type == event_type:
                    return event
        return None

    async def counts(self) -> dict[str, int]:
        async with self._lock:
            return dict(Counter(e.event_type for e in self._events))
