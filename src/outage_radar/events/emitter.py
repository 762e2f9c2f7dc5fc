"""Status events and the emitter that fans them out to listeners."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from outage_radar.config.models import RadarConfig

logger = logging.getLogger(__name__)

REFRESHED = "status.refreshed"
CRITICAL = "alert.critical"
FLUSHED = "cache.flushed"
EVENT_TYPES = frozenset({REFRESHED, CRITICAL, FLUSHED})


@dataclass
class StatusEvent:
    """Something observers may care about: a refresh, an alert, a cache flush."""

    event_type: str
    timestamp: datetime
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def now(cls, event_type: str, data: dict[str, Any] | None = None) -> StatusEvent:
        return cls(event_type=event_type, timestamp=datetime.now(UTC), data=dict(data or {}))

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


class EventListener(Protocol):
    async def on_event(self, event: StatusEvent) -> None: ...


class EventEmitter:
    """Delivers each event to every listener in registration order.

    A listener that raises is logged and skipped; the remaining
    listeners still receive the event.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    async def emit(self, event: StatusEvent) -> None:
        for listener in self._listeners:
            try:
                await listener.on_event(event)
            except Exception:
                logger.exception("Listener %r failed on %s", listener, event.event_type)

    async def publish(self, event_type: str, data: dict[str, Any] | None = None) -> StatusEvent:
        event = StatusEvent.now(event_type, data)
        await self.emit(event)
        return event

    async def drain(self) -> None:
        """Wait for listeners with background work (webhook deliveries) to settle."""
        for listener in self._listeners:
            drain = getattr(listener, "drain", None)
            if drain is not None:
                await drain()


def create_cli_emitter(config: RadarConfig) -> EventEmitter:
    """Emitter for CLI commands: webhook delivery only, no in-memory log."""
    from outage_radar.events.webhook import WebhookListener

    emitter = EventEmitter()
    if config.webhooks:
        emitter.add_listener(WebhookListener(config.webhooks))
    return emitter
