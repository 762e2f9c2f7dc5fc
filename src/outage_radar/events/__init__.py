"""Status event system for outage-radar."""

from __future__ import annotations

from outage_radar.events.emitter import EventEmitter, EventListener, StatusEvent, create_cli_emitter
from outage_radar.events.log import EventLog
from outage_radar.events.webhook import WebhookListener

__all__ = [
    "EventEmitter",
    "EventListener",
    "EventLog",
    "StatusEvent",
    "WebhookListener",
    "create_cli_emitter",
]
