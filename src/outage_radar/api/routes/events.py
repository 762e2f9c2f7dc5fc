"""Recent event log endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Request

from outage_radar.events.emitter import CRITICAL

router = APIRouter(tags=["events"])


@router.get("/events")
async def get_recent_events(
    request: Request,
    limit: int = 20,
    event_type: str | None = None,
    since: datetime | None = None,
) -> list[dict[str, Any]]:
    """Return recent status events from the in-memory log, newest first."""
    event_log = request.app.state.event_log
    events = await event_log.get_recent(limit=limit, event_type=event_type, since=since)
    return [e.to_dict() for e in events]


@router.get("/events/summary")
async def get_event_summary(request: Request) -> dict[str, Any]:
    event_log = request.app.state.event_log
    last_alert = await event_log.latest(CRITICAL)
    return {
        "counts": await event_log.counts(),
        "last_alert": last_alert.to_dict() if last_alert else None,
    }
