"""Best-effort delivery of status events to HTTP webhooks."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
from typing import TYPE_CHECKING

import httpx

from outage_radar.errors import WebhookDeliveryFailed
from outage_radar.events.emitter import StatusEvent

if TYPE_CHECKING:
    from outage_radar.config.models import WebhookConfig

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Outage-Radar-Signature"


def sign(secret: str, body: bytes) -> str:
    """Hex HMAC-SHA256 of *body*, for receivers to verify the sender."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def _wants(wh: WebhookConfig, event_type: str) -> bool:
    return "*" in wh.events or event_type in wh.events


class WebhookListener:
    """Posts subscribed events to each configured URL. Implements EventListener protocol.

    Delivery runs in background tasks so a slow or failing receiver
    never delays the tick that raised the event. Use ``drain`` to wait
    for outstanding deliveries.
    """

    def __init__(self, webhooks: list[WebhookConfig], timeout: float = 10.0) -> None:
        self._webhooks = [wh for wh in webhooks if wh.url]
        self._timeout = timeout
        self._pending: set[asyncio.Task[None]] = set()

    async def on_event(self, event: StatusEvent) -> None:
        targets = [wh for wh in self._webhooks if _wants(wh, event.event_type)]
        if not targets:
            return
        body = json.dumps(event.to_dict()).encode()
        for wh in targets:
            task = asyncio.create_task(self._deliver(wh, event.event_type, body), name=f"webhook-{wh.url}")
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _deliver(self, wh: WebhookConfig, event_type: str, body: bytes) -> None:
        headers = {"Content-Type": "application/json"}
        if wh.secret:
            headers[SIGNATURE_HEADER] = sign(wh.secret, body)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(wh.url, content=body, headers=headers)
            if resp.status_code >= 400:
                raise WebhookDeliveryFailed(f"{wh.url} answered HTTP {resp.status_code}")
        except Exception:
            logger.exception("Webhook delivery failed for %s (event: %s)", wh.url, event_type)
        else:
            logger.debug("Delivered %s to %s", event_type, wh.url)
