"""Tests for the status event system: emitter, log, and webhook delivery."""

from __future__ import annotations

import hashlib
import hmac
import json
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from outage_radar.config.models import RadarConfig, WebhookConfig
from outage_radar.events.emitter import (
    CRITICAL,
    FLUSHED,
    REFRESHED,
    EventEmitter,
    StatusEvent,
    create_cli_emitter,
)
from outage_radar.events.log import EventLog
from outage_radar.events.webhook import SIGNATURE_HEADER, WebhookListener, sign


def _event(event_type: str = CRITICAL, **data) -> StatusEvent:
    return StatusEvent(event_type=event_type, timestamp=datetime.now(UTC), data=data)


def _mock_client(mock_cls, status_code: int = 200):
    client = AsyncMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    client.post.return_value = httpx.Response(status_code)
    mock_cls.return_value = client
    return client


# ─── StatusEvent tests ───


class TestStatusEvent:
    def test_to_dict(self):
        ts = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
        evt = StatusEvent(event_type=REFRESHED, timestamp=ts, data={"problems": 2})
        assert evt.to_dict() == {
            "event_type": "status.refreshed",
            "timestamp": "2026-03-01T12:00:00+00:00",
            "data": {"problems": 2},
        }

    def test_default_data(self):
        assert StatusEvent(event_type=FLUSHED, timestamp=datetime.now(UTC)).data == {}


# ─── EventEmitter tests ───


class TestEventEmitter:
    @pytest.mark.asyncio
    async def test_emit_to_multiple_listeners(self):
        emitter = EventEmitter()
        listener1 = AsyncMock()
        listener2 = AsyncMock()
        emitter.add_listener(listener1)
        emitter.add_listener(listener2)

        evt = _event()
        await emitter.emit(evt)
        listener1.on_event.assert_called_once_with(evt)
        listener2.on_event.assert_called_once_with(evt)

    @pytest.mark.asyncio
    async def test_listener_error_does_not_propagate(self):
        emitter = EventEmitter()
        bad_listener = AsyncMock()
        bad_listener.on_event.side_effect = RuntimeError("listener crash")
        good_listener = AsyncMock()
        emitter.add_listener(bad_listener)
        emitter.add_listener(good_listener)

        evt = _event()
        await emitter.emit(evt)
        good_listener.on_event.assert_called_once_with(evt)

    @pytest.mark.asyncio
    async def test_no_listeners(self):
        await EventEmitter().emit(_event())

    @pytest.mark.asyncio
    async def test_publish_stamps_event(self):
        emitter = EventEmitter()
        log = EventLog()
        emitter.add_listener(log)

        event = await emitter.publish(FLUSHED, {"by": "admin"})

        assert event.timestamp.tzinfo is not None
        assert (await log.get_recent())[0] is event

    @pytest.mark.asyncio
    async def test_drain_waits_for_webhooks(self):
        emitter = EventEmitter()
        emitter.add_listener(EventLog())
        webhook = WebhookListener([WebhookConfig(url="https://hooks.example/a")])
        emitter.add_listener(webhook)

        with patch("outage_radar.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_client(mock_cls)
            await emitter.publish(CRITICAL, {"down": 3})
            await emitter.drain()

        client.post.assert_called_once()
        assert len(webhook._pending) == 0


# ─── EventLog tests ───


class TestEventLog:
    @pytest.mark.asyncio
    async def test_respects_max_size_newest_first(self):
        log = EventLog(max_size=3)
        for i in range(5):
            await log.on_event(_event(REFRESHED, index=i))
        events = await log.get_recent(limit=10)
        assert len(log) == 3
        assert [e.data["index"] for e in events] == [4, 3, 2]

    @pytest.mark.asyncio
    async def test_filter_by_event_type(self):
        log = EventLog()
        await log.on_event(_event(REFRESHED))
        await log.on_event(_event(CRITICAL, down=3))
        await log.on_event(_event(REFRESHED))

        events = await log.get_recent(event_type=CRITICAL)
        assert [e.data["down"] for e in events] == [3]

    @pytest.mark.asyncio
    async def test_filter_by_time(self):
        log = EventLog()
        old = StatusEvent(REFRESHED, datetime.now(UTC) - timedelta(hours=2), {"age": "old"})
        await log.on_event(old)
        await log.on_event(_event(REFRESHED, age="new"))

        events = await log.get_recent(since=datetime.now(UTC) - timedelta(hours=1))
        assert [e.data["age"] for e in events] == ["new"]

    @pytest.mark.asyncio
    async def test_limit(self):
        log = EventLog()
        for _ in range(5):
            await log.on_event(_event(REFRESHED))
        assert len(await log.get_recent(limit=2)) == 2
        assert await log.get_recent(limit=-1) == []

    @pytest.mark.asyncio
    async def test_latest_and_counts(self):
        log = EventLog()
        assert await log.latest(CRITICAL) is None
        await log.on_event(_event(CRITICAL, down=3))
        await log.on_event(_event(REFRESHED))
        await log.on_event(_event(CRITICAL, down=4))

        latest = await log.latest(CRITICAL)
        assert latest is not None
        assert latest.data["down"] == 4
        assert await log.counts() == {CRITICAL: 2, REFRESHED: 1}


# ─── WebhookListener tests ───


class TestWebhookListener:
    @pytest.mark.asyncio
    async def test_subscribed_event_delivered(self):
        listener = WebhookListener([WebhookConfig(url="https://hooks.example/a")])

        with patch("outage_radar.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_client(mock_cls)
            await listener.on_event(_event(CRITICAL, down=3))
            await listener.drain()

        client.post.assert_called_once()
        assert client.post.call_args.args[0] == "https://hooks.example/a"
        body = json.loads(client.post.call_args.kwargs["content"])
        assert body["event_type"] == "alert.critical"
        assert body["data"]["down"] == 3

    @pytest.mark.asyncio
    async def test_unsubscribed_event_skipped(self):
        listener = WebhookListener([WebhookConfig(url="https://hooks.example/a")])

        with patch("outage_radar.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_client(mock_cls)
            await listener.on_event(_event(REFRESHED))
            await listener.drain()

        client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_wildcard_delivers(self):
        listener = WebhookListener([WebhookConfig(url="https://hooks.example/a", events=["*"])])

        with patch("outage_radar.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_client(mock_cls)
            await listener.on_event(_event(FLUSHED))
            await listener.drain()

        client.post.assert_called_once()

    @pytest.mark.asyncio
    async def test_empty_url_ignored(self):
        listener = WebhookListener([WebhookConfig(url="", events=["*"])])

        with patch("outage_radar.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_client(mock_cls)
            await listener.on_event(_event())
            await listener.drain()

        client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_signature_matches_transmitted_body(self):
        secret = "test-secret-key"
        listener = WebhookListener([WebhookConfig(url="https://hooks.example/a", secret=secret)])

        with patch("outage_radar.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_client(mock_cls)
            await listener.on_event(_event(CRITICAL, down=5, threshold=0))
            await listener.drain()

        kwargs = client.post.call_args.kwargs
        expected = hmac.new(secret.encode(), kwargs["content"], hashlib.sha256).hexdigest()
        assert kwargs["headers"][SIGNATURE_HEADER] == expected
        assert sign(secret, kwargs["content"]) == expected

    @pytest.mark.asyncio
    async def test_unsigned_without_secret(self):
        listener = WebhookListener([WebhookConfig(url="https://hooks.example/a")])

        with patch("outage_radar.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_client(mock_cls)
            await listener.on_event(_event())
            await listener.drain()

        assert SIGNATURE_HEADER not in client.post.call_args.kwargs["headers"]

    @pytest.mark.asyncio
    async def test_error_status_logged_not_raised(self, caplog):
        listener = WebhookListener([WebhookConfig(url="https://hooks.example/a")])

        with patch("outage_radar.events.webhook.httpx.AsyncClient") as mock_cls:
            _mock_client(mock_cls, status_code=500)
            await listener.on_event(_event())
            await listener.drain()

        assert "Webhook delivery failed" in caplog.text
        assert "HTTP 500" in caplog.text

    @pytest.mark.asyncio
    async def test_connection_failure_does_not_raise(self):
        listener = WebhookListener([WebhookConfig(url="https://hooks.example/a")])

        with patch("outage_radar.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_client(mock_cls)
            client.post.side_effect = httpx.ConnectError("refused")
            await listener.on_event(_event())
            await listener.drain()

        assert len(listener._pending) == 0


# ─── create_cli_emitter tests ───


class TestCreateCliEmitter:
    def test_no_webhooks_gives_bare_emitter(self):
        assert create_cli_emitter(RadarConfig())._listeners == []

    def test_with_webhooks_returns_emitter(self):
        config = RadarConfig(webhooks=[WebhookConfig(url="https://hooks.example/a")])
        emitter = create_cli_emitter(config)
        assert len(emitter._listeners) == 1
        assert isinstance(emitter._listeners[0], WebhookListener)
