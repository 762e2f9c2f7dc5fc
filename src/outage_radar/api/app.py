"""FastAPI application factory for outage-radar."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from outage_radar.api.routes import events, status
from outage_radar.config.loader import config_from_env, load_config
from outage_radar.config.models import RadarConfig
from outage_radar.events.emitter import EventEmitter
from outage_radar.events.log import EventLog
from outage_radar.events.webhook import WebhookListener
from outage_radar.monitor.orchestrator import StatusOrchestrator
from outage_radar.monitor.scheduler import StatusScheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    config: RadarConfig = app.state.config
    scheduler: StatusScheduler = app.state.scheduler
    if config.scheduler.enabled:
        scheduler.start(config.scheduler.interval)
    try:
        yield
    finally:
        scheduler.stop()
        await scheduler.drain()
        await app.state.emitter.drain()


def create_app(config: RadarConfig | None = None) -> FastAPI:
    app = FastAPI(
        title="Outage Radar",
        version="0.1.0",
        description="Third-party service outage aggregator",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if config is None:
        try:
            config = load_config()
        except FileNotFoundError:
            config = config_from_env()
        except ValueError:
            logger.exception("Ignoring invalid config file; using defaults and environment")
            config = config_from_env()
    app.state.config = config

    # Event system
    event_log = EventLog(config.event_log_size)
    emitter = EventEmitter()
    emitter.add_listener(event_log)
    if config.webhooks:
        emitter.add_listener(WebhookListener(config.webhooks))
    app.state.event_log = event_log
    app.state.emitter = emitter

    orchestrator = StatusOrchestrator.from_config(config)
    app.state.orchestrator = orchestrator
    app.state.scheduler = StatusScheduler(
        orchestrator,
        emitter=emitter,
        critical_threshold=config.alerts.critical_threshold,
        run_on_start=config.scheduler.run_on_start,
    )

    @app.get("/health", tags=["meta"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(status.router, prefix="/api")
    app.include_router(events.router, prefix="/api")

    return app


app = create_app()
