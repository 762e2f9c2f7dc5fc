"""Shared fixtures for outage-radar tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest
import yaml

from outage_radar.config.models import RadarConfig
from outage_radar.registry.models import ServiceDescriptor, ServiceStatus, Severity, SourceName
from outage_radar.registry.registry import ServiceRegistry
from outage_radar.sources.base import StatusSource

SAMPLE_CONFIG: Dict[str, Any] = {
    "radar": {"name": "Outage Radar", "version": "0.1.0"},
    "scraper": {
        "base_url": "https://aggregator.example",
        "detail_path": "/status/{slug}/",
        "timeout": 5,
        "retries": 2,
        "retry_delay": 0,
        "cache_ttl": 120,
    },
    "llm": {"api_key": "", "model": "gemini-pro", "timeout": 8},
    "cache": {"status_ttl": 300},
    "scheduler": {"enabled": False, "interval": 300, "run_on_start": True, "max_concurrency": 5},
    "alerts": {"critical_threshold": 2},
    "services": {
        "whatsapp": {"name": "WhatsApp", "slug": "whatsapp-messenger", "keywords": ["zap"]},
        "instagram": {"name": "Instagram", "keywords": ["insta"]},
        "netflix": {"name": "Netflix"},
        "examplepay": {"name": "ExamplePay", "keywords": ["pay"]},
        "smallservice": {"name": "Small Service"},
    },
}

HOMEPAGE_HTML = """
<html><head><title>Outages right now</title></head><body>
<div class="company-index" data-day="812">
  <a href="/status/whatsapp-messenger/"><h5>WhatsApp</h5></a>
  <svg class="danger"></svg>
</div>
<div class="company-index" data-day="140">
  <a href="/status/instagram/"><h5>Instagram</h5></a>
  <svg class="warning"></svg>
</div>
<div class="company-index" data-day="3">
  <a href="/status/netflix/"><h5>Netflix</h5></a>
  <svg class="ok"></svg>
</div>
</body></html>
"""

BLOCKED_HTML = """
<html><head><title>Just a moment...</title></head>
<body><div id="challenge-platform">Checking your browser</div></body></html>
"""

DETAIL_PROBLEM_HTML = """
<html><body>
<h1 class="entry-title">User reports indicate problems at ExamplePay</h1>
<div class="chart">
  <span class="chart-point" data-value="12"></span>
  <span class="chart-point" data-value="40"></span>
  <span class="chart-point" data-value="95"></span>
</div>
<ul>
  <li class="incident-item"><span class="incident-title">Login failing</span>
    <span class="incident-time">10:02</span><span class="incident-desc">App returns 500</span></li>
  <li class="incident-item"><span class="incident-title">Slow transfers</span>
    <span class="incident-time">09:40</span><span class="incident-desc">Delays</span></li>
</ul>
</body></html>
"""

DETAIL_OK_HTML = """
<html><body>
<h1 class="entry-title">User reports indicate no current problems at Netflix</h1>
<span class="chart-point" data-value="2"></span>
</body></html>
"""


@pytest.fixture()
def sample_config() -> RadarConfig:
    """Return a parsed RadarConfig from sample data."""
    return RadarConfig(**SAMPLE_CONFIG)


@pytest.fixture()
def sample_config_dict() -> Dict[str, Any]:
    """Return raw sample config dict."""
    return dict(SAMPLE_CONFIG)


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    """Write sample config to a temp .outage-radar.yaml and return the path."""
    path = tmp_path / ".outage-radar.yaml"
    with path.open("w") as fh:
        yaml.dump(SAMPLE_CONFIG, fh)
    return path


@pytest.fixture()
def registry(sample_config: RadarConfig) -> ServiceRegistry:
    return ServiceRegistry(sample_config)


@pytest.fixture()
def descriptor() -> ServiceDescriptor:
    return ServiceDescriptor(id="examplepay", display_name="ExamplePay")


class ScriptedSource(StatusSource):
    """A source that answers from a fixed script and records every call."""

    def __init__(
        self,
        name: SourceName,
        default: Severity = Severity.UNKNOWN,
        outcomes: Optional[Dict[str, Severity]] = None,
        volumes: Optional[Dict[str, float]] = None,
        delay: float = 0.0,
        call_log: Optional[list[str]] = None,
    ) -> None:
        super().__init__()
        self.name = name
        self.default = default
        self.outcomes = outcomes or {}
        self.volumes = volumes or {}
        self.delay = delay
        self.call_log = call_log if call_log is not None else []
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, service: ServiceDescriptor) -> ServiceStatus:
        self.calls += 1
        self.call_log.append(self.name.value)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        severity = self.outcomes.get(service.id, self.default)
        return ServiceStatus(
            service_id=service.id,
            severity=severity,
            message=f"{self.name.value} says {severity.value}",
            source=self.name,
            report_volume=self.volumes.get(service.id),
        )


@pytest.fixture()
def scripted() -> Callable[..., ScriptedSource]:
    """Factory for ScriptedSource instances."""
    return ScriptedSource
