"""Base class for status sources."""

from __future__ import annotations

import abc
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from outage_radar.config.models import ScraperConfig
from outage_radar.errors import SourceUnavailable, SourceUnparseable
from outage_radar.registry.cache import TTLCache
from outage_radar.registry.models import ServiceDescriptor, ServiceStatus, SourceName

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class StatusSource(abc.ABC):
    """One tier of status evidence. ``fetch`` never raises for network or parse failures."""

    name: SourceName = SourceName.NONE

    def __init__(self, cache: TTLCache | None = None, sleep: Sleep = asyncio.sleep) -> None:
        self._cache = cache if cache is not None else TTLCache()
        self._sleep = sleep

    @abc.abstractmethod
    async def fetch(self, service: ServiceDescriptor) -> ServiceStatus:
        """Return this source's view of *service*."""

    def clear_cache(self) -> None:
        self._cache.clear()

    def _unknown(self, service: ServiceDescriptor, message: str) -> ServiceStatus:
        return ServiceStatus.unknown(service.id, self.name, message)

    def _error(self, service: ServiceDescriptor, message: str) -> ServiceStatus:
        return ServiceStatus.failed(service.id, self.name, message)

    async def _get_text(self, url: str, timeout: float, headers: dict[str, str] | None = None) -> str:
        try:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                resp = await client.get(url, headers=headers)
        except httpx.TimeoutException as exc:
            raise SourceUnavailable(f"Timeout fetching {url}") from exc
        except httpx.HTTPError as exc:
            raise SourceUnavailable(f"Request to {url} failed: {exc}") from exc
        if not resp.is_success:
            raise SourceUnavailable(f"{url} returned HTTP {resp.status_code}")
        return resp.text

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        timeout: float,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.post(url, json=payload, params=params)
        except httpx.TimeoutException as exc:
            raise SourceUnavailable(f"Timeout calling {url}") from exc
        except httpx.HTTPError as exc:
            raise SourceUnavailable(f"Request to {url} failed: {exc}") from exc
        if not resp.is_success:
            raise SourceUnavailable(f"{url} returned HTTP {resp.status_code}")
        try:
            result: dict[str, Any] = resp.json()
        except ValueError as exc:
            raise SourceUnparseable(f"{url} returned invalid JSON") from exc
        return result

    async def _get_with_retry(
        self,
        url: str,
        timeout: float,
        retries: int,
        retry_delay: float,
        headers: dict[str, str] | None = None,
    ) -> str:
        """GET with exponential backoff on SourceUnavailable."""
        max_attempts = retries + 1
        for attempt in range(max_attempts):
            try:
                return await self._get_text(url, timeout, headers=headers)
            except SourceUnavailable as exc:
                if attempt >= max_attempts - 1:
                    raise
                delay = (2**attempt) * retry_delay
                logger.info(
                    "%s fetch failed (attempt %d/%d): %s; retrying in %.1fs",
                    self.name,
                    attempt + 1,
                    max_attempts,
                    exc,
                    delay,
                )
                await self._sleep(delay)
        raise AssertionError("unreachable")


def browser_headers(config: ScraperConfig) -> dict[str, str]:
    return {
        "User-Agent": config.user_agent,
        "Accept-Language": config.accept_language,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    }
