"""Primary tier: scrapes the outage-aggregator homepage."""

from __future__ import annotations

import asyncio
import logging

from outage_radar.config.models import ScraperConfig
from outage_radar.errors import SourceUnavailable, SourceUnparseable
from outage_radar.registry.cache import TTLCache
from outage_radar.registry.models import ServiceDescriptor, ServiceStatus, SourceName
from outage_radar.sources.base import Sleep, StatusSource, browser_headers
from outage_radar.sources.extractors import CompanyIndexExtractor, StatusExtractor

logger = logging.getLogger(__name__)

_HOMEPAGE_KEY = "homepage"
_HOMEPAGE_FAILURE_KEY = "homepage:failure"
# A failed homepage fetch is remembered briefly so concurrent checks do not retry in lockstep.
_FAILURE_TTL = 30.0


class AggregatorScraper(StatusSource):
    """Reads every service's marker from one shared homepage fetch."""

    name = SourceName.SCRAPER

    def __init__(
        self,
        config: ScraperConfig,
        extractor: StatusExtractor | None = None,
        cache: TTLCache | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        super().__init__(cache=cache, sleep=sleep)
        self._config = config
        self._extractor = extractor or CompanyIndexExtractor()
        self._page_lock = asyncio.Lock()

    async def fetch(self, service: ServiceDescriptor) -> ServiceStatus:
        key = f"status:{service.id}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            html = await self._homepage()
            extraction = self._extractor.extract(html, service)
        except SourceUnavailable as exc:
            logger.warning("Aggregator unavailable for %s: %s", service.id, exc)
            return self._unknown(service, f"Aggregator site unavailable: {exc}")
        except SourceUnparseable as exc:
            logger.warning("Aggregator page unparseable for %s: %s", service.id, exc)
            self._cache.delete(_HOMEPAGE_KEY)
            return self._unknown(service, f"Aggregator page not recognised: {exc}")

        status = ServiceStatus(
            service_id=service.id,
            severity=extraction.severity,
            message=extraction.label,
            source=self.name,
            report_volume=extraction.report_volume,
        )
        self._cache.set(key, status, self._config.cache_ttl)
        return status

    async def _homepage(self) -> str:
        async with self._page_lock:
            html = self._cache.get(_HOMEPAGE_KEY)
            if html is not None:
                return html
            failure = self._cache.get(_HOMEPAGE_FAILURE_KEY)
            if failure is not None:
                raise SourceUnavailable(failure)
            try:
                html = await self._get_with_retry(
                    self._config.base_url,
                    timeout=self._config.timeout,
                    retries=self._config.retries,
                    retry_delay=self._config.retry_delay,
                    headers=browser_headers(self._config),
                )
            except SourceUnavailable as exc:
                self._cache.set(_HOMEPAGE_FAILURE_KEY, str(exc), min(_FAILURE_TTL, self._config.cache_ttl))
                raise
            self._cache.set(_HOMEPAGE_KEY, html, self._config.cache_ttl)
            return html
