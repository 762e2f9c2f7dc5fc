"""Tertiary tier: per-service detail page on the aggregator site."""

from __future__ import annotations

import logging

from outage_radar.config.models import ScraperConfig, SecondaryConfig
from outage_radar.errors import SourceUnavailable, SourceUnparseable
from outage_radar.registry.cache import TTLCache
from outage_radar.registry.models import ServiceDescriptor, ServiceDetail, ServiceStatus, SourceName
from outage_radar.sources.base import StatusSource, browser_headers
from outage_radar.sources.extractors import DetailPageExtractor

logger = logging.getLogger(__name__)


class DetailPageSource(StatusSource):
    """Lower-confidence fallback that reads a single service's page.

    Also supplies the timeline and recent incidents shown by the detail
    endpoint.
    """

    name = SourceName.SECONDARY

    def __init__(
        self,
        scraper_config: ScraperConfig,
        config: SecondaryConfig,
        extractor: DetailPageExtractor | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        super().__init__(cache=cache)
        self._scraper_config = scraper_config
        self._config = config
        self._extractor = extractor or DetailPageExtractor()

    def page_url(self, service: ServiceDescriptor) -> str:
        path = self._scraper_config.detail_path.format(slug=service.site_slug)
        return self._scraper_config.base_url.rstrip("/") + path

    async def _page(self, service: ServiceDescriptor) -> str:
        key = f"page:{service.id}"
        html = self._cache.get(key)
        if html is None:
            html = await self._get_text(
                self.page_url(service),
                timeout=self._config.timeout,
                headers=browser_headers(self._scraper_config),
            )
            self._cache.set(key, html, self._config.cache_ttl)
        return html

    async def fetch(self, service: ServiceDescriptor) -> ServiceStatus:
        try:
            extraction = self._extractor.extract(await self._page(service), service)
        except SourceUnavailable as exc:
            logger.warning("Detail page unavailable for %s: %s", service.id, exc)
            return self._unknown(service, f"Detail page unavailable: {exc}")
        except SourceUnparseable as exc:
            logger.warning("Detail page unparseable for %s: %s", service.id, exc)
            self._cache.delete(f"page:{service.id}")
            return self._unknown(service, f"Detail page not recognised: {exc}")
        return ServiceStatus(
            service_id=service.id,
            severity=extraction.severity,
            message=extraction.label,
            source=self.name,
            report_volume=extraction.report_volume,
        )

    async def fetch_detail(self, service: ServiceDescriptor) -> ServiceDetail:
        """Timeline and recent incidents; empty when the page cannot be read."""
        try:
            return self._extractor.extract_detail(await self._page(service), service)
        except (SourceUnavailable, SourceUnparseable) as exc:
            logger.info("No detail available for %s: %s", service.id, exc)
            return ServiceDetail(service_id=service.id)
