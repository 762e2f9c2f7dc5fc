"""Tiered status resolution with caching and bounded concurrent fan-out."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Optional

from outage_radar.config.models import RadarConfig
from outage_radar.registry.cache import TTLCache
from outage_radar.registry.models import (
    AggregateReport,
    CriticalReport,
    ServiceDescriptor,
    ServiceDetail,
    ServiceStatus,
    SourceName,
)
from outage_radar.registry.registry import ServiceRegistry
from outage_radar.sources import DetailPageSource, StatusSource, build_sources

logger = logging.getLogger(__name__)


def _tier_budget(config: RadarConfig) -> float:
    """Upper bound on how long a single tier may take, retries included."""
    scraper = config.scraper
    scraper_budget = scraper.timeout * (scraper.retries + 1) + scraper.retry_delay * (2**scraper.retries - 1)
    return max(scraper_budget, config.llm.timeout, config.secondary.timeout) + 1.0


class StatusOrchestrator:
    """Resolves each service through the source tiers, first conclusive answer wins.

    Conclusive answers (stable, degraded, down) are cached for
    ``status_ttl`` seconds. When every tier is inconclusive the result
    is ``unknown`` with source ``none`` and is deliberately not cached,
    so the next call tries all tiers again.
    """

    def __init__(
        self,
        registry: ServiceRegistry,
        sources: Sequence[StatusSource],
        cache: TTLCache | None = None,
        status_ttl: float = 300.0,
        max_concurrency: int = 5,
        tier_timeout: float | None = None,
        detail_source: DetailPageSource | None = None,
    ) -> None:
        self._registry = registry
        self._sources = list(sources)
        self._cache = cache if cache is not None else TTLCache()
        self._status_ttl = status_ttl
        self._tier_timeout = tier_timeout
        self._detail_source = detail_source
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._locks: dict[str, asyncio.Lock] = {}
        self._background: set[asyncio.Task[ServiceStatus]] = set()

    @classmethod
    def from_config(cls, config: RadarConfig) -> StatusOrchestrator:
        scraper, model, secondary = build_sources(config)
        return cls(
            ServiceRegistry(config),
            [scraper, model, secondary],
            status_ttl=config.cache.status_ttl,
            max_concurrency=config.scheduler.max_concurrency,
            tier_timeout=_tier_budget(config),
            detail_source=secondary,
        )

    @property
    def registry(self) -> ServiceRegistry:
        return self._registry

    @staticmethod
    def _key(service_id: str) -> str:
        return f"status:{service_id}"

    def peek(self, service_id: str) -> Optional[ServiceStatus]:
        """Return the cached status without triggering any fetch."""
        return self._cache.get(self._key(service_id))

    def flush(self) -> None:
        """Drop every cached answer so the next access re-evaluates all tiers."""
        self._cache.clear()
        for source in self._sources:
            source.clear_cache()
        logger.info("Status caches flushed")

    async def get_status(self, service_id: str, refresh: bool = False) -> ServiceStatus:
        """Cached status, or a fresh tier walk on a miss.

        ``refresh=True`` ignores any cached answer and re-resolves, still
        writing a conclusive result back to the cache.
        """
        if not refresh:
            cached = self.peek(service_id)
            if cached is not None:
                return cached

        descriptor = self._registry.get(service_id)
        if descriptor is None:
            return ServiceStatus.unknown(service_id, SourceName.NONE, f"Service {service_id!r} is not tracked")

        lock = self._locks.setdefault(service_id, asyncio.Lock())
        async with lock:
            # Another caller may have resolved it while we waited.
            cached = None if refresh else self.peek(service_id)
            if cached is not None:
                return cached
            async with self._semaphore:
                return await self._walk_tiers(descriptor)

    async def _walk_tiers(self, descriptor: ServiceDescriptor) -> ServiceStatus:
        outcomes: list[str] = []
        for source in self._sources:
            result = await self._call_source(source, descriptor)
            if result.conclusive:
                self._cache.set(self._key(descriptor.id), result, self._status_ttl)
                logger.debug("%s resolved by %s: %s", descriptor.id, source.name, result.severity)
                return result
            outcomes.append(f"{source.name}: {result.severity} ({result.message})")
            logger.info("%s inconclusive from %s, falling back", descriptor.id, source.name)

        logger.warning("No tier could determine status of %s", descriptor.id)
        return ServiceStatus.unknown(
            descriptor.id,
            SourceName.NONE,
            "Status could not be determined. " + "; ".join(outcomes),
        )

    async def _call_source(self, source: StatusSource, descriptor: ServiceDescriptor) -> ServiceStatus:
        try:
            if self._tier_timeout is None:
                return await source.fetch(descriptor)
            return await asyncio.wait_for(source.fetch(descriptor), timeout=self._tier_timeout)
        except TimeoutError:
            logger.warning("%s timed out for %s", source.name, descriptor.id)
            return ServiceStatus.unknown(descriptor.id, source.name, f"Timed out after {self._tier_timeout}s")
        except Exception as exc:
            logger.exception("%s raised while checking %s", source.name, descriptor.id)
            return ServiceStatus.failed(descriptor.id, source.name, f"Source error: {exc}")

    async def get_aggregate(
        self,
        service_ids: Iterable[str] | None = None,
        deadline: float | None = None,
        refresh: bool = False,
    ) -> AggregateReport:
        """Check services concurrently and summarise.

        With a *deadline*, checks still running when it expires are
        reported as ``unknown`` but keep running in the background so
        they can populate the cache. ``refresh`` bypasses cached answers.
        """
        ids = list(service_ids) if service_ids is not None else self._registry.service_ids
        tasks = [asyncio.ensure_future(self.get_status(sid, refresh=refresh)) for sid in ids]
        if tasks:
            await asyncio.wait(tasks, timeout=deadline)

        statuses: list[ServiceStatus] = []
        for sid, task in zip(ids, tasks):
            if not task.done():
                self._background.add(task)
                task.add_done_callback(self._background.discard)
                statuses.append(ServiceStatus.unknown(sid, SourceName.NONE, "Check still in progress"))
            elif task.cancelled():
                statuses.append(ServiceStatus.unknown(sid, SourceName.NONE, "Check cancelled"))
            elif task.exception() is not None:
                statuses.append(ServiceStatus.failed(sid, SourceName.NONE, f"Check failed: {task.exception()}"))
            else:
                statuses.append(task.result())
        return AggregateReport.from_statuses(statuses, timestamp=datetime.now(UTC))

    async def get_detail(self, service_id: str) -> ServiceDetail:
        descriptor = self._registry.get(service_id)
        if descriptor is None or self._detail_source is None:
            return ServiceDetail(service_id=service_id)
        return await self._detail_source.fetch_detail(descriptor)

    async def get_top_critical(self, limit: int = 10, deadline: float | None = None) -> CriticalReport:
        """The worst *limit* problem services, each with its detail page timeline and incidents."""
        report = await self.get_aggregate(deadline=deadline)
        top = report.problems[: max(limit, 0)]
        results = await asyncio.gather(
            *(asyncio.wait_for(self.get_detail(s.service_id), timeout=deadline) for s in top),
            return_exceptions=True,
        )

        details: list[ServiceDetail] = []
        for status, result in zip(top, results):
            if isinstance(result, BaseException):
                logger.warning("Detail fetch failed for %s: %r", status.service_id, result)
                result = ServiceDetail(service_id=status.service_id)
            details.append(result)
        return CriticalReport(
            timestamp=report.timestamp,
            total_checked=report.total_checked,
            total_issues=report.problem_count,
            entries=list(zip(top, details)),
        )
