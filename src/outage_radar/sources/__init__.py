"""Status sources, ordered by cost and confidence."""

from __future__ import annotations

from typing import TYPE_CHECKING

from outage_radar.sources.base import StatusSource
from outage_radar.sources.generative import GenerativeModelSource
from outage_radar.sources.scraper import AggregatorScraper
from outage_radar.sources.secondary import DetailPageSource

if TYPE_CHECKING:
    from outage_radar.config.models import RadarConfig

__all__ = [
    "AggregatorScraper",
    "DetailPageSource",
    "GenerativeModelSource",
    "StatusSource",
    "build_sources",
]


def build_sources(config: RadarConfig) -> tuple[AggregatorScraper, GenerativeModelSource, DetailPageSource]:
    """Create the three tiers in priority order."""
    return (
        AggregatorScraper(config.scraper),
        GenerativeModelSource(config.llm),
        DetailPageSource(config.scraper, config.secondary),
    )
