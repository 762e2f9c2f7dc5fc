"""Markup extractors that turn aggregator-site HTML into status signals.

Each source delegates page parsing to an extractor so a site's markup
strategy can be swapped without touching the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from bs4 import BeautifulSoup, Tag

from outage_radar.errors import SourceUnparseable
from outage_radar.registry.models import Incident, ServiceDescriptor, ServiceDetail, Severity

BLOCK_MARKERS = (
    "cf-browser-verification",
    "challenge-platform",
    "just a moment...",
    "attention required",
    "captcha",
)

OK_MARKERS = ("não há problemas", "sem problemas", "no current problems", "no problems")
DOWN_MARKERS = ("interrupção", "outage", "is down")
PROBLEM_MARKERS = ("problema", "problems", "falha", "instabilidade", "issues")

MAX_INCIDENTS = 5


@dataclass(frozen=True)
class Extraction:
    severity: Severity
    label: str
    report_volume: Optional[float] = None


class StatusExtractor(Protocol):
    """Parses one page layout into an Extraction for a service."""

    def extract(self, html: str, service: ServiceDescriptor) -> Extraction: ...


def _to_int(value: object) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _check_not_blocked(html: str) -> None:
    head = html[:5000].lower()
    for marker in BLOCK_MARKERS:
        if marker in head:
            raise SourceUnparseable(f"Anti-bot page detected ({marker!r})")


def _href_slug(href: str) -> str:
    return href.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1].lower()


class CompanyIndexExtractor:
    """Reads the aggregator homepage grid of ``.company-index`` blocks."""

    block_selector = ".company-index"

    def extract(self, html: str, service: ServiceDescriptor) -> Extraction:
        _check_not_blocked(html)
        soup = BeautifulSoup(html, "html.parser")
        blocks = soup.select(self.block_selector)
        if not blocks:
            raise SourceUnparseable("Homepage contains no service blocks")

        block = self._find_block(blocks, service.site_slug.lower())
        if block is None:
            return Extraction(Severity.STABLE, f"{service.display_name} is not among reported services")

        volume = _to_int(block.get("data-day"))
        if block.select_one("svg.danger") is not None:
            severity, label = Severity.DOWN, "Outage reported"
        elif block.select_one("svg.warning") is not None:
            severity, label = Severity.DEGRADED, "Instability reported"
        else:
            severity, label = Severity.STABLE, "No problems reported"
        if volume is not None:
            label = f"{label} ({volume} reports)"
        return Extraction(severity, label, float(volume) if volume is not None else None)

    @staticmethod
    def _find_block(blocks: list[Tag], slug: str) -> Optional[Tag]:
        for block in blocks:
            for link in block.find_all("a", href=True):
                if _href_slug(str(link["href"])) == slug:
                    return block
        return None


class DetailPageExtractor:
    """Reads a per-service status page: headline, report chart and incidents."""

    headline_selectors = (".entry-title", "h1")

    def _headline(self, soup: BeautifulSoup) -> Optional[str]:
        for selector in self.headline_selectors:
            node = soup.select_one(selector)
            if node is not None:
                text = node.get_text(" ", strip=True)
                if text:
                    return text
        return None

    def extract(self, html: str, service: ServiceDescriptor) -> Extraction:
        _check_not_blocked(html)
        soup = BeautifulSoup(html, "html.parser")
        headline = self._headline(soup)
        if headline is None:
            raise SourceUnparseable("Detail page has no headline")

        text = headline.lower()
        timeline = self._timeline(soup)
        volume = float(timeline[-1]) if timeline else None
        if any(m in text for m in OK_MARKERS):
            return Extraction(Severity.STABLE, headline, volume)
        if any(m in text for m in DOWN_MARKERS):
            return Extraction(Severity.DOWN, headline, volume)
        if any(m in text for m in PROBLEM_MARKERS):
            return Extraction(Severity.DEGRADED, headline, volume)
        raise SourceUnparseable(f"Unrecognised headline: {headline!r}")

    def extract_detail(self, html: str, service: ServiceDescriptor) -> ServiceDetail:
        _check_not_blocked(html)
        soup = BeautifulSoup(html, "html.parser")
        incidents = [
            Incident(
                title=self._text(item, ".incident-title"),
                time=self._text(item, ".incident-time"),
                description=self._text(item, ".incident-desc"),
            )
            for item in soup.select(".incident-item")[:MAX_INCIDENTS]
        ]
        return ServiceDetail(service_id=service.id, timeline=self._timeline(soup), incidents=incidents)

    @staticmethod
    def _timeline(soup: BeautifulSoup) -> list[int]:
        points: list[int] = []
        for node in soup.select(".chart-point[data-value]"):
            value = _to_int(node.get("data-value"))
            if value is not None:
                points.append(value)
        return points

    @staticmethod
    def _text(node: Tag, selector: str) -> str:
        found = node.select_one(selector)
        return found.get_text(strip=True) if found is not None else ""
