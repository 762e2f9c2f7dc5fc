"""Data models for service status and aggregate reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Optional


class Severity(StrEnum):
    STABLE = "stable"
    DEGRADED = "degraded"
    DOWN = "down"
    UNKNOWN = "unknown"
    ERROR = "error"

    @property
    def conclusive(self) -> bool:
        return self in (Severity.STABLE, Severity.DEGRADED, Severity.DOWN)

    @property
    def is_problem(self) -> bool:
        return self in (Severity.DEGRADED, Severity.DOWN)


# Ordering used to rank problems: most severe first.
SEVERITY_RANK: dict[Severity, int] = {
    Severity.DOWN: 2,
    Severity.DEGRADED: 1,
    Severity.STABLE: 0,
    Severity.UNKNOWN: 0,
    Severity.ERROR: 0,
}


class SourceName(StrEnum):
    SCRAPER = "scraper"
    AI = "ai"
    SECONDARY = "secondary-scraper"
    NONE = "none"


@dataclass(frozen=True)
class ServiceDescriptor:
    """Static catalogue entry for a tracked service."""

    id: str
    display_name: str
    slug: str = ""
    keywords: tuple[str, ...] = ()

    @property
    def site_slug(self) -> str:
        return self.slug or self.id


@dataclass(frozen=True)
class ServiceStatus:
    """Status of one service at one point in time."""

    service_id: str
    severity: Severity
    message: str
    source: SourceName
    observed_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    report_volume: Optional[float] = None

    @property
    def has_issues(self) -> bool:
        return self.severity.is_problem

    @property
    def conclusive(self) -> bool:
        return self.severity.conclusive

    @classmethod
    def unknown(cls, service_id: str, source: SourceName, message: str) -> ServiceStatus:
        return cls(service_id=service_id, severity=Severity.UNKNOWN, message=message, source=source)

    @classmethod
    def failed(cls, service_id: str, source: SourceName, message: str) -> ServiceStatus:
        return cls(service_id=service_id, severity=Severity.ERROR, message=message, source=source)

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_id": self.service_id,
            "has_issues": self.has_issues,
            "severity": self.severity.value,
            "message": self.message,
            "source": self.source.value,
            "observed_at": self.observed_at.isoformat(),
            "report_volume": self.report_volume,
        }


@dataclass(frozen=True)
class Incident:
    title: str
    time: str = ""
    description: str = ""


@dataclass(frozen=True)
class ServiceDetail:
    """Extended detail scraped from a service's own page."""

    service_id: str
    timeline: list[int] = field(default_factory=list)
    incidents: list[Incident] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timeline": list(self.timeline),
            "incidents": [
                {"title": i.title, "time": i.time, "description": i.description}
                for i in self.incidents
            ],
        }


def _problem_sort_key(status: ServiceStatus) -> tuple[int, float]:
    return (-SEVERITY_RANK[status.severity], -(status.report_volume or 0.0))


@dataclass
class AggregateReport:
    """Catalogue-wide summary derived from per-service statuses."""

    timestamp: datetime
    details: list[ServiceStatus] = field(default_factory=list)

    @classmethod
    def from_statuses(cls, statuses: list[ServiceStatus], timestamp: datetime | None = None) -> AggregateReport:
        return cls(timestamp=timestamp or datetime.now(UTC), details=list(statuses))

    @property
    def total_checked(self) -> int:
        return len(self.details)

    @property
    def problems(self) -> list[ServiceStatus]:
        return sorted((s for s in self.details if s.has_issues), key=_problem_sort_key)

    @property
    def problem_count(self) -> int:
        return sum(1 for s in self.details if s.has_issues)

    @property
    def down_count(self) -> int:
        return sum(1 for s in self.details if s.severity is Severity.DOWN)

    @property
    def unknown_or_error(self) -> list[ServiceStatus]:
        return [s for s in self.details if not s.conclusive]

    @property
    def unknown_or_error_count(self) -> int:
        return len(self.unknown_or_error)

    @property
    def issue_percentage(self) -> float:
        if not self.details:
            return 0.0
        return round(self.problem_count / self.total_checked * 100, 2)

    @property
    def summary(self) -> str:
        parts: list[str] = []
        if self.problem_count:
            parts.append(f"{self.problem_count} service(s) with issues")
        if self.unknown_or_error_count:
            parts.append(f"{self.unknown_or_error_count} service(s) with unknown status")
        if not parts:
            return f"All {self.total_checked} checked services are stable"
        return "; ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated_at": self.timestamp.isoformat(),
            "summary": self.summary,
            "total_checked": self.total_checked,
            "problems": self.problem_count,
            "issue_percentage": self.issue_percentage,
            "unknown_or_error": self.unknown_or_error_count,
            "problem_services": [s.to_dict() for s in self.problems],
            "details": [s.to_dict() for s in self.details],
        }


@dataclass
class CriticalReport:
    """The worst problem services, each paired with its detail page data."""

    timestamp: datetime
    total_checked: int
    total_issues: int
    entries: list[tuple[ServiceStatus, ServiceDetail]] = field(default_factory=list)

    def severity_counts(self) -> dict[str, int]:
        return {
            Severity.DOWN.value: sum(1 for s, _ in self.entries if s.severity is Severity.DOWN),
            Severity.DEGRADED.value: sum(1 for s, _ in self.entries if s.severity is Severity.DEGRADED),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated_at": self.timestamp.isoformat(),
            "total_checked": self.total_checked,
            "total_issues": self.total_issues,
            "top_critical": [{**status.to_dict(), **detail.to_dict()} for status, detail in self.entries],
            "counts": self.severity_counts(),
        }
