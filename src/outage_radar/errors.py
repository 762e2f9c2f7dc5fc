"""Exception hierarchy for outage-radar.

Source errors never escape a tier: the orchestrator turns them into
``unknown``/``error`` status records. Scheduler and webhook errors are
logged where they happen.
"""

from __future__ import annotations


class OutageRadarError(Exception):
    """Base class for all outage-radar errors."""


class SourceError(OutageRadarError):
    """A status source could not produce a conclusive answer."""


class SourceUnavailable(SourceError):
    """Network failure, timeout or non-2xx response."""


class SourceUnparseable(SourceError):
    """A response arrived but its structure was not recognised (e.g. anti-bot page)."""


class ModelConfigMissing(SourceError):
    """The generative-model tier has no credential configured."""


class ModelResponseMalformed(SourceError):
    """The model reply did not contain a valid structured payload."""


class SchedulerAlreadyRunning(OutageRadarError):
    """A recurring job is already registered."""


class WebhookDeliveryFailed(OutageRadarError):
    """A webhook endpoint rejected or did not receive an alert."""
