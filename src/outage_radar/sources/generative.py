"""Secondary tier: asks a generative model for a service's status."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from outage_radar.config.models import LLMConfig
from outage_radar.errors import (
    ModelConfigMissing,
    ModelResponseMalformed,
    SourceUnavailable,
    SourceUnparseable,
)
from outage_radar.registry.models import ServiceDescriptor, ServiceStatus, Severity, SourceName
from outage_radar.sources.base import StatusSource

logger = logging.getLogger(__name__)

_JSON_PATTERN = re.compile(r"\{[\s\S]*\}")

PROMPT_TEMPLATE = """\
You are monitoring the online service "{name}" (id: {service_id}).
Estimate whether it is currently experiencing an outage.
Answer ONLY with a JSON object in exactly this format, with no other text:
{{
  "hasIssues": true | false,
  "severity": "stable" | "degraded" | "down" | "unknown",
  "message": "short explanation"
}}
Use "unknown" if you have no reliable signal."""


class ModelVerdict(BaseModel):
    """Structured payload the model is instructed to return."""

    model_config = ConfigDict(populate_by_name=True)

    has_issues: Optional[bool] = Field(default=None, alias="hasIssues")
    severity: Literal["stable", "degraded", "unstable", "down", "unknown"]
    message: str = ""

    def to_severity(self) -> Severity:
        if self.severity == "unstable":
            return Severity.DEGRADED
        return Severity(self.severity)


def build_prompt(service: ServiceDescriptor) -> str:
    return PROMPT_TEMPLATE.format(name=service.display_name, service_id=service.id)


def parse_verdict(text: str) -> ModelVerdict:
    """Locate and validate the JSON payload inside a model reply."""
    match = _JSON_PATTERN.search(text)
    if match is None:
        raise ModelResponseMalformed("No JSON object in model reply")
    try:
        verdict = ModelVerdict.model_validate(json.loads(match.group(0)))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ModelResponseMalformed(f"Invalid model payload: {exc}") from exc
    severity = verdict.to_severity()
    if verdict.has_issues is not None and severity.conclusive and verdict.has_issues != severity.is_problem:
        raise ModelResponseMalformed(
            f"Contradictory payload: hasIssues={verdict.has_issues} with severity={verdict.severity}"
        )
    return verdict


def _reply_text(data: dict[str, Any]) -> str:
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ModelResponseMalformed("Model response has no text candidate") from exc
    if not isinstance(text, str) or not text.strip():
        raise ModelResponseMalformed("Model response text is empty")
    return text


class GenerativeModelSource(StatusSource):
    """Fallback tier backed by a Gemini-style ``generateContent`` endpoint."""

    name = SourceName.AI

    def __init__(self, config: LLMConfig) -> None:
        super().__init__()
        self._config = config

    @property
    def enabled(self) -> bool:
        return bool(self._config.api_key)

    async def fetch(self, service: ServiceDescriptor) -> ServiceStatus:
        return await self.infer(service)

    async def infer(self, service: ServiceDescriptor) -> ServiceStatus:
        try:
            verdict = await self._ask(service)
        except ModelConfigMissing as exc:
            return self._error(service, str(exc))
        except (ModelResponseMalformed, SourceUnparseable) as exc:
            logger.warning("Malformed model reply for %s: %s", service.id, exc)
            return self._error(service, f"Model reply malformed: {exc}")
        except SourceUnavailable as exc:
            logger.warning("Model backend unavailable for %s: %s", service.id, exc)
            return self._unknown(service, f"Model backend unavailable: {exc}")

        severity = verdict.to_severity()
        return ServiceStatus(
            service_id=service.id,
            severity=severity,
            message=verdict.message or f"Model estimate: {severity.value}",
            source=self.name,
        )

    async def _ask(self, service: ServiceDescriptor) -> ModelVerdict:
        if not self.enabled:
            raise ModelConfigMissing("Generative model tier disabled: no API key configured")
        url = f"{self._config.base_url.rstrip('/')}/models/{self._config.model}:generateContent"
        payload = {"contents": [{"parts": [{"text": build_prompt(service)}]}]}
        data = await self._post_json(
            url,
            payload,
            timeout=self._config.timeout,
            params={"key": self._config.api_key},
        )
        return parse_verdict(_reply_text(data))
