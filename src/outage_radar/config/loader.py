"""YAML config loader with environment variable interpolation and overrides."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from outage_radar.config.models import RadarConfig

CONFIG_FILENAME = ".outage-radar.yaml"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

# Environment variable -> dotted config path.
ENV_OVERRIDES: dict[str, str] = {
    "GEMINI_API_KEY": "llm.api_key",
    "OUTAGE_RADAR_AGGREGATOR_URL": "scraper.base_url",
    "OUTAGE_RADAR_INTERVAL": "scheduler.interval",
    "OUTAGE_RADAR_SCRAPER_TIMEOUT": "scraper.timeout",
    "OUTAGE_RADAR_MODEL_TIMEOUT": "llm.timeout",
    "OUTAGE_RADAR_STATUS_TTL": "cache.status_ttl",
    "OUTAGE_RADAR_API_KEY": "api.api_key",
}
ALERT_WEBHOOK_ENV = "OUTAGE_RADAR_ALERT_WEBHOOK_URL"


def _interpolate_env(value: str) -> str:
    """Replace ${VAR} and ${VAR:-default} patterns with environment values."""

    def _replace(match: re.Match[str]) -> str:
        expr = match.group(1)
        if ":-" in expr:
            var_name, default = expr.split(":-", 1)
            return os.environ.get(var_name.strip(), default)
        return os.environ.get(expr.strip(), match.group(0))

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(data: Any) -> Any:
    """Walk a nested data structure and interpolate env vars in strings."""
    if isinstance(data, str):
        return _interpolate_env(data)
    if isinstance(data, dict):
        return {k: _interpolate_recursive(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_interpolate_recursive(item) for item in data]
    return data


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay well-known environment variables onto raw config data.

    A non-empty variable replaces whatever the file says. Sections left
    blank in the YAML (``scraper:`` with nothing under it) count as empty.
    """
    for env_name, dotted in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        *parents, leaf = dotted.split(".")
        node = data
        for part in parents:
            if node.get(part) is None:
                node[part] = {}
            node = node[part]
            if not isinstance(node, dict):
                raise ValueError(f"Config section {part!r} must be a mapping to apply {env_name}")
        node[leaf] = value

    webhook_url = os.environ.get(ALERT_WEBHOOK_ENV)
    if webhook_url:
        hooks = data.get("webhooks") or []
        if not isinstance(hooks, list):
            raise ValueError(f"Config section 'webhooks' must be a list to apply {ALERT_WEBHOOK_ENV}")
        data["webhooks"] = hooks
        if not any(isinstance(h, dict) and h.get("url") == webhook_url for h in hooks):
            hooks.append({"url": webhook_url, "events": ["alert.critical"]})
    return data


def find_config_file(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default cwd) looking for .outage-radar.yaml."""
    current = (start or Path.cwd()).resolve()
    for ancestor in [current, *current.parents]:
        candidate = ancestor / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


def load_config(path: Path | None = None) -> RadarConfig:
    """Load and validate .outage-radar.yaml, applying env interpolation and overrides."""
    config_path = path or find_config_file()
    if not config_path or not config_path.exists():
        raise FileNotFoundError(
            f"Could not find {CONFIG_FILENAME}. Create one from .outage-radar.yaml.example or specify a path."
        )
    with config_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    data = _apply_env_overrides(_interpolate_recursive(raw))
    try:
        return RadarConfig(**data)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration in {config_path}: {exc}") from exc


def config_from_env() -> RadarConfig:
    """Build a config from defaults plus environment overrides (no file)."""
    try:
        return RadarConfig(**_apply_env_overrides({}))
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration from environment: {exc}") from exc
