"""outage-radar configuration system."""

from outage_radar.config.loader import config_from_env, find_config_file, load_config
from outage_radar.config.models import (
    LLMConfig,
    RadarConfig,
    ScraperConfig,
    SchedulerConfig,
    ServiceEntry,
    WebhookConfig,
)

__all__ = [
    "LLMConfig",
    "RadarConfig",
    "ScraperConfig",
    "SchedulerConfig",
    "ServiceEntry",
    "WebhookConfig",
    "config_from_env",
    "find_config_file",
    "load_config",
]
