"""Pydantic models for outage-radar configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class ServiceEntry(BaseModel):
    """Catalogue entry for a tracked third-party service."""

    name: str
    slug: str = ""  # aggregator-site slug, defaults to the catalogue key
    keywords: list[str] = Field(default_factory=list)


def _default_services() -> dict[str, ServiceEntry]:
    return {
        "whatsapp": ServiceEntry(name="WhatsApp", slug="whatsapp-messenger", keywords=["whats", "zap"]),
        "facebook": ServiceEntry(name="Facebook", keywords=["fb"]),
        "instagram": ServiceEntry(name="Instagram", keywords=["insta", "ig"]),
        "google": ServiceEntry(name="Google", keywords=["gmail"]),
        "youtube": ServiceEntry(name="YouTube", keywords=["yt"]),
        "netflix": ServiceEntry(name="Netflix"),
        "cloudflare": ServiceEntry(name="Cloudflare"),
        "discord": ServiceEntry(name="Discord"),
        "tiktok": ServiceEntry(name="TikTok"),
        "nubank": ServiceEntry(name="Nubank", keywords=["nu"]),
        "itau": ServiceEntry(name="Itaú", keywords=["itaú"]),
        "aws": ServiceEntry(name="Amazon Web Services", slug="amazon-web-services", keywords=["amazon"]),
        "azure": ServiceEntry(name="Microsoft Azure", slug="windows-azure", keywords=["microsoft"]),
    }


class ScraperConfig(BaseModel):
    """Aggregator-site scraper (primary tier)."""

    base_url: str = "https://downdetector.com.br"
    detail_path: str = "/fora-do-ar/{slug}/"
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "pt-BR,pt;q=0.9"
    timeout: float = 8.0
    retries: int = 2  # extra attempts after the first
    retry_delay: float = 1.0
    cache_ttl: float = 120.0


class LLMConfig(BaseModel):
    """Generative-model backend (secondary tier)."""

    api_key: str = ""  # empty = tier disabled
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-pro"
    timeout: float = 10.0


class SecondaryConfig(BaseModel):
    """Per-service detail page scraper (tertiary tier)."""

    timeout: float = 6.0
    cache_ttl: float = 120.0


class CacheConfig(BaseModel):
    """Orchestrator cache settings."""

    status_ttl: float = 300.0


class SchedulerConfig(BaseModel):
    """Background refresh settings."""

    enabled: bool = True
    interval: float = 300.0
    run_on_start: bool = True
    max_concurrency: int = 5


class AlertConfig(BaseModel):
    """Critical-finding alert settings."""

    critical_threshold: int = 0  # alert when more than this many services are down


class ApiConfig(BaseModel):
    """Query surface settings."""

    api_key: str = ""  # empty = admin auth disabled
    query_deadline: float = 8.0


class RadarIdentity(BaseModel):
    """Top-level identity metadata."""

    name: str = "Outage Radar"
    version: str = "0.1.0"


class WebhookConfig(BaseModel):
    """Configuration for a single webhook endpoint."""

    url: str
    events: list[str] = Field(default_factory=lambda: ["alert.critical"])
    secret: str = ""  # HMAC signing key, supports ${ENV_VAR}


class RadarConfig(BaseModel):
    """Root configuration model for .outage-radar.yaml."""

    radar: RadarIdentity = Field(default_factory=RadarIdentity)
    services: dict[str, ServiceEntry] = Field(default_factory=_default_services)
    scraper: ScraperConfig = Field(default_factory=ScraperConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    secondary: SecondaryConfig = Field(default_factory=SecondaryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    alerts: AlertConfig = Field(default_factory=AlertConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    webhooks: list[WebhookConfig] = Field(default_factory=list)
    event_log_size: int = 100
