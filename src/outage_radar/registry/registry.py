"""Catalogue of tracked services loaded from config."""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from outage_radar.config.models import RadarConfig
from outage_radar.registry.models import ServiceDescriptor


def _normalize(text: str) -> str:
    return text.strip().lower()


def _phrase(text: str) -> str:
    """Lowercased words joined by single spaces, punctuation dropped."""
    return " ".join(re.findall(r"[\wÀ-ÿ]+", _normalize(text)))


class ServiceRegistry:
    """Registry of tracked services with name and keyword lookup."""

    def __init__(self, config: RadarConfig) -> None:
        self._services: Dict[str, ServiceDescriptor] = {
            key: ServiceDescriptor(
                id=key,
                display_name=entry.name,
                slug=entry.slug,
                keywords=tuple(_normalize(k) for k in entry.keywords),
            )
            for key, entry in config.services.items()
        }

    @property
    def service_ids(self) -> List[str]:
        return list(self._services.keys())

    @property
    def descriptors(self) -> List[ServiceDescriptor]:
        return list(self._services.values())

    def get(self, service_id: str) -> Optional[ServiceDescriptor]:
        return self._services.get(service_id)

    def resolve(self, name: str) -> Optional[ServiceDescriptor]:
        """Find a service by id, display name, or keyword (in that order)."""
        needle = _normalize(name)
        if needle in self._services:
            return self._services[needle]
        for descriptor in self._services.values():
            if _normalize(descriptor.display_name) == needle:
                return descriptor
        for descriptor in self._services.values():
            if needle in descriptor.keywords:
                return descriptor
        return None

    def match_mentions(self, text: str) -> List[ServiceDescriptor]:
        """Return every service mentioned in free text, in catalogue order.

        Names are compared as whole-word phrases, so "Amazon Web Services"
        matches inside a sentence but "web" alone does not.
        """
        haystack = f" {_phrase(text)} "
        found: List[ServiceDescriptor] = []
        for descriptor in self._services.values():
            names = {descriptor.id, descriptor.display_name, *descriptor.keywords}
            if any(f" {phrase} " in haystack for phrase in map(_phrase, names) if phrase):
                found.append(descriptor)
        return found
