"""
Central configuration loaded from environment variables with sensible defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache


@dataclass(frozen=True)
class MatchingConfig:
    # Minimum matched items for an entity to surface as a hotspot
    noise_floor: int = int(os.getenv("HOTSPOT_NOISE_FLOOR", "2"))
    # Items kept per hotspot for display (count/recency use all matches)
    max_items: int = int(os.getenv("HOTSPOT_MAX_ITEMS", "30"))
    # "Recently updated" badge window
    recent_window_seconds: int = int(os.getenv("HOTSPOT_RECENT_WINDOW_SEC", "3600"))
    # >1 partitions entities across a thread pool
    workers: int = int(os.getenv("MATCH_WORKERS", "1"))

    def __post_init__(self):
        # floor >= 1, cap >= 0, workers >= 1
        object.__setattr__(self, "noise_floor", max(self.noise_floor, 1))
        object.__setattr__(self, "max_items", max(self.max_items, 0))
        object.__setattr__(self, "workers", max(self.workers, 1))


@dataclass(frozen=True)
class CatalogConfig:
    # Optional GeoJSON FeatureCollections; the built-in catalog is used when unset
    countries_path: str = os.getenv("CATALOG_COUNTRIES_PATH", "")
    states_path: str = os.getenv("CATALOG_STATES_PATH", "")
    provinces_path: str = os.getenv("CATALOG_PROVINCES_PATH", "")
    # JSON object: feature id -> [lat, lon] authoritative points
    points_path: str = os.getenv("CATALOG_POINTS_PATH", "")
    # JSON file replacing the built-in disambiguation tables
    rules_path: str = os.getenv("MATCH_RULES_PATH", "")


@dataclass(frozen=True)
class APIConfig:
    host: str = os.getenv("API_HOST", "0.0.0.0")
    port: int = int(os.getenv("API_PORT", "8000"))
    # Upper bound on items accepted per /hotspots request
    max_items: int = int(os.getenv("API_MAX_ITEMS", "5000"))


@dataclass(frozen=True)
class Settings:
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    env: str = os.getenv("APP_ENV", "development")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
