"""
Hotspot aggregation: turns per-entity match buckets into the ranked,
thresholded list the UI consumes.

  - buckets below the noise floor are dropped
  - byType counts matched items per content type
  - lastUpdated is the newest publishedAt over ALL matched items
  - items are truncated to the first N, in input order
  - sorted by count, descending; ties keep catalog order
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence, Union

from geo_hotspots.config import MatchingConfig, get_settings
from geo_hotspots.engine import MatchBucket, match_items
from geo_hotspots.matcher import CompiledCatalog, compile_catalog
from geo_hotspots.models import EPOCH, ContentItem, GeoEntity, Hotspot
from geo_hotspots.rules import MatchRules

logger = logging.getLogger(__name__)

# UI layer -> content types shown by that layer
LAYER_CONTENT_TYPES: dict[str, frozenset[str]] = {
    "news": frozenset({"article", "rumor"}),
    "twitter": frozenset({"tweet"}),
    "reddit": frozenset({"reddit_post"}),
    "flights": frozenset({"flight"}),
    "stocks": frozenset({"stock"}),
}


def content_types_for_layers(layers: Iterable[str]) -> frozenset[str]:
    types: set[str] = set()
    for layer in layers:
        known = LAYER_CONTENT_TYPES.get(layer.strip().lower())
        if known is None:
            logger.debug("Ignoring unknown layer %r", layer)
            continue
        types |= known
    return frozenset(types)


def filter_by_content_types(items: Iterable[ContentItem], content_types: Iterable[str]) -> list[ContentItem]:
    """Keep items whose content type is enabled, preserving order."""
    allowed = frozenset(content_types)
    return [item for item in items if item.content_type in allowed]


def _to_hotspot(bucket: MatchBucket, max_items: int) -> Hotspot:
    by_type: dict[str, int] = {}
    last_updated = EPOCH
    for item in bucket.items:
        by_type[item.content_type] = by_type.get(item.content_type, 0) + 1
        if item.published_at is not None and item.published_at > last_updated:
            last_updated = item.published_at

    e = bucket.entity
    return Hotspot(
        id=e.id,
        name=e.name,
        match_key=e.match_key,
        scope=e.scope,
        lon=e.lon,
        lat=e.lat,
        count=len(bucket.items),
        by_type=by_type,
        items=bucket.items[:max_items],
        last_updated=last_updated,
    )


def aggregate(
    buckets: Iterable[MatchBucket],
    noise_floor: int = 2,
    max_items: int = 30,
) -> list[Hotspot]:
    noise_floor = max(noise_floor, 1)
    max_items = max(max_items, 0)
    hotspots = [
        _to_hotspot(bucket, max_items)
        for bucket in buckets
        if len(bucket.items) >= noise_floor
    ]
    # list.sort is stable, so equal counts keep catalog order
    hotspots.sort(key=lambda h: h.count, reverse=True)
    return hotspots


def compute_hotspots(
    items: Iterable[ContentItem],
    compiled: CompiledCatalog,
    config: Optional[MatchingConfig] = None,
) -> list[Hotspot]:
    """Match a content batch and aggregate it. Pure and repeatable."""
    cfg = config or get_settings().matching
    buckets = match_items(compiled, items, workers=cfg.workers)
    return aggregate(buckets, noise_floor=cfg.noise_floor, max_items=cfg.max_items)


class HotspotEngine:
    """
    Holds the compiled catalog (built once) and recomputes hotspots from
    scratch for every content batch. Safe to share across threads: no pass
    mutates compiled state.
    """

    def __init__(
        self,
        entities: Iterable[GeoEntity],
        rules: Optional[MatchRules] = None,
        config: Optional[MatchingConfig] = None,
    ):
        self.entities: tuple[GeoEntity, ...] = tuple(entities)
        self.config = config or get_settings().matching
        self.compiled = compile_catalog(self.entities, rules)

    def compute_hotspots(
        self,
        items: Iterable[ContentItem],
        content_types: Optional[Iterable[str]] = None,
    ) -> list[Hotspot]:
        batch = list(items)
        if content_types is not None:
            batch = filter_by_content_types(batch, content_types)
        hotspots = compute_hotspots(batch, self.compiled, self.config)
        logger.debug("Computed %d hotspots from %d items", len(hotspots), len(batch))
        return hotspots


def is_recently_updated(
    hotspot: Hotspot,
    now: Optional[datetime] = None,
    window_seconds: Optional[int] = None,
) -> bool:
    """True when the hotspot's newest item falls within the recency window."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if window_seconds is None:
        window_seconds = get_settings().matching.recent_window_seconds
    return (now - hotspot.last_updated).total_seconds() < window_seconds


def find_hotspot(hotspots: Sequence[Hotspot], hotspot_id: Union[str, int]) -> Optional[Hotspot]:
    for h in hotspots:
        if h.id == hotspot_id or str(h.id) == str(hotspot_id):
            return h
    return None
