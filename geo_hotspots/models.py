"""
Pydantic models used across the pipeline for validation and serialization.
These are pure data objects; field aliases follow the camelCase wire format
of the feed provider and the UI layer.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Iterable, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ── Enums ──────────────────────────────────────────────────────────────

class Scope(str, Enum):
    COUNTRY = "country"
    STATE = "state"
    PROVINCE = "province"


# ── Timestamps ────────────────────────────────────────────────────────

def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Lenient timestamp parsing for feed items.
    Accepts datetimes, ISO-8601 strings, RFC 2822 dates (RSS pubDate) and
    epoch numbers (seconds, or milliseconds when implausibly large).
    Naive values are taken as UTC. Anything unparseable becomes None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        seconds = value / 1000.0 if abs(value) > 1e11 else float(value)
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        raw = value.strip()
        try:
            dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            try:
                dt = parsedate_to_datetime(raw)
            except (TypeError, ValueError, IndexError):
                return None
            if dt is None:
                return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ── Catalog models ────────────────────────────────────────────────────

class GeoEntity(BaseModel):
    """A geographic unit eligible to be matched against text."""
    id: Union[str, int]
    name: str
    match_key: str = Field("", alias="matchKey")
    scope: Scope = Scope.COUNTRY
    lon: float
    lat: float

    model_config = {"populate_by_name": True, "frozen": True}

    @model_validator(mode="before")
    @classmethod
    def default_match_key(cls, data):
        """The match key falls back to the lowercased display name."""
        if isinstance(data, dict) and "match_key" not in data and "matchKey" not in data:
            data = dict(data)
            data["match_key"] = str(data.get("name") or "").strip().lower()
        return data

    @field_validator("match_key", mode="after")
    @classmethod
    def normalize_match_key(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def has_finite_point(self) -> bool:
        return math.isfinite(self.lon) and math.isfinite(self.lat)


# ── Feed models ───────────────────────────────────────────────────────

class ContentItem(BaseModel):
    """
    A content item as supplied by the feed provider. Consumed read-only.
    Every text field defaults to the empty string so building searchable
    text never has to deal with missing values.
    """
    id: Optional[Union[str, int]] = None
    title: str = ""
    summary: str = ""
    content: str = ""
    source: str = ""
    source_name: str = Field("", alias="sourceName")
    content_type: str = Field("", alias="contentType")
    published_at: Optional[datetime] = Field(None, alias="publishedAt")
    url: str = ""

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator(
        "title", "summary", "content", "source", "source_name", "content_type", "url",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("published_at", mode="before")
    @classmethod
    def parse_published_at(cls, v):
        return parse_timestamp(v)


def parse_items(rows: Iterable[Any]) -> tuple[list[ContentItem], int]:
    """
    Validate feed rows one at a time. A row that is not a valid item is
    logged and skipped so the rest of the batch still aggregates.
    Returns (items, skipped).
    """
    items: list[ContentItem] = []
    skipped = 0
    for idx, row in enumerate(rows):
        try:
            items.append(row if isinstance(row, ContentItem) else ContentItem.model_validate(row))
        except ValidationError as e:
            logger.warning("Skipping content item #%d: %s", idx, e.errors()[:1])
            skipped += 1
    return items, skipped


# ── Output models ─────────────────────────────────────────────────────

class Hotspot(BaseModel):
    """An entity with enough matched items to surface on the map."""
    id: Union[str, int]
    name: str
    match_key: str = Field(..., alias="matchKey")
    scope: Scope
    lon: float
    lat: float
    count: int = Field(..., ge=0)
    by_type: dict[str, int] = Field(default_factory=dict, alias="byType")
    items: list[ContentItem] = Field(default_factory=list)
    last_updated: datetime = Field(EPOCH, alias="lastUpdated")

    model_config = {"populate_by_name": True}


# ── API models ────────────────────────────────────────────────────────

class HotspotRequest(BaseModel):
    # Raw rows; each is validated separately by parse_items()
    items: list[Any] = Field(default_factory=list)
    # UI layer names (news, twitter, reddit, flights, stocks)
    layers: Optional[list[str]] = None
    content_types: Optional[list[str]] = Field(None, alias="contentTypes")

    model_config = {"populate_by_name": True}


class HotspotResponse(BaseModel):
    hotspots: list[Hotspot]
    total: int
    items_seen: int = Field(0, alias="itemsSeen")
    items_skipped: int = Field(0, alias="itemsSkipped")

    model_config = {"populate_by_name": True}


class EntityListResponse(BaseModel):
    entities: list[GeoEntity]
    total: int


class HealthResponse(BaseModel):
    status: str = "ok"
    entities: int = 0
    compiled_matchers: int = Field(0, alias="compiledMatchers")

    model_config = {"populate_by_name": True}
