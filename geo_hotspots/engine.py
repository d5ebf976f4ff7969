"""
Matching engine: decides, for every (entity, item) pair, whether the item is
about the entity.

Per pair:
  1. whole-word match of the entity name, else skip
  2. exclusion pattern also matches -> skip (known false positive)
  3. ambiguous name without any context term -> skip
  4. otherwise the item joins the entity's bucket, in input order

Each decision is independent of every other entity, so matchers can be
partitioned across threads and the partial results concatenated.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from geo_hotspots.matcher import CompiledCatalog, CompiledMatcher
from geo_hotspots.models import ContentItem, GeoEntity

logger = logging.getLogger(__name__)

MATCHED = "matched"
EXCLUDED = "excluded"
NO_CONTEXT = "no_context"


@dataclass
class MatchBucket:
    entity: GeoEntity
    items: list[ContentItem] = field(default_factory=list)


def searchable_text(item: ContentItem) -> str:
    return " ".join(
        (item.title, item.summary, item.content, item.source_name, item.source)
    )


class _PreparedItem:
    """An item's searchable text plus its lazily evaluated context check."""
    __slots__ = ("item", "text", "_has_context")

    def __init__(self, item: ContentItem):
        self.item = item
        self.text = searchable_text(item)
        self._has_context: Optional[bool] = None

    def has_context(self, compiled: CompiledCatalog) -> bool:
        if self._has_context is None:
            self._has_context = bool(compiled.context and compiled.context.search(self.text))
        return self._has_context


def decide(matcher: CompiledMatcher, prepared: _PreparedItem, compiled: CompiledCatalog) -> Optional[str]:
    """None when the name does not occur at all, otherwise the decision."""
    if not matcher.pattern.search(prepared.text):
        return None
    if matcher.exclusion is not None and matcher.exclusion.search(prepared.text):
        return EXCLUDED
    if matcher.is_ambiguous and not prepared.has_context(compiled):
        return NO_CONTEXT
    return MATCHED


def _match_chunk(
    matchers: Sequence[CompiledMatcher],
    prepared: Sequence[_PreparedItem],
    compiled: CompiledCatalog,
) -> list[MatchBucket]:
    buckets: list[MatchBucket] = []
    for matcher in matchers:
        bucket = MatchBucket(entity=matcher.entity)
        for p in prepared:
            if decide(matcher, p, compiled) == MATCHED:
                bucket.items.append(p.item)
        buckets.append(bucket)
    return buckets


def _prepare(items: Iterable[ContentItem]) -> list[_PreparedItem]:
    return [_PreparedItem(item) for item in items]


def match_items(
    compiled: CompiledCatalog,
    items: Iterable[ContentItem],
    workers: int = 1,
) -> list[MatchBucket]:
    """
    One bucket per compiled matcher, in catalog order.
    With workers > 1 the matchers are split into contiguous chunks evaluated
    on a thread pool; the result is identical to the sequential path.
    """
    prepared = _prepare(items)
    matchers = compiled.matchers
    if workers <= 1 or len(matchers) < 2:
        return _match_chunk(matchers, prepared, compiled)

    # Context flags are filled in lazily; settle them before sharing items
    for p in prepared:
        p.has_context(compiled)

    n = min(workers, len(matchers))
    size = -(-len(matchers) // n)
    chunks = [matchers[i:i + size] for i in range(0, len(matchers), size)]
    logger.debug("Matching %d items against %d entities on %d threads",
                 len(prepared), len(matchers), len(chunks))

    with ThreadPoolExecutor(max_workers=len(chunks)) as ex:
        results = list(ex.map(lambda chunk: _match_chunk(chunk, prepared, compiled), chunks))

    buckets: list[MatchBucket] = []
    for partial in results:
        buckets.extend(partial)
    return buckets


def explain(compiled: CompiledCatalog, item: ContentItem) -> list[tuple[GeoEntity, str]]:
    """
    Decisions for every entity whose name occurs in the item, in catalog
    order. Useful when tuning the disambiguation tables.
    """
    prepared = _PreparedItem(item)
    out: list[tuple[GeoEntity, str]] = []
    for matcher in compiled.matchers:
        decision = decide(matcher, prepared, compiled)
        if decision is not None:
            out.append((matcher.entity, decision))
    return out
