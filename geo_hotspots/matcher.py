"""
Match rule compiler.

Builds, once per catalog load, one whole-word matcher per entity plus its
optional false-positive exclusion, and the shared context-vocabulary pattern
used to corroborate ambiguous names.

Compilation never raises for a catalog entry: an entity whose patterns
cannot be compiled is logged and left out of the compiled set.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from geo_hotspots.models import GeoEntity
from geo_hotspots.rules import ExclusionRule, MatchRules, default_rules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledMatcher:
    entity: GeoEntity
    pattern: re.Pattern
    is_ambiguous: bool = False
    exclusion: Optional[re.Pattern] = None


@dataclass(frozen=True)
class CompiledCatalog:
    """Read-only compiled state shared by every matching pass."""
    matchers: tuple[CompiledMatcher, ...]
    context: Optional[re.Pattern]

    def __len__(self) -> int:
        return len(self.matchers)


def build_pattern(match_key: str) -> re.Pattern:
    """Whole-word, case-insensitive pattern for a literal name."""
    return re.compile(r"\b" + re.escape(match_key) + r"\b", re.IGNORECASE)


def _compile_exclusion(rules: tuple[ExclusionRule, ...]) -> Optional[re.Pattern]:
    """
    Combine an entity's exclusion rules into one pattern.
    Case-insensitive rules get an inline (?i:...) group so they can share an
    alternation with case-sensitive ones.
    """
    if not rules:
        return None
    parts = [
        f"(?:{r.pattern})" if r.case_sensitive else f"(?i:{r.pattern})"
        for r in rules
    ]
    return re.compile("|".join(parts))


def compile_entity(entity: GeoEntity, rules: MatchRules) -> Optional[CompiledMatcher]:
    key = entity.match_key
    if not key:
        logger.debug("Skipping %s (%s): empty match key", entity.name, entity.id)
        return None
    if not entity.has_finite_point:
        logger.debug("Skipping %s (%s): non-finite point", entity.name, entity.id)
        return None
    try:
        pattern = build_pattern(key)
        exclusion = _compile_exclusion(rules.exclusion_for(key, entity.scope))
    except re.error as e:
        logger.warning("Dropping %s (%s): cannot compile matcher: %s", entity.name, entity.id, e)
        return None
    return CompiledMatcher(
        entity=entity,
        pattern=pattern,
        is_ambiguous=rules.is_ambiguous(key),
        exclusion=exclusion,
    )


def compile_context(rules: MatchRules) -> Optional[re.Pattern]:
    """One whole-word alternation over the context vocabulary."""
    if not rules.context_terms:
        return None
    # Longest first so multi-word terms win over their prefixes
    terms = sorted(rules.context_terms, key=lambda t: (-len(t), t))
    return re.compile(
        r"\b(?:" + "|".join(re.escape(t) for t in terms) + r")\b",
        re.IGNORECASE,
    )


def compile_entities(
    entities: Iterable[Union[GeoEntity, Mapping[str, Any]]],
    rules: Optional[MatchRules] = None,
) -> list[CompiledMatcher]:
    """
    Compile every usable entity, in catalog order.
    Raw records are validated here; invalid ones are skipped like any other
    unusable entry.
    """
    rules = rules or default_rules()
    compiled: list[CompiledMatcher] = []
    skipped = 0
    for raw in entities:
        try:
            entity = raw if isinstance(raw, GeoEntity) else GeoEntity.model_validate(raw)
        except ValidationError as e:
            logger.warning("Skipping invalid entity record %r: %s", raw, e.errors()[:1])
            skipped += 1
            continue
        matcher = compile_entity(entity, rules)
        if matcher is None:
            skipped += 1
            continue
        compiled.append(matcher)

    logger.info(
        "Compiled %d matchers (%d skipped, %d ambiguous, %d with exclusions)",
        len(compiled),
        skipped,
        sum(1 for m in compiled if m.is_ambiguous),
        sum(1 for m in compiled if m.exclusion is not None),
    )
    return compiled


def compile_catalog(
    entities: Iterable[Union[GeoEntity, Mapping[str, Any]]],
    rules: Optional[MatchRules] = None,
) -> CompiledCatalog:
    rules = rules or default_rules()
    return CompiledCatalog(
        matchers=tuple(compile_entities(entities, rules)),
        context=compile_context(rules),
    )
