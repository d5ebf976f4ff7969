"""
Disambiguation tables for entity matching.

Three hand-curated tables decide whether a literal name match is trusted:

  - AMBIGUOUS NAMES: place names that are also first names, common nouns or
    other well-known things. They only count as a place when the text also
    carries geopolitical context.
  - EXCLUSIONS: per match key, phrasings known to be false positives for that
    name ("Michael Jordan", "guinea pig"). A hit vetoes the match.
  - CONTEXT TERMS: the vocabulary that corroborates an ambiguous name.

Tables are immutable and handed to the compiler explicitly, so tests (or a
JSON rules file) can substitute their own.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

from geo_hotspots.models import Scope


class RulesError(ValueError):
    """Raised when a rules file cannot be turned into MatchRules."""


@dataclass(frozen=True)
class ExclusionRule:
    pattern: str
    case_sensitive: bool = False
    # None applies the rule to every entity sharing the match key
    scopes: Optional[frozenset[Scope]] = None
    reason: str = ""

    def applies_to(self, scope: Scope) -> bool:
        return self.scopes is None or scope in self.scopes


@dataclass(frozen=True)
class MatchRules:
    ambiguous_names: frozenset[str] = frozenset()
    exclusions: Mapping[str, tuple[ExclusionRule, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    context_terms: frozenset[str] = frozenset()

    def is_ambiguous(self, match_key: str) -> bool:
        return match_key in self.ambiguous_names

    def exclusion_for(self, match_key: str, scope: Scope) -> tuple[ExclusionRule, ...]:
        return tuple(r for r in self.exclusions.get(match_key, ()) if r.applies_to(scope))

    @classmethod
    def build(
        cls,
        ambiguous_names,
        exclusions: Mapping[str, list[ExclusionRule] | tuple[ExclusionRule, ...]],
        context_terms,
    ) -> "MatchRules":
        return cls(
            ambiguous_names=frozenset(n.strip().lower() for n in ambiguous_names),
            exclusions=MappingProxyType(
                {k.strip().lower(): tuple(v) for k, v in exclusions.items()}
            ),
            context_terms=frozenset(t.strip().lower() for t in context_terms if t.strip()),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MatchRules":
        """
        Build rules from plain data:

            {
              "ambiguous": ["chad", ...],
              "context": ["government", ...],
              "exclusions": {
                "jordan": [{"pattern": "michael\\s+jordan", "reason": "athlete"}],
                "georgia": [{"pattern": "atlanta", "scopes": ["country"]}]
              }
            }
        """
        try:
            exclusions: dict[str, list[ExclusionRule]] = {}
            for key, entries in (data.get("exclusions") or {}).items():
                if isinstance(entries, (str, dict)):
                    entries = [entries]
                rules: list[ExclusionRule] = []
                for entry in entries:
                    if isinstance(entry, str):
                        rules.append(ExclusionRule(pattern=entry))
                        continue
                    scopes = entry.get("scopes")
                    rules.append(
                        ExclusionRule(
                            pattern=str(entry["pattern"]),
                            case_sensitive=bool(entry.get("case_sensitive", False)),
                            scopes=frozenset(Scope(s) for s in scopes) if scopes else None,
                            reason=str(entry.get("reason", "")),
                        )
                    )
                exclusions[key] = rules
            ambiguous = data.get("ambiguous") or []
            context = data.get("context") or []
            for section, value in (("ambiguous", ambiguous), ("context", context)):
                if not isinstance(value, (list, tuple)):
                    raise TypeError(f"'{section}' must be a list of names, got {type(value).__name__}")
            return cls.build(
                ambiguous_names=ambiguous,
                exclusions=exclusions,
                context_terms=context,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise RulesError(f"Invalid match rules: {e}") from e


def load_rules(path: str | Path) -> MatchRules:
    """Load substitute rule tables from a JSON file."""
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise RulesError(f"Cannot read match rules from {path}: {e}") from e
    if not isinstance(data, dict):
        raise RulesError(f"Match rules in {path} must be a JSON object")
    return MatchRules.from_dict(data)


# ══════════════════════════════════════════════════════════════════════
# DEFAULT TABLES
# ══════════════════════════════════════════════════════════════════════

# Lowercase names that collide with first names, common nouns, or other things
AMBIGUOUS_NAMES: frozenset[str] = frozenset({
    # countries
    "chad", "oman", "jordan", "georgia", "turkey", "niger", "guinea", "mali",
    "togo", "chile", "china", "cuba", "panama", "monaco", "dominica", "grenada",
    # US states
    "washington", "virginia", "indiana", "montana", "nevada", "maine",
    # Canadian provinces
    "alberta",
})

# Geopolitical vocabulary that corroborates an ambiguous name
CONTEXT_TERMS: frozenset[str] = frozenset({
    "government", "governments", "military", "army", "troops", "soldiers",
    "protest", "protests", "protesters", "election", "elections", "vote", "voters",
    "border", "borders", "sanctions", "sanction", "president", "presidential",
    "minister", "ministry", "parliament", "senate", "governor", "legislature",
    "war", "conflict", "ceasefire", "coup", "junta", "rebels", "militia",
    "attack", "attacks", "airstrike", "airstrikes", "invasion", "clashes",
    "embassy", "ambassador", "diplomat", "diplomats", "diplomatic", "treaty",
    "capital", "regime", "opposition", "refugees", "humanitarian", "crisis",
    "country", "nation", "state", "province", "officials", "authorities",
    "police", "killed", "earthquake", "flood", "floods", "wildfire", "storm",
    "economy", "tariff", "tariffs", "trade", "oil", "summit", "talks",
})


def _x(pattern: str, reason: str, *, case_sensitive: bool = False,
       scopes: Optional[set[Scope]] = None) -> ExclusionRule:
    return ExclusionRule(
        pattern=pattern,
        case_sensitive=case_sensitive,
        scopes=frozenset(scopes) if scopes else None,
        reason=reason,
    )


_COUNTRY = {Scope.COUNTRY}
_STATE = {Scope.STATE}

EXCLUSIONS: dict[str, list[ExclusionRule]] = {
    "chad": [
        _x(r"\b(?:named|called|guy|man|dude|coach|actor|singer|rapper|mr\.?)\s+chad\b",
           "first name introduced as a person"),
        _x(r"\bchad\s+(?:smith|johnson|williams|brown|jones|miller|davis|kroeger|"
           r"michael\s+murray|le\s?clos|ochocinco|stahelski|pennington)\b",
           "celebrity full name"),
        _x(r"\bhanging\s+chads?\b|\bchad\s+(?:energy|vibes)\b", "idiom"),
    ],
    "jordan": [
        _x(r"\bmichael\s+jordan\b|\bair\s+jordans?\b|\bjordan\s+(?:brand|shoes|sneakers|"
           r"retro|peterson|love|poole|spieth|henderson|pickford|chiles|clarkson)\b",
           "athlete, brand or celebrity"),
        _x(r"\bjordan\s+river\b", "river, not the country"),
    ],
    "turkey": [
        _x(r"\b(?:thanksgiving|roast|roasted|smoked|wild|cold|deep[-\s]fried)\s+turkey\b|"
           r"\bturkey\s+(?:dinner|sandwich|breast|burger|bacon|day|trot|hunting|season|"
           r"recipe|gravy|leg|legs)\b",
           "food or holiday"),
    ],
    "china": [
        _x(r"\b(?:fine|bone)\s+china\b|\bchina\s+(?:cabinet|plates?|dishes|set|pattern|"
           r"teacups?|doll)\b",
           "porcelain"),
    ],
    "chile": [
        _x(r"\b(?:green|red|hatch|ancho)\s+chiles?\b|\bchile\s+(?:peppers?|powder|sauce|"
           r"con\s+carne|relleno|verde|colorado)\b",
           "food"),
    ],
    "guinea": [
        _x(r"\bguinea\s+(?:pigs?|fowl|hens?|worms?)\b", "animal"),
        _x(r"\b(?:papua\s+new|new|equatorial)\s+guinea\b|\bguinea[-\s]bissau\b",
           "a different country"),
    ],
    "niger": [
        _x(r"\bniger\s+(?:delta|river)\b", "Nigerian region or river"),
    ],
    "sudan": [
        _x(r"\bsouth\s+sudan\b", "a different country"),
    ],
    "ireland": [
        _x(r"\bnorthern\s+ireland\b", "a different entity"),
    ],
    "mexico": [
        _x(r"\bnew\s+mexico\b|\bgulf\s+of\s+mexico\b", "US state or body of water"),
    ],
    "cuba": [
        _x(r"\bcuba\s+gooding\b", "celebrity"),
    ],
    "panama": [
        _x(r"\bpanama\s+(?:hats?|papers)\b", "hat or leak"),
    ],
    "georgia": [
        _x(r"\b(?:atlanta|savannah|augusta|bulldogs|georgia\s+tech|kemp|ossoff|warnock|"
           r"peach\s+state)\b",
           "the US state", scopes=_COUNTRY),
        _x(r"\b(?:tbilisi|georgian\s+dream|kobakhidze|caucasus|abkhazia|south\s+ossetia)\b",
           "the country", scopes=_STATE),
    ],
    "virginia": [
        _x(r"\bwest\s+virginia\b|\bvirginia\s+woolf\b|\bvirginia\s+giuffre\b",
           "a different state or a person"),
    ],
    "washington": [
        _x(r"\bwashington\s*,?\s*d\.?\s?c\.?\b|\bwashington\s+(?:post|commanders|wizards|"
           r"nationals|capitals|mystics|monument)\b|\b(?:george|denzel|booker\s+t\.?)\s+washington\b",
           "the capital, a team or a person", scopes=_STATE),
    ],
    "indiana": [
        _x(r"\bindiana\s+jones\b|\bindiana\s+pacers\b", "film character or team"),
    ],
    "montana": [
        _x(r"\b(?:hannah|joe|french|tony)\s+montana\b", "person or character"),
    ],
    "nevada": [
        _x(r"\bsierra\s+nevada\b", "mountain range or brewery"),
    ],
    "maine": [
        _x(r"\bmaine\s+coons?\b", "cat breed"),
    ],
    "kansas": [
        _x(r"\bkansas\s+city\s+(?:chiefs|royals)\b", "team"),
    ],
}


@lru_cache(maxsize=1)
def default_rules() -> MatchRules:
    """The built-in disambiguation tables."""
    return MatchRules.build(
        ambiguous_names=AMBIGUOUS_NAMES,
        exclusions={k: v for k, v in EXCLUSIONS.items() if v},
        context_terms=CONTEXT_TERMS,
    )
