"""
Tests for the disambiguation tables and their JSON loader.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from geo_hotspots.models import Scope
from geo_hotspots.rules import (
    ExclusionRule,
    MatchRules,
    RulesError,
    default_rules,
    load_rules,
)

EXAMPLE_RULES = Path(__file__).resolve().parent.parent / "data" / "rules.example.json"


class TestDefaultRules:
    def test_ambiguous_names(self):
        rules = default_rules()
        for name in ("chad", "oman", "jordan", "georgia"):
            assert rules.is_ambiguous(name)
        assert not rules.is_ambiguous("france")

    def test_context_vocabulary(self):
        rules = default_rules()
        assert "government" in rules.context_terms
        assert "sanctions" in rules.context_terms

    def test_exclusions_keyed_by_match_key(self):
        rules = default_rules()
        assert rules.exclusion_for("chad", Scope.COUNTRY)
        assert rules.exclusion_for("france", Scope.COUNTRY) == ()

    def test_scoped_exclusions(self):
        rules = default_rules()
        country = rules.exclusion_for("georgia", Scope.COUNTRY)
        state = rules.exclusion_for("georgia", Scope.STATE)
        assert country and state
        assert set(country).isdisjoint(state)

    def test_tables_are_read_only(self):
        rules = default_rules()
        with pytest.raises(TypeError):
            rules.exclusions["france"] = ()

    def test_cached(self):
        assert default_rules() is default_rules()


class TestMatchRulesBuild:
    def test_keys_normalized(self):
        rules = MatchRules.build(
            ambiguous_names=[" Chad "],
            exclusions={"CHAD": [ExclusionRule(pattern="x")]},
            context_terms=["Government", "  "],
        )
        assert rules.is_ambiguous("chad")
        assert rules.exclusion_for("chad", Scope.COUNTRY)[0].pattern == "x"
        assert rules.context_terms == frozenset({"government"})

    def test_empty_rules(self):
        rules = MatchRules()
        assert not rules.is_ambiguous("chad")
        assert rules.exclusion_for("chad", Scope.COUNTRY) == ()


class TestFromDict:
    def test_string_and_dict_entries(self):
        rules = MatchRules.from_dict({
            "ambiguous": ["jordan"],
            "context": ["border"],
            "exclusions": {
                "jordan": "michael\\s+jordan",
                "georgia": [{"pattern": "atlanta", "scopes": ["country"], "case_sensitive": True}],
            },
        })
        assert rules.exclusion_for("jordan", Scope.COUNTRY)[0].pattern == "michael\\s+jordan"
        georgia = rules.exclusion_for("georgia", Scope.COUNTRY)[0]
        assert georgia.case_sensitive is True
        assert georgia.scopes == frozenset({Scope.COUNTRY})
        assert rules.exclusion_for("georgia", Scope.STATE) == ()

    @pytest.mark.parametrize("section", ["ambiguous", "context"])
    def test_bare_string_section_rejected(self, section):
        with pytest.raises(RulesError):
            MatchRules.from_dict({section: "chad"})

    def test_missing_sections(self):
        rules = MatchRules.from_dict({})
        assert rules.ambiguous_names == frozenset()
        assert rules.context_terms == frozenset()

    def test_bad_scope(self):
        with pytest.raises(RulesError):
            MatchRules.from_dict({"exclusions": {"georgia": [{"pattern": "x", "scopes": ["planet"]}]}})

    def test_missing_pattern(self):
        with pytest.raises(RulesError):
            MatchRules.from_dict({"exclusions": {"georgia": [{"reason": "no pattern"}]}})


class TestLoadRules:
    def test_example_file(self):
        rules = load_rules(EXAMPLE_RULES)
        assert rules.is_ambiguous("oman")
        assert len(rules.exclusion_for("chad", Scope.COUNTRY)) == 2
        assert rules.exclusion_for("georgia", Scope.STATE)[0].pattern == "\\btbilisi\\b"

    def test_missing_file(self, tmp_path):
        with pytest.raises(RulesError):
            load_rules(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(RulesError):
            load_rules(path)

    def test_non_object(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps(["chad"]), encoding="utf-8")
        with pytest.raises(RulesError):
            load_rules(path)
