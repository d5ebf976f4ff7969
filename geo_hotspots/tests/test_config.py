"""
Tests for settings and logging setup.
"""

from __future__ import annotations

import logging

import json_log_formatter

from geo_hotspots import logging_config
from geo_hotspots.config import MatchingConfig, Settings, get_settings


class TestSettings:
    def test_singleton(self):
        assert get_settings() is get_settings()

    def test_defaults_are_grouped(self):
        s = Settings()
        assert isinstance(s.matching, MatchingConfig)
        assert s.api.max_items > 0

    def test_explicit_matching_config(self):
        cfg = MatchingConfig(noise_floor=3, max_items=10, recent_window_seconds=60, workers=2)
        assert (cfg.noise_floor, cfg.max_items, cfg.workers) == (3, 10, 2)

    def test_out_of_range_values_clamped(self):
        cfg = MatchingConfig(noise_floor=0, max_items=-5, recent_window_seconds=60, workers=0)
        assert (cfg.noise_floor, cfg.max_items, cfg.workers) == (1, 0, 1)


class TestSetupLogging:
    def test_development_uses_basic_config(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(logging_config, "get_settings", lambda: Settings(log_level="INFO", env="development"))
        monkeypatch.setattr(logging_config.logging, "basicConfig", lambda **kw: calls.update(kw))
        logging_config.setup_logging("debug")
        assert calls["level"] == logging.DEBUG
        assert calls["force"] is True

    def test_production_emits_json(self, monkeypatch):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        monkeypatch.setattr(logging_config, "get_settings", lambda: Settings(log_level="WARNING", env="production"))
        try:
            logging_config.setup_logging()
            assert root.level == logging.WARNING
            assert isinstance(root.handlers[0].formatter, json_log_formatter.JSONFormatter)
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)
