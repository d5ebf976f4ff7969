"""
Tests for the command-line entrypoint.
"""

from __future__ import annotations

import json
import sys

import pytest

from geo_hotspots.__main__ import main


def _run(monkeypatch, *argv):
    # Leave the root logger to pytest
    monkeypatch.setattr("geo_hotspots.__main__.setup_logging", lambda level_name=None: None)
    monkeypatch.setattr(sys, "argv", ["geo-hotspots", *argv])
    main()


class TestHotspotsCommand:
    def test_json_output(self, tmp_path, monkeypatch, capsys):
        path = tmp_path / "items.json"
        path.write_text(json.dumps({"data": [
            {"title": "France budget vote", "contentType": "article"},
            {"title": "Strikes across France", "contentType": "tweet"},
        ]}), encoding="utf-8")

        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "hotspots", str(path), "--json")
        assert exc.value.code == 0
        out = json.loads(capsys.readouterr().out)
        assert [h["name"] for h in out] == ["France"]
        assert out[0]["byType"] == {"article": 1, "tweet": 1}

    def test_layer_and_text_output(self, tmp_path, monkeypatch, capsys):
        path = tmp_path / "items.json"
        path.write_text(json.dumps([
            {"title": "France budget vote", "contentType": "article"},
            {"title": "France pension reform", "contentType": "article"},
            {"title": "Strikes across France", "contentType": "tweet"},
        ]), encoding="utf-8")

        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "hotspots", str(path), "--layer", "news")
        assert exc.value.code == 0
        out = capsys.readouterr().out
        assert "3 items -> 1 hotspots" in out
        assert "France (country) count=2" in out

    def test_bad_json_exits_non_zero(self, tmp_path, monkeypatch):
        path = tmp_path / "items.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "hotspots", str(path))
        assert exc.value.code == 1

    def test_malformed_rows_skipped(self, tmp_path, monkeypatch, capsys):
        path = tmp_path / "items.json"
        path.write_text(json.dumps([
            {"title": "France budget vote", "contentType": "article"},
            {"title": "bad id", "id": {"nested": True}},
            {"title": "Strikes across France", "contentType": "tweet"},
        ]), encoding="utf-8")

        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "hotspots", str(path))
        assert exc.value.code == 0
        out = capsys.readouterr().out
        assert "2 items -> 1 hotspots (1 skipped)" in out

    def test_missing_file_exits_non_zero(self, tmp_path, monkeypatch):
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "hotspots", str(tmp_path / "absent.json"))
        assert exc.value.code == 1


class TestExplainCommand:
    def test_decisions(self, monkeypatch, capsys):
        _run(monkeypatch, "explain", "--text", "A man called Chad Smith visited Oman")
        out = capsys.readouterr().out
        assert "Chad" in out and "excluded" in out
        assert "Oman" in out and "no_context" in out

    def test_nothing_found(self, monkeypatch, capsys):
        _run(monkeypatch, "explain", "--text", "Woman walks to the store")
        assert "no entity names found" in capsys.readouterr().out


class TestEntitiesCommand:
    def test_scope_filter(self, monkeypatch, capsys):
        _run(monkeypatch, "entities", "--scope", "province")
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 13
        assert all("province" in line for line in lines)
