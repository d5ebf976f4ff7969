"""
Tests for the HTTP surface, using the built-in catalog and rule tables.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from geo_hotspots.api import app
from geo_hotspots.catalog import default_catalog
from geo_hotspots.config import APIConfig, Settings

FRANCE_ITEMS = [
    {"id": "n1", "title": "France budget vote", "contentType": "article",
     "publishedAt": "2025-03-01T12:00:00Z"},
    {"id": "t1", "title": "Strikes across France", "contentType": "tweet",
     "publishedAt": "2025-03-01T13:00:00Z"},
    {"id": "n2", "title": "Quiet day", "contentType": "article"},
]


@pytest.fixture(scope="module")
def client():
    with TestClient(app) as c:
        yield c


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["entities"] == len(default_catalog())
        assert body["compiledMatchers"] == len(default_catalog())


class TestEntities:
    def test_all(self, client):
        body = client.get("/entities").json()
        assert body["total"] == len(default_catalog())

    def test_by_scope(self, client):
        body = client.get("/entities", params={"scope": "state"}).json()
        assert body["total"] == 51
        assert all(e["scope"] == "state" for e in body["entities"])
        assert "matchKey" in body["entities"][0]

    def test_bad_scope(self, client):
        assert client.get("/entities", params={"scope": "planet"}).status_code == 422


class TestHotspots:
    def test_ranked_hotspots(self, client):
        resp = client.post("/hotspots", json={"items": FRANCE_ITEMS})
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 1
        assert body["itemsSeen"] == 3
        france = body["hotspots"][0]
        assert france["name"] == "France"
        assert france["matchKey"] == "france"
        assert france["count"] == 2
        assert france["byType"] == {"article": 1, "tweet": 1}
        assert [i["id"] for i in france["items"]] == ["n1", "t1"]
        assert france["lastUpdated"].startswith("2025-03-01T13:00:00")

    def test_layer_filter(self, client):
        body = client.post("/hotspots", json={"items": FRANCE_ITEMS, "layers": ["news"]}).json()
        assert body["hotspots"] == []

    def test_content_types(self, client):
        items = FRANCE_ITEMS + [{"id": "t2", "title": "France again", "contentType": "tweet"}]
        body = client.post("/hotspots", json={"items": items, "contentTypes": ["tweet"]}).json()
        assert body["hotspots"][0]["byType"] == {"tweet": 2}

    def test_disambiguation_end_to_end(self, client):
        items = [
            {"title": "A man called Chad Smith visited"},
            {"title": "Protests erupt in Chad amid government crisis"},
            {"title": "Woman walks to the store"},
            {"title": "Oman's government announces new sanctions"},
        ]
        body = client.post("/hotspots", json={"items": items}).json()
        assert body["hotspots"] == []
        assert body["itemsSeen"] == 4

    def test_empty_batch(self, client):
        body = client.post("/hotspots", json={"items": []}).json()
        assert body == {"hotspots": [], "total": 0, "itemsSeen": 0, "itemsSkipped": 0}

    def test_malformed_item_skipped(self, client):
        items = [
            {"title": "France a"},
            {"title": "France b"},
            {"title": "x", "id": [1]},
            "not an object",
        ]
        resp = client.post("/hotspots", json={"items": items})
        assert resp.status_code == 200
        body = resp.json()
        assert [h["name"] for h in body["hotspots"]] == ["France"]
        assert body["hotspots"][0]["count"] == 2
        assert body["itemsSeen"] == 4
        assert body["itemsSkipped"] == 2

    def test_invalid_body(self, client):
        assert client.post("/hotspots", json={"items": "nope"}).status_code == 422

    def test_too_many_items(self, client, monkeypatch):
        monkeypatch.setattr(
            "geo_hotspots.api.get_settings",
            lambda: Settings(api=APIConfig(max_items=2)),
        )
        assert client.post("/hotspots", json={"items": FRANCE_ITEMS}).status_code == 413


class TestHotspotDetail:
    def test_found(self, client):
        france_id = next(e.id for e in default_catalog() if e.name == "France")
        resp = client.post(f"/hotspots/{france_id}", json={"items": FRANCE_ITEMS})
        assert resp.status_code == 200
        assert resp.json()["count"] == 2

    def test_not_found(self, client):
        assert client.post("/hotspots/us-48", json={"items": FRANCE_ITEMS}).status_code == 404
