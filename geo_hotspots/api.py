"""
FastAPI service exposing hotspot aggregation.

Endpoints:
  POST /hotspots               - Ranked hotspots for a batch of content items
  POST /hotspots/{hotspot_id}  - A single hotspot (with its items) for a batch
  GET  /entities               - The entity catalog
  GET  /health                 - Catalog / compiled matcher counts
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from geo_hotspots.catalog import catalog_from_config
from geo_hotspots.config import get_settings
from geo_hotspots.hotspots import HotspotEngine, content_types_for_layers, find_hotspot
from geo_hotspots.models import (
    EntityListResponse,
    HealthResponse,
    Hotspot,
    HotspotRequest,
    HotspotResponse,
    Scope,
    parse_items,
)
from geo_hotspots.rules import default_rules, load_rules

logger = logging.getLogger(__name__)

_engine: Optional[HotspotEngine] = None


def get_engine() -> HotspotEngine:
    """Build the engine on first use; the compiled catalog is reused afterwards."""
    global _engine
    if _engine is None:
        settings = get_settings()
        catalog = catalog_from_config(settings.catalog)
        rules = load_rules(settings.catalog.rules_path) if settings.catalog.rules_path else default_rules()
        _engine = HotspotEngine(catalog, rules=rules, config=settings.matching)
    return _engine


# ── Lifespan ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: load the catalog and compile matchers once."""
    logger.info("Starting up API server...")
    engine = get_engine()
    logger.info("Ready: %d entities, %d compiled matchers",
                len(engine.entities), len(engine.compiled))
    yield
    logger.info("API server shut down.")


# ── App ───────────────────────────────────────────────────────────────

app = FastAPI(
    title="Geo Hotspots API",
    description="Resolve content items to geographic entities and rank hotspots",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Helpers ───────────────────────────────────────────────────────────

def _run(request: HotspotRequest) -> tuple[list[Hotspot], int]:
    settings = get_settings().api
    if len(request.items) > settings.max_items:
        raise HTTPException(413, f"At most {settings.max_items} items per request")

    content_types: Optional[set[str]] = None
    if request.layers is not None:
        content_types = set(content_types_for_layers(request.layers))
    if request.content_types is not None:
        content_types = (content_types or set()) | set(request.content_types)

    items, skipped = parse_items(request.items)
    return get_engine().compute_hotspots(items, content_types=content_types), skipped


# ══════════════════════════════════════════════════════════════════════
# ENDPOINTS
# ══════════════════════════════════════════════════════════════════════

@app.post("/hotspots", response_model=HotspotResponse)
def hotspots(request: HotspotRequest):
    """
    Rank geographic hotspots for a content batch.

    Optional `layers` (news, twitter, reddit, flights, stocks) and
    `contentTypes` restrict which items take part. Malformed items are
    skipped and counted in `itemsSkipped`. Every call recomputes from
    scratch; nothing is kept between requests.
    """
    result, skipped = _run(request)
    return HotspotResponse(
        hotspots=result,
        total=len(result),
        items_seen=len(request.items),
        items_skipped=skipped,
    )


@app.post("/hotspots/{hotspot_id}", response_model=Hotspot)
def hotspot_detail(hotspot_id: str, request: HotspotRequest):
    """A single hotspot from the batch, e.g. for a drill-down panel."""
    result, _ = _run(request)
    found = find_hotspot(result, hotspot_id)
    if found is None:
        raise HTTPException(404, "Hotspot not found")
    return found


@app.get("/entities", response_model=EntityListResponse)
async def list_entities(
    scope: Optional[Scope] = Query(None, description="country, state or province"),
):
    entities = [e for e in get_engine().entities if scope is None or e.scope == scope]
    return EntityListResponse(entities=entities, total=len(entities))


@app.get("/health", response_model=HealthResponse)
async def health_check():
    engine = get_engine()
    return HealthResponse(
        status="ok",
        entities=len(engine.entities),
        compiled_matchers=len(engine.compiled),
    )
