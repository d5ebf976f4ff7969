"""CLI entrypoint for geo_hotspots."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from geo_hotspots.logging_config import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(prog="geo-hotspots")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log per-entity decisions")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve")

    hot_parser = sub.add_parser("hotspots")
    hot_parser.add_argument("items", help="JSON file with a list of content items ('-' for stdin)")
    hot_parser.add_argument("--layer", action="append", default=None)
    hot_parser.add_argument("--limit", type=int, default=0, help="Show at most N hotspots")
    hot_parser.add_argument("--json", action="store_true", help="Print raw JSON")

    explain_parser = sub.add_parser("explain")
    explain_parser.add_argument("--text", required=True)

    entities_parser = sub.add_parser("entities")
    entities_parser.add_argument("--scope", choices=["country", "state", "province"])

    args = parser.parse_args()
    setup_logging("DEBUG" if args.verbose else None)

    if args.command == "serve":
        _serve()
    elif args.command == "hotspots":
        sys.exit(_hotspots(args.items, args.layer, args.limit, args.json))
    elif args.command == "explain":
        _explain(args.text)
    elif args.command == "entities":
        _entities(args.scope)


def _serve() -> None:
    import uvicorn

    from geo_hotspots.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "geo_hotspots.api:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=(settings.env == "development"),
        log_level=settings.log_level.lower(),
    )


def _read_items(path: str) -> list[dict]:
    if path == "-":
        data = json.load(sys.stdin)
    else:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    # Accept either a bare list or the feed API's {"data": [...]} envelope
    if isinstance(data, dict) and "data" in data:
        data = data["data"]
    if not isinstance(data, list):
        raise ValueError("expected a JSON list of content items")
    return data


def _hotspots(path: str, layers: list[str] | None, limit: int, as_json: bool) -> int:
    from geo_hotspots.api import get_engine
    from geo_hotspots.hotspots import content_types_for_layers, is_recently_updated
    from geo_hotspots.models import parse_items

    try:
        rows = _read_items(path)
    except (OSError, ValueError) as e:
        logger.error("Cannot read content items from %s: %s", path, e)
        return 1
    items, skipped = parse_items(rows)

    content_types = content_types_for_layers(layers) if layers else None
    hotspots = get_engine().compute_hotspots(items, content_types=content_types)
    if limit > 0:
        hotspots = hotspots[:limit]

    if as_json:
        print(json.dumps([h.model_dump(mode="json", by_alias=True) for h in hotspots], indent=2))
        return 0

    print(f"{len(items)} items -> {len(hotspots)} hotspots" + (f" ({skipped} skipped)" if skipped else ""))
    for i, h in enumerate(hotspots, 1):
        types = ", ".join(f"{k or '?'}={v}" for k, v in sorted(h.by_type.items()))
        badge = " [recent]" if is_recently_updated(h) else ""
        print(f"{i:>3}. {h.name} ({h.scope.value}) count={h.count} {types}{badge}")
        for item in h.items[:3]:
            print(f"       - {item.title or 'Untitled'}")
    return 0


def _explain(text: str) -> None:
    from geo_hotspots.api import get_engine
    from geo_hotspots.engine import explain
    from geo_hotspots.models import ContentItem

    decisions = explain(get_engine().compiled, ContentItem(title=text))
    if not decisions:
        print("(no entity names found)")
        return
    for entity, decision in decisions:
        print(f"{entity.name:<30} {entity.scope.value:<9} {decision}")


def _entities(scope: str | None) -> None:
    from geo_hotspots.api import get_engine

    for e in get_engine().entities:
        if scope and e.scope.value != scope:
            continue
        print(f"{e.id!s:<8} {e.name:<32} {e.scope.value:<9} {e.lat:8.2f} {e.lon:9.2f}")


if __name__ == "__main__":
    main()
