"""
Entity catalog: the flat, ordered list of geographic entities that content
is matched against.

Three logical sources are merged, in this order:
  - countries
  - US states (first-level subdivisions of a federated country)
  - Canadian provinces and territories (regional subdivisions)

Each source supplies a name and a representative point: either an
authoritative one (e.g. a known capital) or the centroid of its geometry.
Entities whose point is not finite are dropped; that is a data-quality
filter, not an error. Duplicate names across sources are allowed
(Georgia the country, Georgia the state); the matcher disambiguates.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Union

import numpy as np
from pydantic import ValidationError

from geo_hotspots.config import CatalogConfig
from geo_hotspots.models import GeoEntity, Scope

logger = logging.getLogger(__name__)

# (lat, lon)
Point = tuple[float, float]


# ══════════════════════════════════════════════════════════════════════
# BUILT-IN DATA
# ══════════════════════════════════════════════════════════════════════

# (ISO 3166 numeric id, name, lat, lon)
_COUNTRIES: tuple[tuple[str, str, float, float], ...] = (
    ("004", "Afghanistan", 33.94, 67.71),
    ("008", "Albania", 41.15, 20.17),
    ("012", "Algeria", 28.03, 1.66),
    ("024", "Angola", -11.20, 17.87),
    ("032", "Argentina", -38.42, -63.62),
    ("051", "Armenia", 40.07, 45.04),
    ("036", "Australia", -25.27, 133.78),
    ("040", "Austria", 47.52, 14.55),
    ("031", "Azerbaijan", 40.14, 47.58),
    ("044", "Bahamas", 25.03, -77.40),
    ("048", "Bahrain", 26.07, 50.55),
    ("050", "Bangladesh", 23.68, 90.36),
    ("112", "Belarus", 53.71, 27.95),
    ("056", "Belgium", 50.50, 4.47),
    ("084", "Belize", 17.19, -88.50),
    ("204", "Benin", 9.31, 2.32),
    ("064", "Bhutan", 27.51, 90.43),
    ("068", "Bolivia", -16.29, -63.59),
    ("070", "Bosnia and Herzegovina", 43.92, 17.68),
    ("072", "Botswana", -22.33, 24.68),
    ("076", "Brazil", -14.24, -51.93),
    ("096", "Brunei", 4.94, 114.95),
    ("100", "Bulgaria", 42.73, 25.49),
    ("854", "Burkina Faso", 12.24, -1.56),
    ("108", "Burundi", -3.37, 29.92),
    ("116", "Cambodia", 12.57, 104.99),
    ("120", "Cameroon", 7.37, 12.35),
    ("124", "Canada", 56.13, -106.35),
    ("140", "Central African Republic", 6.61, 20.94),
    ("148", "Chad", 15.45, 18.73),
    ("152", "Chile", -35.68, -71.54),
    ("156", "China", 35.86, 104.20),
    ("170", "Colombia", 4.57, -74.30),
    ("188", "Costa Rica", 9.75, -83.75),
    ("191", "Croatia", 45.10, 15.20),
    ("192", "Cuba", 21.52, -77.78),
    ("196", "Cyprus", 35.13, 33.43),
    ("203", "Czechia", 49.82, 15.47),
    ("180", "DR Congo", -4.04, 21.76),
    ("208", "Denmark", 56.26, 9.50),
    ("262", "Djibouti", 11.83, 42.59),
    ("214", "Dominican Republic", 18.74, -70.16),
    ("218", "Ecuador", -1.83, -78.18),
    ("818", "Egypt", 26.82, 30.80),
    ("222", "El Salvador", 13.79, -88.90),
    ("226", "Equatorial Guinea", 1.65, 10.27),
    ("232", "Eritrea", 15.18, 39.78),
    ("233", "Estonia", 58.60, 25.01),
    ("748", "Eswatini", -26.52, 31.47),
    ("231", "Ethiopia", 9.15, 40.49),
    ("238", "Falkland Islands", -51.80, -59.17),
    ("242", "Fiji", -17.71, 178.07),
    ("246", "Finland", 61.92, 25.75),
    ("250", "France", 46.23, 2.21),
    ("266", "Gabon", -0.80, 11.61),
    ("270", "Gambia", 13.44, -15.31),
    ("268", "Georgia", 42.32, 43.36),
    ("276", "Germany", 51.17, 10.45),
    ("288", "Ghana", 7.95, -1.02),
    ("300", "Greece", 39.07, 21.82),
    ("304", "Greenland", 71.71, -42.60),
    ("320", "Guatemala", 15.78, -90.23),
    ("324", "Guinea", 9.95, -9.70),
    ("624", "Guinea-Bissau", 11.80, -15.18),
    ("328", "Guyana", 4.86, -58.93),
    ("332", "Haiti", 18.97, -72.29),
    ("340", "Honduras", 15.20, -86.24),
    ("348", "Hungary", 47.16, 19.50),
    ("352", "Iceland", 64.96, -19.02),
    ("356", "India", 20.59, 78.96),
    ("360", "Indonesia", -0.79, 113.92),
    ("364", "Iran", 32.43, 53.69),
    ("368", "Iraq", 33.22, 43.68),
    ("372", "Ireland", 53.14, -7.69),
    ("376", "Israel", 31.05, 34.85),
    ("380", "Italy", 41.87, 12.57),
    ("384", "Ivory Coast", 7.54, -5.55),
    ("388", "Jamaica", 18.11, -77.30),
    ("392", "Japan", 36.20, 138.25),
    ("400", "Jordan", 30.59, 36.24),
    ("398", "Kazakhstan", 48.02, 66.92),
    ("404", "Kenya", -0.02, 37.91),
    ("414", "Kuwait", 29.31, 47.48),
    ("417", "Kyrgyzstan", 41.20, 74.77),
    ("418", "Laos", 19.86, 102.50),
    ("428", "Latvia", 56.88, 24.60),
    ("422", "Lebanon", 33.85, 35.86),
    ("426", "Lesotho", -29.61, 28.23),
    ("430", "Liberia", 6.43, -9.43),
    ("434", "Libya", 26.34, 17.23),
    ("440", "Lithuania", 55.17, 23.88),
    ("442", "Luxembourg", 49.82, 6.13),
    ("450", "Madagascar", -18.77, 46.87),
    ("454", "Malawi", -13.25, 34.30),
    ("458", "Malaysia", 4.21, 101.98),
    ("466", "Mali", 17.57, -4.00),
    ("478", "Mauritania", 21.01, -10.94),
    ("484", "Mexico", 23.63, -102.55),
    ("498", "Moldova", 47.41, 28.37),
    ("496", "Mongolia", 46.86, 103.85),
    ("499", "Montenegro", 42.71, 19.37),
    ("504", "Morocco", 31.79, -7.09),
    ("508", "Mozambique", -18.67, 35.53),
    ("104", "Myanmar", 21.91, 95.96),
    ("516", "Namibia", -22.96, 18.49),
    ("524", "Nepal", 28.39, 84.12),
    ("528", "Netherlands", 52.13, 5.29),
    ("554", "New Zealand", -40.90, 174.89),
    ("558", "Nicaragua", 12.87, -85.21),
    ("562", "Niger", 17.61, 8.08),
    ("566", "Nigeria", 9.08, 8.68),
    ("408", "North Korea", 40.34, 127.51),
    ("807", "North Macedonia", 41.61, 21.75),
    ("578", "Norway", 60.47, 8.47),
    ("512", "Oman", 21.47, 55.98),
    ("586", "Pakistan", 30.38, 69.35),
    ("275", "Palestine", 31.95, 35.23),
    ("591", "Panama", 8.54, -80.78),
    ("598", "Papua New Guinea", -6.31, 143.96),
    ("600", "Paraguay", -23.44, -58.44),
    ("604", "Peru", -9.19, -75.02),
    ("608", "Philippines", 12.88, 121.77),
    ("616", "Poland", 51.92, 19.15),
    ("620", "Portugal", 39.40, -8.22),
    ("630", "Puerto Rico", 18.22, -66.59),
    ("634", "Qatar", 25.35, 51.18),
    ("178", "Republic of the Congo", -0.23, 15.83),
    ("642", "Romania", 45.94, 24.97),
    ("643", "Russia", 61.52, 105.32),
    ("646", "Rwanda", -1.94, 29.87),
    ("682", "Saudi Arabia", 23.89, 45.08),
    ("686", "Senegal", 14.50, -14.45),
    ("688", "Serbia", 44.02, 21.01),
    ("694", "Sierra Leone", 8.46, -11.78),
    ("702", "Singapore", 1.35, 103.82),
    ("703", "Slovakia", 48.67, 19.70),
    ("705", "Slovenia", 46.15, 14.99),
    ("090", "Solomon Islands", -9.43, 160.03),
    ("706", "Somalia", 5.15, 46.20),
    ("710", "South Africa", -30.56, 22.94),
    ("410", "South Korea", 35.91, 127.77),
    ("728", "South Sudan", 6.88, 31.31),
    ("724", "Spain", 40.46, -3.75),
    ("144", "Sri Lanka", 7.87, 80.77),
    ("729", "Sudan", 12.86, 30.22),
    ("740", "Suriname", 3.92, -56.03),
    ("752", "Sweden", 60.13, 18.64),
    ("756", "Switzerland", 46.82, 8.23),
    ("760", "Syria", 34.80, 38.99),
    ("158", "Taiwan", 23.70, 120.96),
    ("762", "Tajikistan", 38.86, 71.28),
    ("834", "Tanzania", -6.37, 34.89),
    ("764", "Thailand", 15.87, 100.99),
    ("626", "Timor-Leste", -8.87, 125.73),
    ("768", "Togo", 8.62, 1.21),
    ("780", "Trinidad and Tobago", 10.69, -61.22),
    ("788", "Tunisia", 33.89, 9.54),
    ("792", "Turkey", 38.96, 35.24),
    ("795", "Turkmenistan", 38.97, 59.56),
    ("800", "Uganda", 1.37, 32.29),
    ("804", "Ukraine", 48.38, 31.17),
    ("784", "United Arab Emirates", 23.42, 53.85),
    ("826", "United Kingdom", 55.38, -3.44),
    ("840", "United States", 37.09, -95.71),
    ("858", "Uruguay", -32.52, -55.77),
    ("860", "Uzbekistan", 41.38, 64.59),
    ("548", "Vanuatu", -15.38, 166.96),
    ("862", "Venezuela", 6.42, -66.59),
    ("704", "Vietnam", 14.06, 108.28),
    ("732", "Western Sahara", 24.22, -12.89),
    ("887", "Yemen", 15.55, 48.52),
    ("894", "Zambia", -13.13, 27.85),
    ("716", "Zimbabwe", -19.02, 29.15),
)

# (FIPS id, name, lat, lon)
_US_STATES: tuple[tuple[str, str, float, float], ...] = (
    ("01", "Alabama", 32.32, -86.90),
    ("02", "Alaska", 63.59, -154.49),
    ("04", "Arizona", 34.05, -111.09),
    ("05", "Arkansas", 35.20, -91.83),
    ("06", "California", 36.78, -119.42),
    ("08", "Colorado", 39.55, -105.78),
    ("09", "Connecticut", 41.60, -72.76),
    ("10", "Delaware", 38.91, -75.53),
    ("11", "District of Columbia", 38.91, -77.04),
    ("12", "Florida", 27.66, -81.52),
    ("13", "Georgia", 32.17, -82.90),
    ("15", "Hawaii", 19.90, -155.58),
    ("16", "Idaho", 44.07, -114.74),
    ("17", "Illinois", 40.63, -89.40),
    ("18", "Indiana", 40.27, -86.13),
    ("19", "Iowa", 41.88, -93.10),
    ("20", "Kansas", 39.01, -98.48),
    ("21", "Kentucky", 37.84, -84.27),
    ("22", "Louisiana", 30.98, -91.96),
    ("23", "Maine", 45.25, -69.45),
    ("24", "Maryland", 39.05, -76.64),
    ("25", "Massachusetts", 42.41, -71.38),
    ("26", "Michigan", 44.31, -85.60),
    ("27", "Minnesota", 46.73, -94.69),
    ("28", "Mississippi", 32.35, -89.40),
    ("29", "Missouri", 37.96, -91.83),
    ("30", "Montana", 46.88, -110.36),
    ("31", "Nebraska", 41.49, -99.90),
    ("32", "Nevada", 38.80, -116.42),
    ("33", "New Hampshire", 43.19, -71.57),
    ("34", "New Jersey", 40.06, -74.41),
    ("35", "New Mexico", 34.52, -105.87),
    ("36", "New York", 42.17, -74.95),
    ("37", "North Carolina", 35.76, -79.02),
    ("38", "North Dakota", 47.55, -101.00),
    ("39", "Ohio", 40.42, -82.91),
    ("40", "Oklahoma", 35.47, -97.52),
    ("41", "Oregon", 43.80, -120.55),
    ("42", "Pennsylvania", 41.20, -77.19),
    ("44", "Rhode Island", 41.58, -71.48),
    ("45", "South Carolina", 33.84, -81.16),
    ("46", "South Dakota", 43.97, -99.90),
    ("47", "Tennessee", 35.52, -86.58),
    ("48", "Texas", 31.97, -99.90),
    ("49", "Utah", 39.32, -111.09),
    ("50", "Vermont", 44.56, -72.58),
    ("51", "Virginia", 37.43, -78.66),
    ("53", "Washington", 47.75, -120.74),
    ("54", "West Virginia", 38.60, -80.95),
    ("55", "Wisconsin", 43.78, -88.79),
    ("56", "Wyoming", 43.08, -107.29),
)

# (postal code, name, lat, lon)
_CA_PROVINCES: tuple[tuple[str, str, float, float], ...] = (
    ("AB", "Alberta", 53.93, -116.58),
    ("BC", "British Columbia", 53.73, -127.65),
    ("MB", "Manitoba", 53.76, -98.81),
    ("NB", "New Brunswick", 46.57, -66.46),
    ("NL", "Newfoundland and Labrador", 53.14, -57.66),
    ("NS", "Nova Scotia", 44.68, -63.74),
    ("NT", "Northwest Territories", 64.83, -124.85),
    ("NU", "Nunavut", 70.30, -83.11),
    ("ON", "Ontario", 51.25, -85.32),
    ("PE", "Prince Edward Island", 46.51, -63.42),
    ("QC", "Quebec", 52.94, -73.55),
    ("SK", "Saskatchewan", 52.94, -106.45),
    ("YT", "Yukon", 64.28, -135.00),
)

# Abbreviated/variant names used by common boundary datasets
NAME_ALIASES: Mapping[str, str] = {
    "United States of America": "United States",
    "Dem. Rep. Congo": "DR Congo",
    "Central African Rep.": "Central African Republic",
    "Dominican Rep.": "Dominican Republic",
    "Eq. Guinea": "Equatorial Guinea",
    "S. Sudan": "South Sudan",
    "Bosnia and Herz.": "Bosnia and Herzegovina",
    "Côte d'Ivoire": "Ivory Coast",
    "Macedonia": "North Macedonia",
    "eSwatini": "Eswatini",
    "Congo": "Republic of the Congo",
    "Solomon Is.": "Solomon Islands",
    "Falkland Is.": "Falkland Islands",
    "W. Sahara": "Western Sahara",
    "N. Cyprus": "Northern Cyprus",
    "Somaliland": "Somalia",
}


# ══════════════════════════════════════════════════════════════════════
# CATALOG
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Catalog:
    """Immutable, ordered collection of GeoEntity records."""
    entities: tuple[GeoEntity, ...]

    def __iter__(self) -> Iterator[GeoEntity]:
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)

    def by_scope(self, scope: Scope) -> list[GeoEntity]:
        return [e for e in self.entities if e.scope == scope]

    def get(self, entity_id: Union[str, int]) -> Optional[GeoEntity]:
        for e in self.entities:
            if e.id == entity_id:
                return e
        return None


def build_catalog(*sources: Iterable[Union[GeoEntity, Mapping[str, Any]]]) -> Catalog:
    """
    Merge entity sources into one flat catalog, preserving source order.
    Records that fail validation or have a non-finite point are skipped.
    """
    entities: list[GeoEntity] = []
    dropped = 0
    for source in sources:
        for raw in source:
            try:
                entity = raw if isinstance(raw, GeoEntity) else GeoEntity.model_validate(raw)
            except ValidationError as e:
                logger.warning("Skipping invalid catalog record %r: %s", raw, e.errors()[:1])
                dropped += 1
                continue
            if not entity.has_finite_point:
                logger.debug("Dropping %s (%s): non-finite point", entity.name, entity.id)
                dropped += 1
                continue
            entities.append(entity)

    logger.info("Catalog built: %d entities (%d dropped)", len(entities), dropped)
    return Catalog(entities=tuple(entities))


def _rows_to_entities(rows, scope: Scope, id_prefix: str = "") -> list[GeoEntity]:
    return [
        GeoEntity(id=f"{id_prefix}{code}", name=name, scope=scope, lat=lat, lon=lon)
        for code, name, lat, lon in rows
    ]


@lru_cache(maxsize=1)
def default_catalog() -> Catalog:
    """Built-in catalog: countries, US states, Canadian provinces."""
    return build_catalog(
        _rows_to_entities(_COUNTRIES, Scope.COUNTRY),
        _rows_to_entities(_US_STATES, Scope.STATE, "us-"),
        _rows_to_entities(_CA_PROVINCES, Scope.PROVINCE, "ca-"),
    )


# ══════════════════════════════════════════════════════════════════════
# GEOMETRY SOURCES
# ══════════════════════════════════════════════════════════════════════

def _ring_area_centroid(ring: np.ndarray) -> tuple[float, float, float]:
    """Signed shoelace area and centroid (x, y) of one linear ring."""
    if not np.array_equal(ring[0], ring[-1]):
        ring = np.vstack([ring, ring[:1]])
    x, y = ring[:, 0], ring[:, 1]
    cross = x[:-1] * y[1:] - x[1:] * y[:-1]
    area = cross.sum() / 2.0
    if area == 0:
        return 0.0, float(x[:-1].mean()), float(y[:-1].mean())
    cx = ((x[:-1] + x[1:]) * cross).sum() / (6.0 * area)
    cy = ((y[:-1] + y[1:]) * cross).sum() / (6.0 * area)
    return float(area), float(cx), float(cy)


def polygon_centroid(geometry: Optional[Mapping[str, Any]]) -> tuple[float, float]:
    """
    Planar area-weighted centroid of a GeoJSON Polygon or MultiPolygon.
    Returns (lon, lat); (nan, nan) for empty or unsupported geometry.
    Holes are subtracted. Degenerate (zero-area) shapes fall back to the
    mean vertex.
    """
    nan = (math.nan, math.nan)
    if not geometry:
        return nan
    gtype = geometry.get("type")
    coords = geometry.get("coordinates") or []
    if gtype == "Polygon":
        polygons = [coords]
    elif gtype == "MultiPolygon":
        polygons = coords
    else:
        return nan

    total = 0.0
    sx = sy = 0.0
    vertices: list[np.ndarray] = []
    try:
        for polygon in polygons:
            for i, ring in enumerate(polygon):
                arr = np.asarray(ring, dtype=float)
                if arr.ndim != 2 or arr.shape[0] < 3 or arr.shape[1] < 2:
                    continue
                arr = arr[:, :2]
                vertices.append(arr)
                area, cx, cy = _ring_area_centroid(arr)
                weight = abs(area) if i == 0 else -abs(area)
                total += weight
                sx += weight * cx
                sy += weight * cy
    except (TypeError, ValueError):
        return nan

    if not vertices:
        return nan
    if total == 0 or not math.isfinite(total):
        allv = np.vstack(vertices)
        return float(allv[:, 0].mean()), float(allv[:, 1].mean())
    return sx / total, sy / total


def entities_from_features(
    features: Iterable[Mapping[str, Any]],
    scope: Scope,
    id_prefix: str = "",
    point_overrides: Optional[Mapping[str, Point]] = None,
    aliases: Optional[Mapping[str, str]] = None,
) -> list[dict]:
    """
    Turn GeoJSON features into raw entity records.
    An override point (keyed by feature id) wins over the geometric centroid.
    Records are returned unvalidated; build_catalog() filters them.
    """
    overrides = point_overrides or {}
    alias_map = NAME_ALIASES if aliases is None else aliases
    out: list[dict] = []
    for idx, feature in enumerate(features):
        props = feature.get("properties") or {}
        fid = feature.get("id", props.get("id"))
        raw_name = props.get("name") or ""
        name = alias_map.get(raw_name, raw_name) or f"{scope.value.title()} {idx}"

        key = str(fid) if fid is not None else None
        if key is not None and key in overrides:
            lat, lon = overrides[key]
        else:
            lon, lat = polygon_centroid(feature.get("geometry"))

        out.append({
            "id": f"{id_prefix}{fid if fid is not None else idx}",
            "name": name,
            "match_key": name.lower() if raw_name else "",
            "scope": scope,
            "lat": lat,
            "lon": lon,
        })
    return out


def load_geojson(path: Union[str, Path]) -> list[dict]:
    """Read the features of a GeoJSON FeatureCollection."""
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict) and data.get("type") == "FeatureCollection":
        return list(data.get("features") or [])
    if isinstance(data, list):
        return data
    raise ValueError(f"{path} is not a GeoJSON FeatureCollection")


def load_points(path: Union[str, Path]) -> dict[str, Point]:
    """Read authoritative points: {"<feature id>": [lat, lon], ...}."""
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    points: dict[str, Point] = {}
    for key, value in data.items():
        try:
            lat, lon = float(value[0]), float(value[1])
        except (TypeError, ValueError, IndexError):
            logger.warning("Ignoring malformed point override for %s: %r", key, value)
            continue
        points[str(key)] = (lat, lon)
    return points


def catalog_from_config(cfg: CatalogConfig) -> Catalog:
    """Build the catalog from configured GeoJSON files, or the built-in data."""
    if not (cfg.countries_path or cfg.states_path or cfg.provinces_path):
        return default_catalog()

    points = load_points(cfg.points_path) if cfg.points_path else {}
    sources: list[list[dict]] = []
    for path, scope, prefix in (
        (cfg.countries_path, Scope.COUNTRY, ""),
        (cfg.states_path, Scope.STATE, "us-"),
        (cfg.provinces_path, Scope.PROVINCE, "ca-"),
    ):
        if not path:
            continue
        features = load_geojson(path)
        logger.info("Loaded %d %s features from %s", len(features), scope.value, path)
        sources.append(entities_from_features(features, scope, prefix, point_overrides=points))
    return build_catalog(*sources)
