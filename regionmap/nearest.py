"""
regionmap.nearest — Nearest-region discovery engine.

Pure computation. Zero I/O. Zero shared mutable state.
Given a validated NearestQuery and the immutable catalog:

    filter (predicate chain) → distance (haversine) → rank → limit → assemble

Ranking contract:
    - Ascending distance in km at full precision.
    - Distances equal at DISTANCE_COMPARE_PRECISION decimals are ties,
      broken by region id (lexicographic ascending).
    - The whole candidate set is sorted before truncation, so the tie-break
      is identical whatever the limit.
    - limit == 0 returns every candidate.

Identical queries against an unchanged catalog produce byte-identical
results.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from regionmap.catalog import Region, RegionCatalog
from regionmap.constants import DISTANCE_COMPARE_PRECISION, UNLIMITED
from regionmap.filters import apply_predicates, build_predicates
from regionmap.geo import distance_payload, haversine_km
from regionmap.validation import NearestQuery


@dataclass(frozen=True)
class RankedRegion:
    region: Region
    distance_km: float
    """Unrounded. Rounded only in to_dict()."""

    def sort_key(self) -> tuple[float, str]:
        return (round(self.distance_km, DISTANCE_COMPARE_PRECISION), self.region.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "region": self.region.to_dict(),
            "distance": distance_payload(self.distance_km),
        }


def measure(regions: Iterable[Region], lat: float, lng: float) -> list[RankedRegion]:
    return [
        RankedRegion(region=r, distance_km=haversine_km(lat, lng, r.latitude, r.longitude))
        for r in regions
    ]


def rank(candidates: Iterable[RankedRegion]) -> list[RankedRegion]:
    """Full deterministic sort: distance, then region id."""
    return sorted(candidates, key=RankedRegion.sort_key)


def apply_limit(ranked: list[RankedRegion], limit: int) -> list[RankedRegion]:
    if limit == UNLIMITED:
        return ranked
    return ranked[:limit]


def assemble_response(query: NearestQuery, results: list[RankedRegion]) -> dict[str, Any]:
    """Response contract: {query, results[], count}. count is post-limit."""
    return {
        "query": query.echo(),
        "results": [r.to_dict() for r in results],
        "count": len(results),
    }


def find_nearest(catalog: RegionCatalog, query: NearestQuery) -> dict[str, Any]:
    """Run the full pipeline for one validated query.

    An empty match set is a normal result (count 0), not an error.
    """
    candidates = apply_predicates(catalog, build_predicates(query))
    ranked = rank(measure(candidates, query.lat, query.lng))
    return assemble_response(query, apply_limit(ranked, query.limit))
