"""
regionmap.listing — Filtered region listing (no spatial component).

Same predicate chain and limit semantics as the nearest-region engine;
results stay in catalog order.
"""

from __future__ import annotations

from typing import Any

from regionmap.catalog import RegionCatalog
from regionmap.constants import UNLIMITED
from regionmap.filters import apply_predicates, build_predicates
from regionmap.validation import RegionsQuery


def list_regions(catalog: RegionCatalog, query: RegionsQuery) -> dict[str, Any]:
    regions = apply_predicates(catalog, build_predicates(query, country=query.country))
    if query.limit != UNLIMITED:
        regions = regions[:query.limit]
    return {
        "data": [r.to_dict() for r in regions],
        "count": len(regions),
        "filters": query.echo(),
    }
