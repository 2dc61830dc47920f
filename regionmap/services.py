"""
regionmap.services — Service metadata and per-service availability views.

Static metadata comes from constants.SERVICE_METADATA; availability is
derived from the catalog on each call (the catalog is small and immutable,
so nothing is cached here).
"""

from __future__ import annotations

import copy
from typing import Any

from regionmap.catalog import Region, RegionCatalog
from regionmap.constants import (
    PROVIDERS,
    SERVICE_IDS,
    SERVICE_METADATA,
    SERVICE_TYPE_TIERED,
)

_METADATA_BY_ID: dict[str, dict[str, Any]] = {m["id"]: m for m in SERVICE_METADATA}


def list_services() -> list[dict[str, Any]]:
    """All service metadata records, in canonical order. Returns copies."""
    return [copy.deepcopy(_METADATA_BY_ID[sid]) for sid in SERVICE_IDS]


def get_service(service_id: str) -> dict[str, Any] | None:
    meta = _METADATA_BY_ID.get(service_id)
    return copy.deepcopy(meta) if meta is not None else None


def service_regions(catalog: RegionCatalog, service_id: str) -> list[Region]:
    return [r for r in catalog if r.has_service(service_id)]


def provider_breakdown(regions: list[Region]) -> dict[str, dict[str, Any]]:
    breakdown: dict[str, dict[str, Any]] = {p: {"count": 0, "regions": []} for p in PROVIDERS}
    for region in regions:
        entry = breakdown[region.provider]
        entry["count"] += 1
        entry["regions"].append(region.id)
    return breakdown


def configuration_breakdown(catalog: RegionCatalog) -> dict[str, dict[str, Any]]:
    """Vault regions grouped by "Edition-Tier" key, e.g. "Advanced-Non-Core"."""
    breakdown: dict[str, dict[str, Any]] = {}
    for region in catalog:
        for offering in sorted(region.vault_offerings(), key=lambda o: o.sort_key()):
            key = f"{offering.edition}-{offering.tier}"
            entry = breakdown.setdefault(key, {"count": 0, "regions": []})
            entry["count"] += 1
            entry["regions"].append(region.id)
    return breakdown


def service_detail(catalog: RegionCatalog, service_id: str) -> dict[str, Any] | None:
    """Detail view for /services/{serviceId}; None for an unknown id."""
    service = get_service(service_id)
    if service is None:
        return None

    regions = service_regions(catalog, service_id)
    service["regionCount"] = len(regions)
    detail: dict[str, Any] = {
        "service": service,
        "regions": [r.id for r in regions],
        "providerBreakdown": provider_breakdown(regions),
    }
    if service["type"] == SERVICE_TYPE_TIERED:
        detail["configurationBreakdown"] = configuration_breakdown(catalog)
    return detail
