"""
regionmap.comparison — Side-by-side service availability for 2–5 regions.

For every known service, reports which of the requested regions offer it,
which do not, and the per-region detail (true, or the vault offerings).
The summary classifies each service as common (all regions), partial
(some) or unavailable (none).
"""

from __future__ import annotations

from typing import Any

from regionmap.catalog import Region
from regionmap.constants import SERVICE_IDS


def compare_regions(regions: list[Region]) -> dict[str, Any]:
    comparison: dict[str, dict[str, Any]] = {}
    for service_id in SERVICE_IDS:
        available_in: list[str] = []
        missing_from: list[str] = []
        details: dict[str, Any] = {}
        for region in regions:
            if region.has_service(service_id):
                available_in.append(region.id)
                details[region.id] = region.service_details(service_id)
            else:
                missing_from.append(region.id)
        comparison[service_id] = {
            "availableIn": available_in,
            "missingFrom": missing_from,
            "isCommon": len(available_in) == len(regions),
            "details": details,
        }

    common = [sid for sid, c in comparison.items() if c["isCommon"]]
    unavailable = [sid for sid, c in comparison.items() if not c["availableIn"]]
    partial = [sid for sid in SERVICE_IDS if sid not in common and sid not in unavailable]

    return {
        "regions": [r.to_dict() for r in regions],
        "comparison": comparison,
        "summary": {
            "totalServices": len(SERVICE_IDS),
            "commonServices": len(common),
            "partialServices": len(partial),
            "unavailableServices": len(unavailable),
            "commonServiceIds": common,
            "partialServiceIds": partial,
            "unavailableServiceIds": unavailable,
        },
    }
