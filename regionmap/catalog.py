"""
regionmap.catalog — Immutable region catalog, loaded once per process.

The generated dataset (``regionmap/data/regions.json`` unless REGIONS_FILE
points elsewhere) is a JSON array of region objects::

    {
      "id": "aws-us-east-1",
      "name": "US East 1 (N. Virginia)",
      "provider": "AWS",
      "coords": [39.04, -77.49],
      "aliases": ["Virginia", "IAD"],          # optional
      "services": {
        "vdc_vault": [{"edition": "Advanced", "tier": "Core"}, ...],
        "vdc_m365": true
      }
    }

Design contract:
    - Parsing is strict. Any record that breaks an invariant (unknown
      provider, out-of-range coordinates, unknown service, vault entry
      outside the edition/tier enumerations, duplicate id) aborts the load
      with CatalogLoadError. A partial catalog is never produced.
    - Service availability is a tagged variant (BooleanService /
      TieredService). Consumers dispatch on ``kind``.
    - RegionCatalog is read-only after construction and safe to share
      across concurrent requests without locking.
"""

from __future__ import annotations

import functools
import json
import logging
import math
import os
import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, ClassVar, Union

from regionmap.constants import (
    BOOLEAN_SERVICES,
    EDITIONS,
    LAT_RANGE,
    LNG_RANGE,
    PROVIDERS,
    REGION_ID_PATTERN,
    SERVICE_IDS,
    SERVICE_TYPE_BOOLEAN,
    SERVICE_TYPE_TIERED,
    TIERS,
    VAULT_SERVICE,
)

logger = logging.getLogger("regionmap.catalog")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_REGIONS_FILE: Path = Path(__file__).resolve().parent / "data" / "regions.json"

REGIONS_FILE: Path = Path(os.getenv("REGIONS_FILE", "").strip() or DEFAULT_REGIONS_FILE)
"""Dataset consumed by get_catalog(). Controlled by REGIONS_FILE env var."""

_REQUIRED_FIELDS: tuple[str, ...] = ("id", "name", "provider", "coords", "services")
_ID_RE = re.compile(REGION_ID_PATTERN)


class CatalogLoadError(Exception):
    """The dataset cannot be turned into a valid catalog.

    Fatal at startup: the service must not answer queries from a partial
    or empty catalog.
    """

    def __init__(self, message: str, *, region_id: str | None = None) -> None:
        super().__init__(message)
        self.region_id = region_id


# ---------------------------------------------------------------------------
# Service availability: tagged variant
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VaultOffering:
    """One edition/tier combination offered by the vault service."""

    edition: str
    tier: str

    def sort_key(self) -> tuple[int, int]:
        return (EDITIONS.index(self.edition), TIERS.index(self.tier))

    def to_dict(self) -> dict[str, str]:
        return {"edition": self.edition, "tier": self.tier}


@dataclass(frozen=True)
class BooleanService:
    kind: ClassVar[str] = SERVICE_TYPE_BOOLEAN
    available: bool


@dataclass(frozen=True)
class TieredService:
    kind: ClassVar[str] = SERVICE_TYPE_TIERED
    offerings: frozenset[VaultOffering]

    def ordered(self) -> list[VaultOffering]:
        """Offerings in canonical (edition, tier) order."""
        return sorted(self.offerings, key=VaultOffering.sort_key)


ServiceAvailability = Union[BooleanService, TieredService]


def is_available(availability: ServiceAvailability) -> bool:
    """True if the service can be used in the region.

    Boolean variant: the flag itself. Tiered variant: at least one offering.
    """
    if availability.kind == SERVICE_TYPE_TIERED:
        return len(availability.offerings) > 0
    return availability.available


def _availability_to_wire(availability: ServiceAvailability) -> Any:
    if availability.kind == SERVICE_TYPE_TIERED:
        return [o.to_dict() for o in availability.ordered()]
    return availability.available


# ---------------------------------------------------------------------------
# Region
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Region:
    """A cloud region. Immutable."""

    id: str
    name: str
    provider: str
    coords: tuple[float, float]
    services: Mapping[str, ServiceAvailability]
    aliases: tuple[str, ...] | None = None

    @property
    def latitude(self) -> float:
        return self.coords[0]

    @property
    def longitude(self) -> float:
        return self.coords[1]

    def has_service(self, service_id: str) -> bool:
        availability = self.services.get(service_id)
        if availability is None:
            return False
        return is_available(availability)

    def vault_offerings(self) -> frozenset[VaultOffering]:
        """Vault offerings of this region; empty if the vault is absent."""
        availability = self.services.get(VAULT_SERVICE)
        if availability is None or availability.kind != SERVICE_TYPE_TIERED:
            return frozenset()
        return availability.offerings

    def service_details(self, service_id: str) -> Any:
        """Wire value of one service (bool or list of offerings), None if absent."""
        availability = self.services.get(service_id)
        if availability is None:
            return None
        return _availability_to_wire(availability)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation. Key order and vault order are deterministic."""
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "provider": self.provider,
            "coords": [self.coords[0], self.coords[1]],
        }
        if self.aliases is not None:
            out["aliases"] = list(self.aliases)
        out["services"] = {
            sid: _availability_to_wire(self.services[sid])
            for sid in SERVICE_IDS
            if sid in self.services
        }
        return out


# ---------------------------------------------------------------------------
# Record parsing
# ---------------------------------------------------------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_coords(region_id: str, raw: Any) -> tuple[float, float]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise CatalogLoadError(
            f"Region '{region_id}': coords must be [lat, lng].", region_id=region_id,
        )
    lat, lng = raw
    if not (_is_number(lat) and _is_number(lng)):
        raise CatalogLoadError(
            f"Region '{region_id}': coords must be numeric, got {raw!r}.",
            region_id=region_id,
        )
    lat, lng = float(lat), float(lng)
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise CatalogLoadError(
            f"Region '{region_id}': coords must be finite, got {raw!r}.",
            region_id=region_id,
        )
    if not (LAT_RANGE[0] <= lat <= LAT_RANGE[1]):
        raise CatalogLoadError(
            f"Region '{region_id}': latitude {lat} outside [-90, 90].",
            region_id=region_id,
        )
    if not (LNG_RANGE[0] <= lng <= LNG_RANGE[1]):
        raise CatalogLoadError(
            f"Region '{region_id}': longitude {lng} outside [-180, 180].",
            region_id=region_id,
        )
    return (lat, lng)


def _parse_vault(region_id: str, raw: Any) -> TieredService:
    if not isinstance(raw, list):
        raise CatalogLoadError(
            f"Region '{region_id}': {VAULT_SERVICE} must be a list of edition/tier objects.",
            region_id=region_id,
        )
    offerings: set[VaultOffering] = set()
    for entry in raw:
        if not isinstance(entry, dict):
            raise CatalogLoadError(
                f"Region '{region_id}': invalid {VAULT_SERVICE} entry {entry!r}.",
                region_id=region_id,
            )
        edition = entry.get("edition")
        tier = entry.get("tier")
        if edition not in EDITIONS:
            raise CatalogLoadError(
                f"Region '{region_id}': invalid edition {edition!r}. "
                f"Must be one of: {', '.join(EDITIONS)}.",
                region_id=region_id,
            )
        if tier not in TIERS:
            raise CatalogLoadError(
                f"Region '{region_id}': invalid tier {tier!r}. "
                f"Must be one of: {', '.join(TIERS)}.",
                region_id=region_id,
            )
        offerings.add(VaultOffering(edition=edition, tier=tier))
    return TieredService(offerings=frozenset(offerings))


def _parse_services(region_id: str, raw: Any) -> Mapping[str, ServiceAvailability]:
    if not isinstance(raw, dict):
        raise CatalogLoadError(
            f"Region '{region_id}': services must be an object.", region_id=region_id,
        )
    services: dict[str, ServiceAvailability] = {}
    for service_id, value in raw.items():
        if service_id == VAULT_SERVICE:
            services[service_id] = _parse_vault(region_id, value)
        elif service_id in BOOLEAN_SERVICES:
            if not isinstance(value, bool):
                raise CatalogLoadError(
                    f"Region '{region_id}': boolean service '{service_id}' "
                    f"must be true or false, got {value!r}.",
                    region_id=region_id,
                )
            services[service_id] = BooleanService(available=value)
        else:
            raise CatalogLoadError(
                f"Region '{region_id}': unknown service '{service_id}'. "
                f"Valid services are: {', '.join(SERVICE_IDS)}.",
                region_id=region_id,
            )
    return MappingProxyType(services)


def parse_region(raw: Any, index: int = 0) -> Region:
    """Build a Region from one dataset record. Raises CatalogLoadError."""
    if not isinstance(raw, dict):
        raise CatalogLoadError(
            f"Record #{index}: expected an object, got {type(raw).__name__}."
        )

    missing = [f for f in _REQUIRED_FIELDS if f not in raw]
    if missing:
        label = raw.get("id") if isinstance(raw.get("id"), str) else f"#{index}"
        raise CatalogLoadError(
            f"Record {label}: missing required field(s): {', '.join(missing)}."
        )

    region_id = raw["id"]
    if not isinstance(region_id, str) or not _ID_RE.match(region_id):
        raise CatalogLoadError(
            f"Record #{index}: invalid id {region_id!r}. "
            f"Must match pattern {REGION_ID_PATTERN}."
        )

    name = raw["name"]
    if not isinstance(name, str) or not name.strip():
        raise CatalogLoadError(
            f"Region '{region_id}': name must be a non-empty string.", region_id=region_id,
        )

    provider = raw["provider"]
    if provider not in PROVIDERS:
        raise CatalogLoadError(
            f"Region '{region_id}': invalid provider {provider!r}. "
            f"Must be exactly one of: {', '.join(PROVIDERS)}.",
            region_id=region_id,
        )

    aliases_raw = raw.get("aliases")
    aliases: tuple[str, ...] | None = None
    if aliases_raw is not None:
        if not isinstance(aliases_raw, list) or not all(isinstance(a, str) for a in aliases_raw):
            raise CatalogLoadError(
                f"Region '{region_id}': aliases must be a list of strings.",
                region_id=region_id,
            )
        aliases = tuple(aliases_raw)

    return Region(
        id=region_id,
        name=name,
        provider=provider,
        coords=_parse_coords(region_id, raw["coords"]),
        services=_parse_services(region_id, raw["services"]),
        aliases=aliases,
    )


# ---------------------------------------------------------------------------
# RegionCatalog
# ---------------------------------------------------------------------------

class RegionCatalog:
    """Read-only, ordered collection of regions with O(1) lookup by id.

    Order is the dataset order (the build step sorts by provider, then
    name). Construction rejects duplicate ids.
    """

    __slots__ = ("_regions", "_by_id", "_source")

    def __init__(self, regions: Iterable[Region], source: str = "<memory>") -> None:
        ordered = tuple(regions)
        by_id: dict[str, Region] = {}
        for region in ordered:
            if region.id in by_id:
                raise CatalogLoadError(
                    f"Duplicate region id '{region.id}'.", region_id=region.id,
                )
            by_id[region.id] = region
        self._regions: tuple[Region, ...] = ordered
        self._by_id: Mapping[str, Region] = MappingProxyType(by_id)
        self._source = source

    @classmethod
    def from_records(cls, records: Iterable[Any], source: str = "<memory>") -> RegionCatalog:
        return cls(
            (parse_region(raw, i) for i, raw in enumerate(records)),
            source=source,
        )

    @property
    def regions(self) -> tuple[Region, ...]:
        return self._regions

    @property
    def source(self) -> str:
        return self._source

    def get(self, region_id: str) -> Region | None:
        return self._by_id.get(region_id)

    def count_by_provider(self) -> dict[str, int]:
        counts = {p: 0 for p in PROVIDERS}
        for region in self._regions:
            counts[region.provider] += 1
        return counts

    def __len__(self) -> int:
        return len(self._regions)

    def __iter__(self) -> Iterator[Region]:
        return iter(self._regions)

    def __contains__(self, region_id: object) -> bool:
        return region_id in self._by_id


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def read_records(filepath: Path) -> list[Any]:
    """Read the raw JSON array of region records. Raises CatalogLoadError."""
    if not filepath.is_file():
        raise CatalogLoadError(f"Region dataset not found: {filepath}")
    try:
        with open(filepath, encoding="utf-8") as fh:
            data = json.load(fh)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
        raise CatalogLoadError(
            f"Failed to read region dataset {filepath.name}: {type(exc).__name__}"
        ) from exc
    if not isinstance(data, list):
        raise CatalogLoadError(
            f"Region dataset {filepath.name} must contain a JSON array, "
            f"got {type(data).__name__}."
        )
    return data


def load_catalog(filepath: Path | None = None) -> RegionCatalog:
    """Load and validate the dataset into an immutable RegionCatalog.

    Raises CatalogLoadError on a missing or unreadable file, an empty
    dataset, or any invalid record.
    """
    path = filepath if filepath is not None else REGIONS_FILE
    records = read_records(path)
    if not records:
        raise CatalogLoadError(f"Region dataset {path.name} is empty.")

    catalog = RegionCatalog.from_records(records, source=str(path))
    counts = catalog.count_by_provider()
    logger.info(json.dumps({
        "event": "catalog_loaded",
        "regions": len(catalog),
        "aws": counts["AWS"],
        "azure": counts["Azure"],
    }))
    return catalog


@functools.lru_cache(maxsize=1)
def get_catalog() -> RegionCatalog:
    """Process-wide catalog. Loaded on first call, then served from memory.

    Used as a FastAPI dependency; tests swap it via dependency_overrides.
    """
    return load_catalog()
