"""
regionmap.constants — Single source of truth for catalog and query constants.

Every module that needs these values MUST import from here.
No hardcoded duplicates of enumerations anywhere in the codebase.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Versioning
# ---------------------------------------------------------------------------

API_VERSION: str = "1.0.0"
"""Emitted as X-API-Version on every response and reported by /health."""

# ---------------------------------------------------------------------------
# Enumerations: case-sensitive, canonical order
# ---------------------------------------------------------------------------

PROVIDERS: tuple[str, ...] = ("AWS", "Azure")

VAULT_SERVICE: str = "vdc_vault"
"""The only tiered service. tier/edition filters require this service."""

BOOLEAN_SERVICES: tuple[str, ...] = (
    "vdc_m365",
    "vdc_entra_id",
    "vdc_salesforce",
    "vdc_azure_backup",
)

SERVICE_IDS: tuple[str, ...] = (VAULT_SERVICE,) + BOOLEAN_SERVICES

EDITIONS: tuple[str, ...] = ("Foundation", "Advanced")

TIERS: tuple[str, ...] = ("Core", "Non-Core")

SERVICE_TYPE_BOOLEAN: str = "boolean"
SERVICE_TYPE_TIERED: str = "tiered"

REGION_ID_PATTERN: str = r"^(aws|azure)-[a-z0-9-]+$"

# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

EARTH_RADIUS_KM: float = 6371.0
"""Mean Earth radius. Spherical model, no ellipsoidal correction."""

KM_TO_MILES: float = 0.621371

LAT_RANGE: tuple[float, float] = (-90.0, 90.0)
LNG_RANGE: tuple[float, float] = (-180.0, 180.0)

DISTANCE_PRECISION: int = 2
"""Decimal places for km/miles in responses. Applied once, at output."""

DISTANCE_COMPARE_PRECISION: int = 9
"""Distances equal at this many decimal places (km) are ties and fall
back to the region id ordering."""

# ---------------------------------------------------------------------------
# Result limits
# ---------------------------------------------------------------------------

NEAREST_DEFAULT_LIMIT: int = 5
LISTING_DEFAULT_LIMIT: int = 0
MAX_LIMIT: int = 20
UNLIMITED: int = 0
"""Sentinel limit: return every matching region."""

COMPARE_MIN_REGIONS: int = 2
COMPARE_MAX_REGIONS: int = 5

# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

INVALID_PARAMETER: str = "INVALID_PARAMETER"
REGION_NOT_FOUND: str = "REGION_NOT_FOUND"
SERVICE_NOT_FOUND: str = "SERVICE_NOT_FOUND"

# ---------------------------------------------------------------------------
# Service metadata: static, served by /api/v1/services
# ---------------------------------------------------------------------------

SERVICE_METADATA: tuple[dict, ...] = (
    {
        "id": VAULT_SERVICE,
        "name": "Veeam Data Cloud Vault",
        "type": SERVICE_TYPE_TIERED,
        "description": "Immutable backup storage with configurable pricing tiers",
        "editions": list(EDITIONS),
        "tiers": list(TIERS),
    },
    {
        "id": "vdc_m365",
        "name": "VDC for Microsoft 365",
        "type": SERVICE_TYPE_BOOLEAN,
        "description": "Backup and recovery for Microsoft 365 data",
    },
    {
        "id": "vdc_entra_id",
        "name": "VDC for Entra ID",
        "type": SERVICE_TYPE_BOOLEAN,
        "description": "Backup and recovery for Microsoft Entra ID (Azure AD)",
    },
    {
        "id": "vdc_salesforce",
        "name": "VDC for Salesforce",
        "type": SERVICE_TYPE_BOOLEAN,
        "description": "Backup and recovery for Salesforce data",
    },
    {
        "id": "vdc_azure_backup",
        "name": "VDC for Azure",
        "type": SERVICE_TYPE_BOOLEAN,
        "description": "Native Azure backup capabilities",
    },
)
