"""
tests/conftest.py — Shared environment and fixtures.

The environment is pinned before any test module imports the app:
rate limiting off (hundreds of requests per module would trip it), the
packaged dataset in use.
"""

from __future__ import annotations

import os

os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ.pop("REGIONS_FILE", None)
os.environ.pop("ALLOWED_ORIGINS", None)
os.environ.pop("ENV", None)
os.environ.pop("ENABLE_DOCS", None)

import pytest  # noqa: E402

from regionmap.catalog import RegionCatalog, get_catalog  # noqa: E402

# Small hand-checked catalog. From (0, 0) the distance order is:
#   azure-near (~111 km), aws-a-tie == aws-b-tie (~1569 km),
#   azure-empty-vault (~3112 km), aws-mixed (~14900 km), azure-far (~19904 km)
SAMPLE_RECORDS: list[dict] = [
    {
        "id": "aws-b-tie",
        "name": "Tie B",
        "provider": "AWS",
        "coords": [10.0, 10.0],
        "services": {"vdc_vault": [{"edition": "Foundation", "tier": "Core"}]},
    },
    {
        "id": "aws-a-tie",
        "name": "Tie A",
        "provider": "AWS",
        "coords": [10.0, 10.0],
        "services": {"vdc_vault": [{"edition": "Advanced", "tier": "Non-Core"}]},
    },
    {
        "id": "aws-mixed",
        "name": "Mixed Offerings",
        "provider": "AWS",
        "coords": [-45.0, -170.0],
        "aliases": ["Testland", "MIX"],
        "services": {
            "vdc_vault": [
                {"edition": "Advanced", "tier": "Non-Core"},
                {"edition": "Foundation", "tier": "Core"},
                {"edition": "Foundation", "tier": "Core"},
            ],
            "vdc_salesforce": True,
        },
    },
    {
        "id": "azure-near",
        "name": "Near Origin",
        "provider": "Azure",
        "coords": [0.0, 1.0],
        "services": {
            "vdc_vault": [{"edition": "Advanced", "tier": "Core"}],
            "vdc_m365": True,
        },
    },
    {
        "id": "azure-far",
        "name": "Far Side",
        "provider": "Azure",
        "coords": [0.0, 179.0],
        "services": {"vdc_m365": False, "vdc_entra_id": True},
    },
    {
        "id": "azure-empty-vault",
        "name": "Empty Vault",
        "provider": "Azure",
        "coords": [20.0, 20.0],
        "services": {"vdc_vault": [], "vdc_m365": True},
    },
]


@pytest.fixture()
def sample_catalog() -> RegionCatalog:
    return RegionCatalog.from_records(SAMPLE_RECORDS, source="<sample>")


@pytest.fixture(scope="session")
def real_catalog() -> RegionCatalog:
    """The packaged dataset, loaded through the same path the app uses."""
    return get_catalog()
