#!/usr/bin/env python3
"""
region_api_v1.py — Cloud Region Catalog API Server (v1)

Serves the immutable region catalog loaded once at startup from the
generated regions.json, plus a nearest-region discovery endpoint.
Every endpoint is a read-only computation over that catalog.

Endpoints:
    GET /                                  → API metadata
    GET /api/v1/regions                    → Filtered region listing
    GET /api/v1/regions/nearest            → Closest regions to lat/lng
    GET /api/v1/regions/compare?ids=a,b    → Service comparison (2-5 regions)
    GET /api/v1/regions/{id}               → Single region
    GET /api/v1/services                   → Service metadata
    GET /api/v1/services/{serviceId}       → Service detail with breakdowns
    GET /api/v1/ping                       → Liveness probe
    GET /api/v1/health                     → Readiness probe with catalog stats

No database. No per-request state. No writes.
If the catalog cannot be loaded at startup, the process exits.

Environment variables:
    ENV                 — "dev" or "prod" (default: "prod")
    ALLOWED_ORIGINS     — Comma-separated CORS origins (default: any origin)
    ENABLE_DOCS         — "1" to force-enable /docs in prod
    REDIS_URL           — Optional Redis URL for distributed rate limiting
    RATE_LIMIT_ENABLED  — "0" to disable rate limiting (default: "1")
    REGIONS_FILE        — Override the region dataset path

Requires: fastapi, uvicorn, gunicorn, slowapi

Annotations in this module are evaluated eagerly (no postponed
annotations): slowapi wraps each route, and FastAPI resolves string
annotations against the wrapper's module, where CatalogDep is unknown.
"""

import json
import logging
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated, Any

try:
    from fastapi import Depends, FastAPI, Request
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse
    from starlette.middleware.gzip import GZipMiddleware
except ImportError:
    print(
        "FATAL: FastAPI not installed. Install with:\n"
        "  pip install -e .\n",
        file=sys.stderr,
    )
    sys.exit(1)

try:
    from slowapi import Limiter
    from slowapi.errors import RateLimitExceeded
    from slowapi.util import get_remote_address
except ImportError:
    print(
        "FATAL: slowapi not installed. Install with:\n"
        "  pip install -e .\n",
        file=sys.stderr,
    )
    sys.exit(1)

from regionmap.catalog import CatalogLoadError, RegionCatalog, get_catalog
from regionmap.comparison import compare_regions
from regionmap.constants import (
    API_VERSION,
    REGION_NOT_FOUND,
    SERVICE_IDS,
    SERVICE_NOT_FOUND,
)
from regionmap.listing import list_regions
from regionmap.nearest import find_nearest
from regionmap.security import (
    ETagMiddleware,
    RequestIdMiddleware,
    SecurityHeadersMiddleware,
)
from regionmap.services import list_services, service_detail
from regionmap.validation import (
    InvalidParameterError,
    parse_compare_ids,
    parse_nearest_query,
    parse_regions_query,
)


# ---------------------------------------------------------------------------
# Logging configuration: structured JSON to stdout
# ---------------------------------------------------------------------------

_log_level = logging.DEBUG if os.getenv("ENV", "prod") == "dev" else logging.INFO
logging.basicConfig(
    level=_log_level,
    format="%(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger("regionmap.api")


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

ENV = os.getenv("ENV", "prod").lower().strip()
ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS", "").strip()
ENABLE_DOCS = os.getenv("ENABLE_DOCS", "").strip() == "1"
REDIS_URL = os.getenv("REDIS_URL", "").strip() or None
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "1").strip() != "0"


# ---------------------------------------------------------------------------
# Rate limiter
# ---------------------------------------------------------------------------

_rate_storage: str = REDIS_URL if REDIS_URL else "memory://"

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["120/minute"],
    storage_uri=_rate_storage,
    strategy="fixed-window",
    enabled=RATE_LIMIT_ENABLED,
)


# ---------------------------------------------------------------------------
# App construction
# ---------------------------------------------------------------------------

def _build_docs_kwargs() -> dict[str, Any]:
    """Determine docs/redoc/openapi URL availability."""
    if ENV == "prod" and not ENABLE_DOCS:
        return {"docs_url": None, "redoc_url": None, "openapi_url": None}
    return {"docs_url": "/docs", "redoc_url": "/redoc"}


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup: load the catalog once. A load failure aborts the process.

    Serving from an empty or partial catalog would turn every query into a
    plausible-looking wrong answer.
    """
    logger.info(json.dumps({
        "event": "startup",
        "env": ENV,
        "cors_origins": len(_CORS_ORIGINS),
        "docs_enabled": ENABLE_DOCS or ENV == "dev",
        "rate_limit_backend": "redis" if REDIS_URL else "memory",
        "rate_limit_enabled": RATE_LIMIT_ENABLED,
    }))

    try:
        get_catalog()
    except CatalogLoadError as exc:
        logger.error(json.dumps({
            "event": "startup_abort",
            "reason": str(exc),
        }))
        sys.exit(1)

    yield

    logger.info(json.dumps({"event": "shutdown"}))


app = FastAPI(
    title="Cloud Region Catalog API",
    description="Cloud region service availability and nearest-region discovery — API v1",
    version=API_VERSION,
    lifespan=_lifespan,
    **_build_docs_kwargs(),
)

app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Middleware (last registered = outermost)
# Execution order: GZip → RequestId → SecurityHeaders → CORS → ETag
#
# ETag is registered first so a 304 picks up CORS and hardening headers.
# ---------------------------------------------------------------------------

app.add_middleware(ETagMiddleware)


# ---------------------------------------------------------------------------
# CORS: public read-only API
#
# No credentials, GET + OPTIONS only. ALLOWED_ORIGINS narrows the origin
# list at deploy time; unset means any origin.
# ---------------------------------------------------------------------------

_CORS_ORIGINS: list[str] = []
if ALLOWED_ORIGINS_RAW:
    for _o in ALLOWED_ORIGINS_RAW.split(","):
        _o = _o.strip()
        if _o and _o not in _CORS_ORIGINS:
            _CORS_ORIGINS.append(_o)
if not _CORS_ORIGINS:
    _CORS_ORIGINS = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
    expose_headers=["X-Request-ID", "X-Limit-Capped", "ETag"],
    max_age=86400,
)

app.add_middleware(SecurityHeadersMiddleware, enable_hsts=(ENV == "prod"))
app.add_middleware(RequestIdMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=500)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

@app.exception_handler(InvalidParameterError)
async def _invalid_parameter_handler(request: Request, exc: InvalidParameterError) -> JSONResponse:
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(RateLimitExceeded)
async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "code": "RATE_LIMITED",
            "message": "Rate limit exceeded. Try again later.",
        },
        headers={"Retry-After": "60"},
    )


@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(json.dumps({
        "event": "unhandled_exception",
        "exception_type": type(exc).__name__,
        "request_id": request_id,
        "path": request.url.path,
    }))
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "code": "INTERNAL_ERROR",
            "message": "Internal server error.",
        },
    )


CatalogDep = Annotated[RegionCatalog, Depends(get_catalog)]


# ---------------------------------------------------------------------------
# Metadata & probes
# ---------------------------------------------------------------------------

@app.get("/")
@limiter.limit("60/minute")
async def root(request: Request) -> dict:
    """API metadata."""
    return {
        "name": "Cloud Region Catalog API",
        "version": API_VERSION,
        "endpoints": [
            "/api/v1/regions",
            "/api/v1/regions/nearest",
            "/api/v1/regions/compare",
            "/api/v1/regions/{id}",
            "/api/v1/services",
            "/api/v1/services/{serviceId}",
            "/api/v1/ping",
            "/api/v1/health",
        ],
    }


@app.get("/api/v1/ping")
async def ping(request: Request) -> JSONResponse:
    """Liveness probe. No catalog access, always 200."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "ok",
            "message": "API is working!",
            "timestamp": datetime.now(UTC).isoformat(),
            "environment": ENV,
        },
    )


@app.get("/api/v1/health")
@limiter.limit("60/minute")
async def health(request: Request, catalog: CatalogDep) -> JSONResponse:
    """Readiness probe with catalog statistics."""
    counts = catalog.count_by_provider()
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "version": API_VERSION,
            "timestamp": datetime.now(UTC).isoformat(),
            "environment": ENV,
            "stats": {
                "totalRegions": len(catalog),
                "awsRegions": counts["AWS"],
                "azureRegions": counts["Azure"],
            },
        },
    )


# ---------------------------------------------------------------------------
# Regions: static paths are registered before /regions/{region_id}
# ---------------------------------------------------------------------------

def _limit_headers(query: Any, path: str, request_id: str) -> dict[str, str]:
    if not query.limit_capped:
        return {}
    logger.info(json.dumps({
        "event": "limit_capped",
        "path": path,
        "requested": query.requested_limit,
        "applied": query.limit,
        "request_id": request_id,
    }))
    return {"X-Limit-Capped": str(query.requested_limit)}


@app.get("/api/v1/regions")
@limiter.limit("60/minute")
async def get_regions(request: Request, catalog: CatalogDep) -> JSONResponse:
    """Regions filtered by provider, country, service, tier, edition; optional limit."""
    query = parse_regions_query(request.query_params)
    request_id: str = getattr(request.state, "request_id", "unknown")
    return JSONResponse(
        status_code=200,
        content=list_regions(catalog, query),
        headers=_limit_headers(query, request.url.path, request_id),
    )


@app.get("/api/v1/regions/nearest")
@limiter.limit("60/minute")
async def nearest_regions(request: Request, catalog: CatalogDep) -> JSONResponse:
    """Closest regions to (lat, lng), nearest first.

    Optional filters: provider, service, and with service=vdc_vault also
    tier and edition. limit defaults to 5, is capped at 20, 0 = all.
    Distances are great-circle (haversine), in km and miles.
    """
    query = parse_nearest_query(request.query_params)
    request_id: str = getattr(request.state, "request_id", "unknown")
    return JSONResponse(
        status_code=200,
        content=find_nearest(catalog, query),
        headers=_limit_headers(query, request.url.path, request_id),
    )


@app.get("/api/v1/regions/compare")
@limiter.limit("60/minute")
async def compare(request: Request, catalog: CatalogDep) -> JSONResponse:
    """Service availability across 2-5 regions."""
    ids = parse_compare_ids(request.query_params)
    not_found = [rid for rid in ids if rid not in catalog]
    if not_found:
        return JSONResponse(
            status_code=404,
            content={
                "error": "Region not found",
                "code": REGION_NOT_FOUND,
                "message": f"The following region IDs were not found: {', '.join(not_found)}",
                "parameter": "ids",
                "value": request.query_params.get("ids"),
                "allowedValues": not_found,
            },
        )
    regions = [catalog.get(rid) for rid in ids]
    return JSONResponse(status_code=200, content=compare_regions(regions))


@app.get("/api/v1/regions/{region_id}")
@limiter.limit("120/minute")
async def get_region(region_id: str, request: Request, catalog: CatalogDep) -> JSONResponse:
    """One region by id."""
    region = catalog.get(region_id)
    if region is None:
        return JSONResponse(
            status_code=404,
            content={
                "error": "Region not found",
                "code": REGION_NOT_FOUND,
                "message": f"No region found with ID: {region_id}",
                "requestedId": region_id,
            },
        )
    return JSONResponse(status_code=200, content=region.to_dict())


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@app.get("/api/v1/services")
@limiter.limit("60/minute")
async def get_services(request: Request) -> dict:
    """Service metadata catalog."""
    services = list_services()
    return {"services": services, "count": len(services)}


@app.get("/api/v1/services/{service_id}")
@limiter.limit("60/minute")
async def get_service_detail(service_id: str, request: Request, catalog: CatalogDep) -> JSONResponse:
    """One service with its regions, provider breakdown and (vault) configuration breakdown."""
    detail = service_detail(catalog, service_id)
    if detail is None:
        return JSONResponse(
            status_code=404,
            content={
                "error": "Service not found",
                "code": SERVICE_NOT_FOUND,
                "message": f"Service with ID '{service_id}' does not exist",
                "parameter": "serviceId",
                "value": service_id,
                "allowedValues": list(SERVICE_IDS),
            },
        )
    return JSONResponse(status_code=200, content=detail)


# ---------------------------------------------------------------------------
# Entry point (development only)
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    try:
        import uvicorn
    except ImportError:
        print("Install uvicorn: pip install uvicorn", file=sys.stderr)
        sys.exit(1)

    os.environ.setdefault("ENV", "dev")
    print("Cloud Region Catalog API v1 — http://localhost:8000")
    uvicorn.run(app, host="0.0.0.0", port=8000)  # noqa: S104
