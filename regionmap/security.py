"""
regionmap.security — HTTP middleware for the region API.

Provides:
    - RequestIdMiddleware: X-Request-ID on every request/response + access log
    - SecurityHeadersMiddleware: hardening headers, X-API-Version, per-path Cache-Control
    - ETagMiddleware: weak ETag for 200 GET responses, 304 on If-None-Match

Registration order lives in region_api_v1. ETag is the innermost layer, so
a 304 still passes through CORS and the hardening headers on its way out.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import time
import uuid
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from regionmap.constants import API_VERSION

logger = logging.getLogger("regionmap.security")

# Liveness and health reflect the running process, not the catalog.
NO_STORE_PATHS = frozenset(("/api/v1/ping", "/api/v1/health"))

CATALOG_CACHE_CONTROL = "public, max-age=3600"

_HARDENING_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "X-API-Version": API_VERSION,
}

_HSTS_VALUE = "max-age=31536000; includeSubDomains"

# Caller-supplied request IDs are echoed into logs and headers.
_REQUEST_ID_RE = re.compile(r"[A-Za-z0-9._-]{1,64}")

# Headers a 304 carries over from the 200 it replaces (RFC 9110 §15.4.5).
_NOT_MODIFIED_KEEP = ("cache-control", "content-location", "date", "expires", "vary")


def cache_control_for(path: str) -> str | None:
    """Cache-Control for a path, or None to keep whatever the handler set."""
    if path in NO_STORE_PATHS:
        return "no-store"
    return None


# ---------------------------------------------------------------------------
# Request-ID middleware
# ---------------------------------------------------------------------------

class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID and write one access-log line for it.

    A well-formed X-Request-ID from the caller is reused so traces line up
    with an upstream proxy. Anything else gets a fresh 16-hex-char ID.
    """

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        supplied = request.headers.get("x-request-id", "")
        request_id = supplied if _REQUEST_ID_RE.fullmatch(supplied) else uuid.uuid4().hex[:16]
        request.state.request_id = request_id

        started = time.monotonic()
        response = await call_next(request)
        elapsed_ms = round((time.monotonic() - started) * 1000, 1)

        response.headers["X-Request-ID"] = request_id
        _log_request(request, response.status_code, elapsed_ms, request_id)
        return response


# ---------------------------------------------------------------------------
# Security headers middleware
# ---------------------------------------------------------------------------

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    The API serves JSON only, so every response gets a deny-all CSP and
    framing ban. HSTS is opt-in for deployments behind TLS termination.

    Region and service data only change on redeploy: those responses are
    publicly cacheable for an hour unless the handler chose otherwise.
    Probes are never cached.
    """

    def __init__(self, app: Any, *, enable_hsts: bool = False) -> None:
        super().__init__(app)
        self.enable_hsts = enable_hsts

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        response = await call_next(request)
        headers = response.headers

        for name, value in _HARDENING_HEADERS.items():
            headers[name] = value
        if self.enable_hsts:
            headers["Strict-Transport-Security"] = _HSTS_VALUE

        forced = cache_control_for(request.url.path)
        if forced is not None:
            headers["Cache-Control"] = forced
        elif "cache-control" not in headers:
            headers["Cache-Control"] = CATALOG_CACHE_CONTROL
        return response


# ---------------------------------------------------------------------------
# ETag / conditional-GET middleware
# ---------------------------------------------------------------------------

async def _drain(response: Response) -> bytes:
    chunks: list[bytes] = []
    async for chunk in response.body_iterator:  # type: ignore[attr-defined]
        chunks.append(chunk if isinstance(chunk, bytes) else chunk.encode())
    return b"".join(chunks)


def weak_etag(body: bytes) -> str:
    """Weak validator over the serialized body. MD5 is a fingerprint here."""
    return f'W/"{hashlib.md5(body, usedforsecurity=False).hexdigest()}"'  # noqa: S324


def etag_matches(if_none_match: str, etag: str) -> bool:
    """If-None-Match comparison: '*' or any listed tag, weakly compared."""
    candidates = {t.strip() for t in if_none_match.split(",") if t.strip()}
    if "*" in candidates:
        return True
    bare = etag.removeprefix("W/")
    return any(c.removeprefix("W/") == bare for c in candidates)


class ETagMiddleware(BaseHTTPMiddleware):
    """Conditional GET for catalog reads.

    Output is a pure function of the query and the loaded catalog, so
    identical bodies always get identical tags. Only 200 GET responses
    outside the probe paths are tagged.
    """

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        if request.method != "GET" or request.url.path in NO_STORE_PATHS:
            return await call_next(request)

        response = await call_next(request)
        if response.status_code != 200:
            return response

        body = await _drain(response)
        headers = {k: v for k, v in response.headers.items() if k != "content-length"}
        if not body:
            return Response(content=body, status_code=200, headers=headers, media_type=response.media_type)

        etag = weak_etag(body)
        if etag_matches(request.headers.get("if-none-match", ""), etag):
            kept = {k: v for k, v in headers.items() if k in _NOT_MODIFIED_KEEP}
            kept["ETag"] = etag
            return Response(status_code=304, headers=kept)

        headers["ETag"] = etag
        return Response(content=body, status_code=200, headers=headers, media_type=response.media_type)


# ---------------------------------------------------------------------------
# Access log
# ---------------------------------------------------------------------------

def _mask_ip(ip: str | None) -> str:
    """Client address with the host part dropped: a.b.*.* or four IPv6 groups."""
    if not ip:
        return "unknown"
    if ":" in ip:
        return ":".join(ip.split(":")[:4]) + "::*"
    octets = ip.split(".")
    if len(octets) != 4:
        return "unknown"
    return f"{octets[0]}.{octets[1]}.*.*"


def _log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def _log_request(
    request: Request,
    status_code: int,
    latency_ms: float,
    request_id: str,
) -> None:
    logger.log(_log_level(status_code), json.dumps({
        "event": "http_request",
        "method": request.method,
        "path": request.url.path,
        "query": str(request.query_params),
        "status": status_code,
        "latency_ms": latency_ms,
        "client_ip": _mask_ip(request.client.host if request.client else None),
        "request_id": request_id,
    }))
