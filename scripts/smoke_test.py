#!/usr/bin/env python3
"""
smoke_test.py — Boot the region API locally and verify core endpoints.

Starts the server in a subprocess (uvicorn, or gunicorn with uvicorn
workers as deployed), waits for it to be ready, then calls the key
endpoints and checks status codes / response shapes.

Usage:
    python scripts/smoke_test.py
    python scripts/smoke_test.py --gunicorn

Requirements: httpx (test extra)
"""

import argparse
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

try:
    import httpx
except ImportError:
    print("FATAL: httpx not installed. pip install -e '.[test]'", file=sys.stderr)
    sys.exit(1)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
APP = "regionmap.region_api_v1:app"
PORT = "8099"
BASE_URL = f"http://127.0.0.1:{PORT}"
TIMEOUT = 10


def wait_for_server(url: str, max_wait: int = 10) -> bool:
    """Poll server until it responds or timeout."""
    deadline = time.monotonic() + max_wait
    while time.monotonic() < deadline:
        try:
            r = httpx.get(f"{url}/api/v1/ping", timeout=2)
            if r.status_code == 200:
                return True
        except httpx.ConnectError:
            pass
        time.sleep(0.3)
    return False


def _server_command(use_gunicorn: bool) -> list[str]:
    if use_gunicorn:
        return [
            sys.executable, "-m", "gunicorn", APP,
            "--worker-class", "uvicorn.workers.UvicornWorker",
            "--workers", "2",
            "--bind", f"127.0.0.1:{PORT}",
            "--log-level", "warning",
        ]
    return [
        sys.executable, "-m", "uvicorn", APP,
        "--host", "127.0.0.1",
        "--port", PORT,
        "--log-level", "warning",
    ]


def _check(label: str, ok: bool) -> int:
    print(f"  {label}  {'PASS' if ok else 'FAIL'}")
    return 0 if ok else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Region API smoke test.")
    parser.add_argument("--gunicorn", action="store_true", help="Serve through gunicorn.")
    args = parser.parse_args()

    print("=" * 64)
    print("Cloud Region Catalog API — Smoke Test")
    print("=" * 64)
    print()

    env = os.environ.copy()
    env["ENV"] = "dev"
    env.pop("REGIONS_FILE", None)

    proc = subprocess.Popen(
        _server_command(args.gunicorn),
        cwd=str(PROJECT_ROOT),
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )

    try:
        if not wait_for_server(BASE_URL):
            print("FATAL: Server did not start within 10s", file=sys.stderr)
            proc.terminate()
            proc.wait(5)
            sys.exit(1)

        print("  Server is up. Running checks...\n")
        failures = 0

        r = httpx.get(f"{BASE_URL}/api/v1/health", timeout=TIMEOUT)
        body = r.json()
        failures += _check(f"GET /api/v1/health → {r.status_code}", r.status_code == 200)
        for field in ("totalRegions", "awsRegions", "azureRegions"):
            if field not in body.get("stats", {}):
                print(f"    MISSING stats field: {field}")
                failures += 1

        r = httpx.get(
            f"{BASE_URL}/api/v1/regions/nearest",
            params={"lat": "38.9", "lng": "-77.0"},
            timeout=TIMEOUT,
        )
        ok = r.status_code == 200 and r.json()["count"] == 5
        failures += _check(f"GET /api/v1/regions/nearest (DC) → {r.status_code}", ok)
        if ok:
            first = r.json()["results"][0]
            print(f"    nearest: {first['region']['id']} ({first['distance']['km']} km)")

        r = httpx.get(
            f"{BASE_URL}/api/v1/regions/nearest",
            params={"lat": "0", "lng": "0", "tier": "Core"},
            timeout=TIMEOUT,
        )
        failures += _check(
            f"GET /api/v1/regions/nearest?tier=Core → {r.status_code} (expected 400)",
            r.status_code == 400 and r.json().get("parameter") == "tier",
        )

        r = httpx.get(f"{BASE_URL}/api/v1/regions/aws-mars-1", timeout=TIMEOUT)
        failures += _check(f"GET /api/v1/regions/aws-mars-1 → {r.status_code}", r.status_code == 404)

        r = httpx.get(f"{BASE_URL}/api/v1/services", timeout=TIMEOUT)
        failures += _check(f"GET /api/v1/services → {r.status_code}", r.status_code == 200)

        for header in ("x-content-type-options", "x-frame-options", "x-api-version", "x-request-id"):
            if header not in r.headers:
                print(f"    MISSING header: {header}")
                failures += 1
            else:
                print(f"    {header}: {r.headers[header]}")

        r = httpx.get(f"{BASE_URL}/docs", timeout=TIMEOUT, follow_redirects=True)
        print(f"  GET /docs → {r.status_code}  (dev mode, expected 200)")

        print()
        if failures > 0:
            print(f"RESULT: {failures} failure(s)")
            sys.exit(1)
        else:
            print("RESULT: ALL PASSED")

    finally:
        proc.send_signal(signal.SIGTERM)
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()


if __name__ == "__main__":
    main()
