#!/usr/bin/env python3
"""Upload demo script

Usage:
    # Terminal 1: Start the server
    STORAGE_PATH=/tmp/uploads python -m api.main

    # Terminal 2: Run demo
    python scripts/demo_upload.py

Environment variables:
    API_URL - Base URL for the API (default: http://localhost:8000)
    UPLOAD_ROUTE - Upload path (default: /upload)
"""

from __future__ import annotations

import hashlib
import os
import sys
from datetime import datetime, timezone

import httpx

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

API_URL = os.getenv("API_URL", "http://localhost:8000")
UPLOAD_ROUTE = os.getenv("UPLOAD_ROUTE", "/upload")

GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


def timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def log_info(msg: str) -> None:
    print(f"[{timestamp()}] {msg}")


def log_success(msg: str) -> None:
    print(f"[{timestamp()}] {GREEN}✓ {msg}{RESET}")


def log_fail(msg: str) -> None:
    print(f"[{timestamp()}] {RED}✗ {msg}{RESET}")


def upload(client: httpx.Client, filename: str, content: bytes) -> list[str]:
    resp = client.post(UPLOAD_ROUTE, files={"file": (filename, content, "text/plain")})
    resp.raise_for_status()
    return resp.json()["files"]


def main() -> int:
    content = b"hello, world\nthis is log test\n"
    expected = f"upload_{hashlib.sha256(content).hexdigest()}.txt"

    with httpx.Client(base_url=API_URL, timeout=30) as client:
        try:
            client.get("/health").raise_for_status()
        except httpx.HTTPError as exc:
            log_fail(f"API not reachable at {API_URL}: {exc}")
            return 1

        log_info("Allowed methods: " + client.options(UPLOAD_ROUTE).headers.get("allow", ""))

        first = upload(client, "test.txt", content)
        log_info(f"First upload stored as {first}")
        if not first or os.path.basename(first[0]) != expected:
            log_fail(f"Expected {expected}")
            return 1

        second = upload(client, "again.txt", content)
        if second != first:
            log_fail(f"Dedup mismatch: {second} != {first}")
            return 1
        log_success("Identical content deduplicated to one object")

    return 0


if __name__ == "__main__":
    sys.exit(main())
