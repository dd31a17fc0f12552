"""RFC3339 timestamp helpers for ingest payloads."""

import time
from datetime import datetime, timezone
from typing import Optional


def rfc3339_nano(ns: Optional[int] = None) -> str:
    """Format epoch nanoseconds as RFC3339 UTC with trailing zeros trimmed."""
    if ns is None:
        ns = time.time_ns()
    secs, nanos = divmod(ns, 1_000_000_000)
    base = datetime.fromtimestamp(secs, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    frac = f"{nanos:09d}".rstrip("0")
    if frac:
        return f"{base}.{frac}Z"
    return f"{base}Z"


def rfc3339(ts: Optional[float] = None) -> str:
    """Format epoch seconds as RFC3339 UTC with second precision."""
    if ts is None:
        ts = time.time()
    return datetime.fromtimestamp(int(ts), tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
