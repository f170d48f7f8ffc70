"""Time helpers."""

from __future__ import annotations

import time


def now_ms() -> int:
    """Return current wall-clock timestamp in milliseconds."""
    return time.time_ns() // 1_000_000
