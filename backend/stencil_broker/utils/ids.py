"""ID helpers."""

from __future__ import annotations

import uuid


def new_id(prefix: str | None = None, length: int = 12) -> str:
    """Return a short random hex id, e.g. ``build_3f9c0a1b2d4e``."""
    base = uuid.uuid4().hex[:length]
    return f"{prefix}_{base}" if prefix else base
