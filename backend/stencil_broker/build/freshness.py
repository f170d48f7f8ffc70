"""Timestamp comparison between a source file and its artifact."""

from __future__ import annotations

import asyncio
from typing import Protocol

from stencil_broker.compiler.base import FileStat
from stencil_broker.core.logging import get_logger

logger = get_logger(__name__)


class StatProvider(Protocol):
    async def stat(self, path: str) -> FileStat: ...


class FreshnessOracle:
    """Decide whether an artifact can be served without rebuilding.

    Fresh means both timestamps were read and the artifact is not older than
    its source. Read failures report stale and are never raised.
    """

    def __init__(self, fs: StatProvider) -> None:
        self.fs = fs

    async def is_fresh(self, source_path: str, artifact_path: str) -> bool:
        try:
            source, artifact = await asyncio.gather(
                self.fs.stat(source_path),
                self.fs.stat(artifact_path),
            )
        except OSError as exc:
            logger.debug("Treating %s as stale: %s", artifact_path, exc)
            return False
        if not source.mtime or not artifact.mtime:
            return False
        return artifact.mtime >= source.mtime


__all__ = ["FreshnessOracle", "StatProvider"]
