"""Per-source cache of transformed artifacts."""

from __future__ import annotations

from stencil_broker.build.types import ArtifactRecord
from stencil_broker.core.errors import BuildFailure
from stencil_broker.core.logging import get_logger

logger = get_logger(__name__)


class ArtifactCache:
    """Transformed artifacts keyed by source path.

    A single build may rewrite any number of emitted files, so every
    completed build clears the whole cache; there is no per-key eviction.
    """

    def __init__(self) -> None:
        self._records: dict[str, ArtifactRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def get(self, source_path: str) -> ArtifactRecord | None:
        return self._records.get(source_path)

    def put(self, record: ArtifactRecord, current_generation: int) -> bool:
        # A build may have completed while the artifact was being read.
        if record.generation != current_generation:
            return False
        self._records[record.source_path] = record
        return True

    def invalidate_all(self) -> None:
        if self._records:
            logger.debug("Dropping %s cached artifacts", len(self._records))
        self._records.clear()

    def on_build_complete(self, generation: int, error: BuildFailure | None) -> None:
        self.invalidate_all()


__all__ = ["ArtifactCache"]
