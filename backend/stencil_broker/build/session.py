"""Explicit owner of the compiler and everything that shares it."""

from __future__ import annotations

from pathlib import Path

from stencil_broker.build.cache import ArtifactCache
from stencil_broker.build.coordinator import BuildCoordinator
from stencil_broker.build.freshness import FreshnessOracle
from stencil_broker.build.locator import ArtifactLocator
from stencil_broker.compiler.base import Compiler
from stencil_broker.core.logging import get_logger
from stencil_broker.transform.artifact import ArtifactTransformer

logger = get_logger(__name__)


class CompilerSession:
    """One compiler instance plus its coordinator, cache and helpers.

    Everything that touches build state receives the session by reference;
    there are no module-level compiler globals.
    """

    def __init__(
        self,
        compiler: Compiler,
        output_dir: Path,
        artifact_extension: str = ".js",
        cache_artifacts: bool = True,
    ) -> None:
        self.compiler = compiler
        self.output_dir = output_dir
        self.coordinator = BuildCoordinator(compiler)
        self.oracle = FreshnessOracle(compiler)
        self.locator = ArtifactLocator(extension=artifact_extension)
        self.transformer = ArtifactTransformer()
        self.cache: ArtifactCache | None = ArtifactCache() if cache_artifacts else None
        if self.cache is not None:
            self.coordinator.add_listener(self.cache.on_build_complete)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self, abort_in_flight: bool = False) -> None:
        """Release the compiler once no build is running.

        By default an in-flight build runs to completion first. With
        ``abort_in_flight`` the compiler is destroyed straight away, which
        makes the running build finish as a failure that waiters observe.
        """
        if self._closed:
            return
        self._closed = True
        if abort_in_flight:
            await self.compiler.destroy()
        elif not self.coordinator.is_idle:
            logger.info("Waiting for in-flight build before shutting down")
        await self.coordinator.wait_idle()
        await self.compiler.destroy()
        if self.cache is not None:
            self.cache.invalidate_all()
        logger.info("Compiler session closed")


__all__ = ["CompilerSession"]
