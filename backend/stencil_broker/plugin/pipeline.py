"""Host pipeline hooks: include filter, transform, resolve and lifecycle."""

from __future__ import annotations

import asyncio
from pathlib import Path, PurePath
from typing import Any, Callable

from stencil_broker.build.session import CompilerSession
from stencil_broker.build.types import ArtifactRecord, CompilationUnit, TransformResult
from stencil_broker.compiler.base import Compiler
from stencil_broker.compiler.config_file import ensure_config_file
from stencil_broker.compiler.stencil import StencilCompiler
from stencil_broker.core.config import Settings
from stencil_broker.core.errors import ArtifactNotFoundError, BuildFailure, ConfigurationError
from stencil_broker.core.logging import get_logger, log_context
from stencil_broker.core.metrics import TRANSFORM_COUNT
from stencil_broker.plugin.watcher import FileEventCallback, Watcher, watch_patterns
from stencil_broker.transform.artifact import resolve_specifier
from stencil_broker.transform.imports import find_static_imports
from stencil_broker.utils.time import now_ms

logger = get_logger(__name__)

STENCIL_IMPORT = "@stencil/core"

CompilerFactory = Callable[[Settings, Path], Compiler]


class StencilPipeline:
    """Answer "give me the compiled artifact for this unit" for a host bundler."""

    def __init__(
        self,
        settings: Settings,
        compiler_factory: CompilerFactory = StencilCompiler.from_settings,
    ) -> None:
        self.settings = settings
        self.compiler_factory = compiler_factory
        self.session: CompilerSession | None = None
        self.config_path: Path | None = None
        self._start_lock = asyncio.Lock()
        self._artifact_paths: dict[str, str] = {}

    async def build_start(self) -> CompilerSession:
        async with self._start_lock:
            if self.session is not None and not self.session.closed:
                return self.session
            try:
                config_path = await asyncio.to_thread(ensure_config_file, self.settings)
                compiler = self.compiler_factory(self.settings, config_path)
            except ConfigurationError:
                logger.exception("Stencil configuration failed")
                raise
            except Exception as exc:
                logger.exception("Could not create compiler: %s", exc)
                raise ConfigurationError(f"Could not create compiler: {exc}") from exc
            self.config_path = config_path
            self.session = CompilerSession(
                compiler,
                output_dir=Path(self.settings.output_dir or self.settings.root_path),
                artifact_extension=self.settings.artifact_extension,
                cache_artifacts=self.settings.cache_artifacts,
            )
            logger.info("Compiler session started with %s", config_path)
            return self.session

    def transform_include(self, unit_id: str) -> bool:
        suffix = PurePath(_strip_query(unit_id)).suffix.lower()
        return suffix in self.settings.source_extensions or suffix in self.settings.style_extensions

    def is_style_unit(self, unit_id: str) -> bool:
        return PurePath(_strip_query(unit_id)).suffix.lower() in self.settings.style_extensions

    async def transform(self, code: str, unit_id: str) -> TransformResult | None:
        if not self.transform_include(unit_id):
            return None
        session = self._require_session()
        if not is_stencil_component(code):
            if self.is_style_unit(unit_id):
                TRANSFORM_COUNT.labels(outcome="style").inc()
                return TransformResult(code=code, unit_id=unit_id)
            TRANSFORM_COUNT.labels(outcome="skipped").inc()
            return None

        tag = session.locator.resolve_tag(code)
        if tag is None:
            logger.debug("No component tag declared in %s", unit_id)
            TRANSFORM_COUNT.labels(outcome="skipped").inc()
            return None

        unit = CompilationUnit(path=_strip_query(unit_id), tag=tag)
        artifact_path = session.locator.artifact_path_for(session.output_dir, tag)
        coordinator = session.coordinator
        if await session.oracle.is_fresh(unit.path, artifact_path):
            if not coordinator.is_idle:
                # The artifact may be rewritten mid-read by the running build.
                try:
                    await coordinator.await_generation(coordinator.requested_generation)
                except BuildFailure as exc:
                    logger.info(
                        "Serving fresh %s after unrelated build failure: %s",
                        unit.path,
                        exc.message,
                        extra=log_context(generation=exc.generation, tag=tag),
                    )
        else:
            generation = coordinator.request_build()
            logger.info(
                "%s is stale, waiting for generation %s",
                unit.path,
                generation,
                extra=log_context(generation=generation, tag=tag),
            )
            await coordinator.await_generation(generation)

        record = await self._load_artifact(session, unit.path, tag, artifact_path)
        self._artifact_paths[unit.path] = artifact_path
        return TransformResult(
            code=record.code,
            unit_id=unit_id,
            artifact_path=artifact_path,
            tag=tag,
            generation=record.generation,
        )

    async def resolve_id(self, ref_id: str, importer: str | None = None) -> str | None:
        session = self._require_session()
        output_dir = _posix(str(session.output_dir))
        ref_path = _strip_query(ref_id)
        candidate: str | None = None
        if ref_path.startswith(("./", "../")) and importer:
            importer_path = _strip_query(importer)
            base = self._artifact_paths.get(importer_path)
            if base is None and _is_within(importer_path, output_dir):
                base = importer_path
            if base is not None:
                candidate = resolve_specifier(ref_path, base)
        elif _is_within(ref_path, output_dir):
            candidate = _posix(ref_path)
        if candidate is None:
            return None
        return candidate if await session.compiler.access(candidate) else None

    def notify_change(self, path: str | Path) -> int | None:
        """Queue a coalesced rebuild for a changed source or style file."""
        if self.session is None or self.session.closed:
            return None
        if not self.transform_include(str(path)):
            return None
        generation = self.session.coordinator.request_build()
        logger.info("Change in %s queued generation %s", path, generation, extra=log_context(generation=generation))
        return generation

    def change_callback(self, loop: asyncio.AbstractEventLoop) -> FileEventCallback:
        """Adapt :meth:`notify_change` for watchdog's observer thread."""

        def _on_change(source_id: str, path: Path) -> None:
            loop.call_soon_threadsafe(self.notify_change, path)

        return _on_change

    def start_watcher(self, loop: asyncio.AbstractEventLoop) -> Watcher:
        """Watch the source directory and turn every change into a rebuild request."""
        extensions = [*self.settings.source_extensions, *self.settings.style_extensions]
        watcher = Watcher()
        watcher.add_source(
            "src",
            Path(self.settings.src_dir),
            self.change_callback(loop),
            include=watch_patterns(extensions),
        )
        watcher.start()
        return watcher

    async def request_rebuild(self) -> int:
        session = self._require_session()
        return await session.coordinator.build_and_wait()

    def status(self) -> dict[str, Any]:
        if self.session is None:
            return {"started": False}
        coordinator = self.session.coordinator
        last_error = coordinator.last_error
        return {
            "started": not self.session.closed,
            "config_path": str(self.config_path) if self.config_path else None,
            "output_dir": str(self.session.output_dir),
            "state": coordinator.state.value,
            "requested_generation": coordinator.requested_generation,
            "completed_generation": coordinator.completed_generation,
            "succeeded_generation": coordinator.succeeded_generation,
            "last_error": str(last_error) if last_error else None,
            "cached_artifacts": len(self.session.cache) if self.session.cache is not None else 0,
        }

    async def close(self, abort_in_flight: bool = False) -> None:
        if self.session is not None:
            await self.session.close(abort_in_flight=abort_in_flight)

    # Internal helpers -------------------------------------------------

    def _require_session(self) -> CompilerSession:
        if self.session is None or self.session.closed:
            raise ConfigurationError("Pipeline has not been started")
        return self.session

    async def _load_artifact(
        self,
        session: CompilerSession,
        source_path: str,
        tag: str,
        artifact_path: str,
    ) -> ArtifactRecord:
        coordinator = session.coordinator
        cache = session.cache
        if cache is not None:
            cached = cache.get(source_path)
            if cached is not None and cached.artifact_path == artifact_path:
                TRANSFORM_COUNT.labels(outcome="cached").inc()
                return cached

        # Stamped with the last successful build; failed builds produce nothing.
        completed = coordinator.completed_generation
        generation = coordinator.succeeded_generation
        if not await session.compiler.access(artifact_path):
            TRANSFORM_COUNT.labels(outcome="missing").inc()
            raise ArtifactNotFoundError(tag, artifact_path)
        try:
            raw = await session.compiler.read_file(artifact_path)
        except FileNotFoundError as exc:
            TRANSFORM_COUNT.labels(outcome="missing").inc()
            raise ArtifactNotFoundError(tag, artifact_path) from exc

        record = ArtifactRecord(
            source_path=source_path,
            artifact_path=artifact_path,
            generation=generation,
            code=session.transformer.transform(raw, artifact_path, expect_component=True),
            tag=tag,
            produced_at=now_ms(),
        )
        if cache is not None and coordinator.completed_generation == completed:
            cache.put(record, coordinator.succeeded_generation)
        TRANSFORM_COUNT.labels(outcome="transformed").inc()
        return record


def is_stencil_component(code: str) -> bool:
    return any(
        reference.specifier == STENCIL_IMPORT and "Component" in reference.named_imports
        for reference in find_static_imports(code)
    )


def _strip_query(unit_id: str) -> str:
    return unit_id.split("?", 1)[0]


def _posix(path: str) -> str:
    return path.replace("\\", "/")


def _is_within(path: str, directory: str) -> bool:
    return _posix(path).startswith(directory.rstrip("/") + "/")


__all__ = ["StencilPipeline", "is_stencil_component"]
