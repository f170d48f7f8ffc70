"""Single-flight, coalescing scheduler around the compiler's ``build()``."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Protocol

from stencil_broker.build.types import BuildState
from stencil_broker.compiler.base import BuildResult
from stencil_broker.core.errors import BuildFailure
from stencil_broker.core.logging import get_logger, log_context
from stencil_broker.core.metrics import BUILD_COUNT, BUILD_DURATION, GENERATION
from stencil_broker.utils.ids import new_id

logger = get_logger(__name__)

CompletionListener = Callable[[int, BuildFailure | None], None]


class Builder(Protocol):
    async def build(self) -> BuildResult: ...


class BuildCoordinator:
    """Serialize builds while coalescing concurrent demand.

    Every call to :meth:`request_build` hands out a new generation number.
    A build cycle covers all generations requested before it started, so at
    most one build runs at a time and any number of requests that arrive
    during a build are satisfied by a single catch-up build.

    Waiters are futures resolved when a covering build finishes; failures
    are published to them instead of leaving the state machine stuck.
    """

    def __init__(self, compiler: Builder) -> None:
        self.compiler = compiler
        self._state = BuildState.IDLE
        self._requested = 0
        self._completed = 0
        self._succeeded = 0
        self._last_error: BuildFailure | None = None
        self._waiters: list[tuple[int, asyncio.Future[int]]] = []
        self._listeners: list[CompletionListener] = []
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return self._state is BuildState.IDLE

    @property
    def requested_generation(self) -> int:
        return self._requested

    @property
    def completed_generation(self) -> int:
        return self._completed

    @property
    def succeeded_generation(self) -> int:
        return self._succeeded

    @property
    def last_error(self) -> BuildFailure | None:
        return self._last_error

    def add_listener(self, listener: CompletionListener) -> None:
        self._listeners.append(listener)

    def request_build(self) -> int:
        """Ask for a build and return the generation the caller must await."""
        self._requested += 1
        generation = self._requested
        if self._state is BuildState.IDLE:
            self._state = BuildState.BUILDING
            self._task = asyncio.get_running_loop().create_task(self._run(), name="stencil-build")
        elif self._state is BuildState.BUILDING:
            self._state = BuildState.BUILDING_WITH_PENDING
        logger.debug(
            "Build requested (generation %s, state %s)",
            generation,
            self._state.value,
            extra=log_context(generation=generation),
        )
        return generation

    async def await_generation(self, generation: int) -> int:
        """Wait until a build covering ``generation`` finished; return its generation."""
        if generation > self._requested:
            raise ValueError(f"Generation {generation} was never requested (latest {self._requested})")
        if generation <= self._succeeded:
            return self._succeeded
        if generation <= self._completed and self._last_error is not None:
            raise self._last_error.for_waiter()
        future: asyncio.Future[int] = asyncio.get_running_loop().create_future()
        self._waiters.append((generation, future))
        return await future

    async def build_and_wait(self) -> int:
        return await self.await_generation(self.request_build())

    async def wait_idle(self) -> None:
        """Let an in-flight build (and its catch-up builds) run to completion."""
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    # Internal helpers -------------------------------------------------

    async def _run(self) -> None:
        try:
            while True:
                # Requests made before the compiler is actually invoked are
                # covered by this cycle, not by a catch-up build.
                self._state = BuildState.BUILDING
                target = self._requested
                error = await self._build_once(target)
                self._publish(target, error)
                if self._state is BuildState.BUILDING_WITH_PENDING:
                    continue
                self._state = BuildState.IDLE
                return
        except asyncio.CancelledError:
            error = BuildFailure("Build cancelled", generation=self._requested)
            self._state = BuildState.IDLE
            self._completed = self._requested
            self._last_error = error
            self._fail_waiters(error)
            raise

    async def _build_once(self, target: int) -> BuildFailure | None:
        build_id = new_id("build")
        extra = log_context(build_id=build_id, generation=target)
        logger.info("Build %s started for generation %s", build_id, target, extra=extra)
        started = time.monotonic()
        error: BuildFailure | None = None
        try:
            result = await self.compiler.build()
        except BuildFailure as exc:
            exc.generation = target
            error = exc
        except Exception as exc:
            logger.exception("Build %s raised: %s", build_id, exc, extra=extra)
            error = BuildFailure(f"Build failed: {exc}", generation=target)
            error.__cause__ = exc
        else:
            if not result.success:
                error = BuildFailure(
                    f"Build exited with code {result.exit_code}",
                    generation=target,
                    diagnostics=result.diagnostics,
                )
        duration = time.monotonic() - started
        BUILD_DURATION.observe(duration)
        BUILD_COUNT.labels(status="failed" if error else "succeeded").inc()
        if error is None:
            logger.info("Build %s finished in %.2fs", build_id, duration, extra=extra)
        else:
            logger.error("Build %s failed in %.2fs: %s", build_id, duration, error, extra=extra)
        return error

    def _publish(self, target: int, error: BuildFailure | None) -> None:
        self._completed = target
        if error is None:
            self._succeeded = target
            self._last_error = None
        else:
            self._last_error = error
        GENERATION.set(target)

        remaining: list[tuple[int, asyncio.Future[int]]] = []
        for generation, future in self._waiters:
            if generation > target:
                remaining.append((generation, future))
            elif not future.done():
                if error is None:
                    future.set_result(target)
                else:
                    future.set_exception(error.for_waiter())
        self._waiters = remaining

        for listener in list(self._listeners):
            try:
                listener(target, error)
            except Exception:
                logger.exception("Build completion listener failed")

    def _fail_waiters(self, error: BuildFailure) -> None:
        waiters, self._waiters = self._waiters, []
        for _, future in waiters:
            if not future.done():
                future.set_exception(error.for_waiter())


__all__ = ["BuildCoordinator", "Builder", "CompletionListener"]
