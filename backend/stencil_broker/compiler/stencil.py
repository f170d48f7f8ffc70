"""Stencil CLI adapter.

Runs ``stencil build`` as a subprocess of the event loop and exposes the
file-system reads the broker needs. Reads go through worker threads so a
slow disk never stalls request handling.
"""

from __future__ import annotations

import asyncio
import os
import time
from pathlib import Path
from typing import Sequence

from stencil_broker.compiler.base import BuildResult, FileStat
from stencil_broker.core.config import Settings
from stencil_broker.core.errors import BuildFailure, TransientIOError
from stencil_broker.core.logging import get_logger

logger = get_logger(__name__)

_ERROR_MARKER = "[ ERROR ]"
_OUTPUT_TAIL_LINES = 20
_TERMINATE_GRACE_S = 5.0


class StencilCompiler:
    """Compiler collaborator backed by the Stencil command-line tool."""

    def __init__(self, root_path: Path, config_path: Path, command: Sequence[str]) -> None:
        self.root_path = root_path
        self.config_path = config_path
        self.command = list(command)
        self._process: asyncio.subprocess.Process | None = None
        self._destroyed = False

    @classmethod
    def from_settings(cls, settings: Settings, config_path: Path) -> "StencilCompiler":
        return cls(settings.root_path, config_path, settings.stencil_command)

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def compose_command(self) -> list[str]:
        return [*self.command, "--config", str(self.config_path)]

    async def build(self) -> BuildResult:
        if self._destroyed:
            raise BuildFailure("Compiler has been destroyed")
        cmd = self.compose_command()
        logger.debug("Running %s", " ".join(cmd))
        started = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(self.root_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            raise BuildFailure(f"Could not start {cmd[0]}: {exc}") from exc
        self._process = process
        try:
            stdout, _ = await process.communicate()
        finally:
            self._process = None
        output = stdout.decode("utf-8", errors="replace") if stdout else ""
        exit_code = process.returncode if process.returncode is not None else -1
        return BuildResult(
            success=exit_code == 0,
            exit_code=exit_code,
            duration_s=time.monotonic() - started,
            diagnostics=[] if exit_code == 0 else extract_diagnostics(output),
            output=output,
        )

    async def stat(self, path: str) -> FileStat:
        try:
            result = await asyncio.to_thread(os.stat, path)
        except OSError as exc:
            raise TransientIOError(f"stat failed for {path}: {exc}") from exc
        return FileStat(path=path, mtime=result.st_mtime)

    async def read_file(self, path: str) -> str:
        return await asyncio.to_thread(Path(path).read_text, encoding="utf-8")

    async def access(self, path: str) -> bool:
        return await asyncio.to_thread(os.access, path, os.R_OK)

    async def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        process = self._process
        if process is None or process.returncode is not None:
            return
        logger.info("Terminating running stencil build (pid %s)", process.pid)
        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=_TERMINATE_GRACE_S)
        except asyncio.TimeoutError:
            logger.warning("Stencil build ignored SIGTERM, killing pid %s", process.pid)
            process.kill()
            await process.wait()


def extract_diagnostics(output: str) -> list[str]:
    """Pick the tagged error lines out of compiler output, else its tail."""
    lines = [line.rstrip() for line in output.splitlines() if line.strip()]
    tagged = [line for line in lines if _ERROR_MARKER in line]
    return tagged or lines[-_OUTPUT_TAIL_LINES:]


__all__ = ["StencilCompiler", "extract_diagnostics"]
