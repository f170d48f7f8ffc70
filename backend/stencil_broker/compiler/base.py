"""Contract of the compiler collaborator driven by the build coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(slots=True)
class FileStat:
    path: str
    mtime: float


@dataclass(slots=True)
class BuildResult:
    """Outcome of one compiler build.

    Attributes:
        success: Whether the compiler reported a clean build.
        exit_code: Process exit code, or 0 for in-process compilers.
        duration_s: Wall time of the build in seconds.
        diagnostics: Error lines worth surfacing to callers.
        output: Raw compiler output.
    """

    success: bool
    exit_code: int = 0
    duration_s: float = 0.0
    diagnostics: list[str] = field(default_factory=list)
    output: str = ""


class Compiler(Protocol):
    """Expensive, non-reentrant build service plus a file-system facade."""

    async def build(self) -> BuildResult: ...

    async def stat(self, path: str) -> FileStat: ...

    async def read_file(self, path: str) -> str: ...

    async def access(self, path: str) -> bool: ...

    async def destroy(self) -> None: ...


__all__ = ["BuildResult", "Compiler", "FileStat"]
