"""Error taxonomy shared by the compiler bridge, the HTTP layer and the CLI."""

from __future__ import annotations

from typing import Sequence


class StencilBrokerError(Exception):
    """Base error carrying a machine-readable code."""

    code = "stencil_broker_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ConfigurationError(StencilBrokerError):
    """Compiler setup failed: no usable config, bad root, or pipeline not started."""

    code = "configuration_error"


class ArtifactNotFoundError(StencilBrokerError):
    """The artifact expected for a tag is missing after a build."""

    code = "artifact_not_found"

    def __init__(self, tag: str, path: str) -> None:
        super().__init__(f"No compiled artifact for <{tag}> at {path}")
        self.tag = tag
        self.path = path


class BuildFailure(StencilBrokerError):
    """The compiler rejected a build; shared by every waiter of that generation."""

    code = "build_failure"

    def __init__(self, message: str, generation: int = 0, diagnostics: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.generation = generation
        self.diagnostics = list(diagnostics)

    def for_waiter(self) -> "BuildFailure":
        """Return a fresh copy so each awaiting task gets its own traceback."""
        clone = BuildFailure(self.message, generation=self.generation, diagnostics=self.diagnostics)
        clone.__cause__ = self.__cause__
        return clone


class TransientIOError(StencilBrokerError, OSError):
    """A file-system read raced with the compiler; never crosses the core boundary."""

    code = "transient_io"


__all__ = [
    "StencilBrokerError",
    "ConfigurationError",
    "ArtifactNotFoundError",
    "BuildFailure",
    "TransientIOError",
]
