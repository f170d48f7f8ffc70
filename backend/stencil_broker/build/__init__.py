"""Build coordination components."""

from .cache import ArtifactCache
from .coordinator import BuildCoordinator
from .freshness import FreshnessOracle
from .locator import ArtifactLocator
from .session import CompilerSession
from .types import ArtifactRecord, BuildState, CompilationUnit, TransformResult

__all__ = [
    "ArtifactCache",
    "ArtifactLocator",
    "ArtifactRecord",
    "BuildCoordinator",
    "BuildState",
    "CompilationUnit",
    "CompilerSession",
    "FreshnessOracle",
    "TransformResult",
]
