"""Common build data structures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BuildState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    BUILDING_WITH_PENDING = "building-with-pending"


@dataclass(slots=True)
class CompilationUnit:
    """One source file that may declare a component, recomputed per request."""

    path: str
    tag: str | None


@dataclass(slots=True)
class ArtifactRecord:
    """Transformed artifact as handed back to the host pipeline."""

    source_path: str
    artifact_path: str
    generation: int
    code: str
    tag: str | None = None
    produced_at: int | None = None


@dataclass(slots=True)
class TransformResult:
    """Outcome of a transform hook call."""

    code: str
    unit_id: str
    artifact_path: str | None = None
    tag: str | None = None
    generation: int | None = None


__all__ = ["ArtifactRecord", "BuildState", "CompilationUnit", "TransformResult"]
