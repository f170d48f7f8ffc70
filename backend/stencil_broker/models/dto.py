"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TransformRequest(BaseModel):
    id: str = Field(description="Module id as seen by the host bundler")
    code: str = Field(description="Source text of the unit")


class TransformResponse(BaseModel):
    skipped: bool
    code: str | None = None
    artifact_path: str | None = None
    tag: str | None = None
    generation: int | None = None


class IncludeRequest(BaseModel):
    id: str


class IncludeResponse(BaseModel):
    include: bool


class ResolveRequest(BaseModel):
    id: str
    importer: str | None = None


class ResolveResponse(BaseModel):
    resolved: bool
    path: str | None = None


class BuildResponse(BaseModel):
    generation: int


class StatusResponse(BaseModel):
    started: bool
    config_path: str | None = None
    output_dir: str | None = None
    state: str | None = None
    requested_generation: int = 0
    completed_generation: int = 0
    succeeded_generation: int = 0
    last_error: str | None = None
    cached_artifacts: int = 0


class ErrorResponse(BaseModel):
    code: str
    detail: str
    diagnostics: list[str] | None = None


__all__ = [
    "BuildResponse",
    "ErrorResponse",
    "IncludeRequest",
    "IncludeResponse",
    "ResolveRequest",
    "ResolveResponse",
    "StatusResponse",
    "TransformRequest",
    "TransformResponse",
]
