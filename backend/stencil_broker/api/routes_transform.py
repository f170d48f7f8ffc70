"""Transform and resolve routes called by the host bundler."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from stencil_broker.api.dependencies import get_pipeline
from stencil_broker.models.dto import (
    IncludeRequest,
    IncludeResponse,
    ResolveRequest,
    ResolveResponse,
    TransformRequest,
    TransformResponse,
)
from stencil_broker.plugin.pipeline import StencilPipeline

router = APIRouter()


@router.post("/transform", response_model=TransformResponse, summary="Return the compiled artifact for a unit")
async def transform_unit(
    request: TransformRequest,
    pipeline: StencilPipeline = Depends(get_pipeline),
) -> TransformResponse:
    result = await pipeline.transform(request.code, request.id)
    if result is None:
        return TransformResponse(skipped=True)
    return TransformResponse(
        skipped=False,
        code=result.code,
        artifact_path=result.artifact_path,
        tag=result.tag,
        generation=result.generation,
    )


@router.post("/transform/include", response_model=IncludeResponse, summary="Whether a unit id is handled")
async def transform_include(
    request: IncludeRequest,
    pipeline: StencilPipeline = Depends(get_pipeline),
) -> IncludeResponse:
    return IncludeResponse(include=pipeline.transform_include(request.id))


@router.post("/resolve", response_model=ResolveResponse, summary="Resolve a reference into the artifact directory")
async def resolve_reference(
    request: ResolveRequest,
    pipeline: StencilPipeline = Depends(get_pipeline),
) -> ResolveResponse:
    path = await pipeline.resolve_id(request.id, request.importer)
    return ResolveResponse(resolved=path is not None, path=path)


__all__ = ["router"]
