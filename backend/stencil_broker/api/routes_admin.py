"""Administrative routes for stencil-broker."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from stencil_broker.api.dependencies import get_pipeline
from stencil_broker.core.metrics import metrics_response
from stencil_broker.models.dto import BuildResponse, StatusResponse
from stencil_broker.plugin.pipeline import StencilPipeline

router = APIRouter()


@router.post("/build", response_model=BuildResponse, summary="Request a build and wait for it")
async def trigger_build(pipeline: StencilPipeline = Depends(get_pipeline)) -> BuildResponse:
    generation = await pipeline.request_rebuild()
    return BuildResponse(generation=generation)


@router.get("/status", response_model=StatusResponse, summary="Build coordinator state")
async def get_status(pipeline: StencilPipeline = Depends(get_pipeline)) -> StatusResponse:
    return StatusResponse(**pipeline.status())


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
