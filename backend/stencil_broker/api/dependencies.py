"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from stencil_broker.core.config import Settings, get_settings
from stencil_broker.plugin.pipeline import StencilPipeline

_PIPELINE: StencilPipeline | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_pipeline() -> StencilPipeline:
    global _PIPELINE
    if _PIPELINE is None:
        _PIPELINE = StencilPipeline(settings=get_app_settings())
    return _PIPELINE


__all__ = ["get_app_settings", "get_pipeline"]
