"""Tests for the freshness oracle."""

from __future__ import annotations

import pytest

from stencil_broker.build import FreshnessOracle
from stencil_broker.compiler.base import FileStat
from stencil_broker.core.errors import TransientIOError


class FlakyStat:
    async def stat(self, path: str) -> FileStat:
        raise TransientIOError(f"stat failed for {path}")


@pytest.mark.asyncio
async def test_artifact_newer_than_source_is_fresh(fake_compiler) -> None:
    fake_compiler.write("/src/a.tsx", mtime=10)
    fake_compiler.write("/out/a.js", mtime=20)
    assert await FreshnessOracle(fake_compiler).is_fresh("/src/a.tsx", "/out/a.js")


@pytest.mark.asyncio
async def test_equal_timestamps_are_fresh(fake_compiler) -> None:
    fake_compiler.write("/src/a.tsx", mtime=10)
    fake_compiler.write("/out/a.js", mtime=10)
    assert await FreshnessOracle(fake_compiler).is_fresh("/src/a.tsx", "/out/a.js")


@pytest.mark.asyncio
async def test_artifact_older_than_source_is_stale(fake_compiler) -> None:
    fake_compiler.write("/src/a.tsx", mtime=20)
    fake_compiler.write("/out/a.js", mtime=10)
    assert not await FreshnessOracle(fake_compiler).is_fresh("/src/a.tsx", "/out/a.js")


@pytest.mark.asyncio
async def test_missing_artifact_is_stale(fake_compiler) -> None:
    fake_compiler.write("/src/a.tsx", mtime=10)
    assert not await FreshnessOracle(fake_compiler).is_fresh("/src/a.tsx", "/out/a.js")


@pytest.mark.asyncio
async def test_unset_timestamp_is_stale(fake_compiler) -> None:
    fake_compiler.write("/src/a.tsx", mtime=0)
    fake_compiler.write("/out/a.js", mtime=10)
    assert not await FreshnessOracle(fake_compiler).is_fresh("/src/a.tsx", "/out/a.js")


@pytest.mark.asyncio
async def test_stat_errors_report_stale() -> None:
    assert not await FreshnessOracle(FlakyStat()).is_fresh("/src/a.tsx", "/out/a.js")
