"""Tests for the watchdog bridge."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from watchdog.events import FileModifiedEvent, FileMovedEvent

from stencil_broker.plugin.pipeline import StencilPipeline
from stencil_broker.plugin.watcher import SourceEventHandler, WatchedSource, Watcher, watch_patterns


def test_handler_forwards_events(tmp_path: Path) -> None:
    seen: list[tuple[str, Path]] = []
    source = WatchedSource(
        id="src",
        path=tmp_path,
        include=watch_patterns([".tsx", ".css"]),
        exclude=[],
        callback=lambda source_id, path: seen.append((source_id, path)),
    )
    handler = SourceEventHandler(source)

    handler.dispatch(FileModifiedEvent(str(tmp_path / "a.tsx")))
    handler.dispatch(FileModifiedEvent(str(tmp_path / "notes.md")))
    handler.dispatch(FileMovedEvent(str(tmp_path / "b.tmp"), str(tmp_path / "b.css")))

    assert seen == [("src", tmp_path / "a.tsx"), ("src", tmp_path / "b.css")]


def test_watcher_lifecycle(tmp_path: Path) -> None:
    watcher = Watcher()
    watcher.add_source("src", tmp_path, lambda source_id, path: None)
    assert watcher.sources == ["src"]
    watcher.start()
    watcher.start()
    watcher.close()
    assert watcher.sources == []


@pytest.mark.asyncio
async def test_change_callback_queues_build(settings, compiler_factory, fake_compiler) -> None:
    pipeline = StencilPipeline(settings, compiler_factory=compiler_factory)
    await pipeline.build_start()

    callback = pipeline.change_callback(asyncio.get_running_loop())
    await asyncio.to_thread(callback, "src", settings.src_dir / "a.tsx")
    await asyncio.sleep(0)

    await pipeline.session.coordinator.wait_idle()
    assert fake_compiler.builds == 1
    await pipeline.close()
