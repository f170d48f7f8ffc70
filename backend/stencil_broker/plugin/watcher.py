"""Filesystem watcher that feeds change notifications to the build coordinator."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict

from watchdog.events import FileSystemEvent, PatternMatchingEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from stencil_broker.core.logging import get_logger

logger = get_logger(__name__)

FileEventCallback = Callable[[str, Path], None]


@dataclass
class WatchedSource:
    id: str
    path: Path
    include: list[str]
    exclude: list[str]
    callback: FileEventCallback


class SourceEventHandler(PatternMatchingEventHandler):
    """Forward file events under a source directory to its callback."""

    def __init__(self, source: WatchedSource) -> None:
        super().__init__(
            patterns=source.include or ["*"],
            ignore_patterns=source.exclude,
            ignore_directories=True,
            case_sensitive=False,
        )
        self.source = source

    def _dispatch(self, path: str | bytes) -> None:
        if isinstance(path, bytes):
            path = path.decode()
        self.source.callback(self.source.id, Path(path))

    def on_created(self, event: FileSystemEvent) -> None:
        self._dispatch(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._dispatch(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._dispatch(event.dest_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._dispatch(event.src_path)


class Watcher:
    """High-level wrapper around watchdog observers."""

    def __init__(self) -> None:
        self._observer: BaseObserver = Observer()
        self._lock = threading.Lock()
        self._sources: Dict[str, WatchedSource] = {}
        self._started = False

    @property
    def sources(self) -> list[str]:
        with self._lock:
            return list(self._sources)

    def add_source(
        self,
        source_id: str,
        path: Path,
        callback: FileEventCallback,
        include: list[str] | None = None,
        exclude: list[str] | None = None,
        recursive: bool = True,
    ) -> None:
        normalized_path = path.expanduser().resolve()
        watched = WatchedSource(
            id=source_id,
            path=normalized_path,
            include=include or ["*"],
            exclude=exclude or [],
            callback=callback,
        )
        handler = SourceEventHandler(watched)
        with self._lock:
            self._observer.schedule(event_handler=handler, path=str(normalized_path), recursive=recursive)
            self._sources[source_id] = watched
        logger.info("Watching %s for changes", normalized_path)

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            self._observer.start()
            self._started = True

    def stop(self) -> None:
        with self._lock:
            if not self._started:
                return
            self._observer.stop()
            self._observer.join(timeout=5)
            self._started = False

    def close(self) -> None:
        self.stop()
        with self._lock:
            self._observer.unschedule_all()
            self._sources.clear()


def watch_patterns(extensions: list[str]) -> list[str]:
    return [f"*{extension}" for extension in extensions]


__all__ = ["FileEventCallback", "SourceEventHandler", "Watcher", "watch_patterns"]
