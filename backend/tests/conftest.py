"""Test fixtures for stencil-broker."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Callable

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from stencil_broker.compiler.base import BuildResult, FileStat  # noqa: E402
from stencil_broker.core.config import Settings  # noqa: E402

COMPONENT_SOURCE = """import { Component, Prop, h } from '@stencil/core';

@Component({
  tag: 'my-component',
  styleUrl: 'my-component.css',
  shadow: true,
})
export class MyComponent {
  @Prop() first: string;

  render() {
    return <div>Hello, {this.first}</div>;
  }
}
"""

INLINE_ARTIFACT = """import { proxyCustomElement, HTMLElement, h } from '@stencil/core/internal/client';
import { f as format } from './utils.js';

const MyComponent$1 = /*@__PURE__*/ proxyCustomElement(class MyComponent extends HTMLElement {
    constructor() {
        super();
        this.__registerHost();
    }
    render() {
        return h("div", null, "Hello, ", format(this.first));
    }
}, [1, "my-component", { "first": [1] }]);
function defineCustomElement$1() {
    customElements.define("my-component", MyComponent$1);
}

const MyComponent = MyComponent$1;
const defineCustomElement = defineCustomElement$1;

export { MyComponent, defineCustomElement };
"""


class FakeCompiler:
    """In-memory compiler: a dict file system with a controllable clock.

    ``emit`` maps artifact paths to the text every successful build writes.
    ``gate`` (when set) holds builds until the test releases it, and
    ``failures`` makes the next builds fail, either by raising an exception
    instance or by returning an unsuccessful result.
    """

    def __init__(self) -> None:
        self.files: dict[str, tuple[float, str]] = {}
        self.emit: dict[str, str] = {}
        self.clock = 1000.0
        self.builds = 0
        self.destroyed = 0
        self.gate: asyncio.Event | None = None
        self.started: asyncio.Event | None = None
        self.failures: list[BaseException | BuildResult] = []

    def tick(self) -> float:
        self.clock += 1.0
        return self.clock

    def write(self, path: str, text: str = "", mtime: float | None = None) -> None:
        self.files[path] = (self.tick() if mtime is None else mtime, text)

    async def build(self) -> BuildResult:
        self.builds += 1
        if self.started is not None:
            self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            failure = self.failures.pop(0)
            if isinstance(failure, BuildResult):
                return failure
            raise failure
        for path, text in self.emit.items():
            self.write(path, text)
        return BuildResult(success=True, duration_s=0.01)

    async def stat(self, path: str) -> FileStat:
        if path not in self.files:
            raise FileNotFoundError(path)
        return FileStat(path=path, mtime=self.files[path][0])

    async def read_file(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path][1]

    async def access(self, path: str) -> bool:
        return path in self.files

    async def destroy(self) -> None:
        self.destroyed += 1


@pytest.fixture(autouse=True)
def reset_state(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.delenv("STENCIL_BROKER_CONFIG", raising=False)
    monkeypatch.delenv("STENCIL_BROKER_HOST", raising=False)

    from stencil_broker.api import dependencies as deps
    from stencil_broker.core.config import get_settings

    get_settings.cache_clear()
    deps.get_app_settings.cache_clear()
    deps._PIPELINE = None
    yield
    get_settings.cache_clear()
    deps.get_app_settings.cache_clear()
    deps._PIPELINE = None


@pytest.fixture
def fake_compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "playground"
    (root / "src" / "components").mkdir(parents=True)
    return root


@pytest.fixture
def settings(project_root: Path) -> Settings:
    return Settings(root_path=project_root, log_json=False)


@pytest.fixture
def compiler_factory(fake_compiler: FakeCompiler) -> Callable[[Settings, Path], FakeCompiler]:
    return lambda settings, config_path: fake_compiler


@pytest.fixture(scope="session")
def component_source() -> str:
    return COMPONENT_SOURCE


@pytest.fixture(scope="session")
def inline_artifact() -> str:
    return INLINE_ARTIFACT
