"""Tests for Stencil config location and synthesis."""

from __future__ import annotations

from pathlib import Path

import pytest

from stencil_broker.compiler.config_file import STENCIL_BUILD_DIR, ensure_config_file, render_stencil_config
from stencil_broker.core.config import Settings
from stencil_broker.core.errors import ConfigurationError


def test_synthesizes_config_when_project_has_none(settings: Settings) -> None:
    path = ensure_config_file(settings)
    assert path == settings.root_path / STENCIL_BUILD_DIR / "playground.stencil.config.ts"
    text = path.read_text(encoding="utf-8")
    assert text.startswith("import type { Config } from '@stencil/core'\n")
    assert "export const config: Config = {" in text
    assert '"namespace": "playground"' in text
    assert '"dist-custom-elements"' in text


def test_prefers_project_config(settings: Settings) -> None:
    existing = settings.root_path / "stencil.config.ts"
    existing.write_text("export const config = {};\n", encoding="utf-8")
    assert ensure_config_file(settings) == existing
    assert not (settings.root_path / STENCIL_BUILD_DIR).exists()


def test_explicit_config_must_exist(project_root: Path) -> None:
    settings = Settings(root_path=project_root, config_path="stencil.prod.ts")
    with pytest.raises(ConfigurationError):
        ensure_config_file(settings)

    (project_root / "stencil.prod.ts").write_text("export const config = {};\n", encoding="utf-8")
    assert ensure_config_file(settings) == project_root.resolve() / "stencil.prod.ts"


def test_missing_root_is_a_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        ensure_config_file(Settings(root_path=tmp_path / "nope"))


def test_overrides_merge_into_rendered_config(project_root: Path) -> None:
    settings = Settings(root_path=project_root, namespace="widgets", stencil_config={"watch": True, "hashFileNames": False})
    text = render_stencil_config(settings)
    assert '"namespace": "widgets"' in text
    assert '"watch": true' in text
    assert '"hashFileNames": false' in text
