"""Tests for tag extraction and artifact paths."""

import os

import pytest

from stencil_broker.build import ArtifactLocator


@pytest.mark.parametrize(
    "source",
    [
        '@Component({ tag: "test" })',
        "@Component({ tag: 'test' })",
        "@Component({\n  tag:`test`,\n  styleUrl: 'test.css',\n})",
    ],
)
def test_resolve_tag_quote_styles(source: str) -> None:
    assert ArtifactLocator().resolve_tag(source) == "test"


def test_resolve_tag_ignores_fields_outside_decorator(component_source: str) -> None:
    source = "const tag = 'other';\n" + component_source
    assert ArtifactLocator().resolve_tag(source) == "my-component"


@pytest.mark.parametrize(
    "source",
    [
        "@Component({})",
        "@Component({ shadow: true })",
        "@Component({ tag: '' })",
        "export class Plain {}",
    ],
)
def test_resolve_tag_absent(source: str) -> None:
    assert ArtifactLocator().resolve_tag(source) is None


def test_artifact_path_for() -> None:
    locator = ArtifactLocator(extension=".mjs")
    assert locator.artifact_path_for("/out/components", "my-el") == os.path.join("/out/components", "my-el.mjs")
