"""Locate or synthesize the Stencil config the compiler is started with."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

from stencil_broker.core.config import Settings
from stencil_broker.core.errors import ConfigurationError
from stencil_broker.core.logging import get_logger

logger = get_logger(__name__)

STENCIL_BUILD_DIR = ".stencil"
STENCIL_CONFIG_NAME = "stencil.config.ts"
DEFAULT_STENCIL_CONFIG: dict[str, Any] = {
    "watch": False,
    "outputTargets": [
        {
            "type": "dist-custom-elements",
            "externalRuntime": True,
            "customElementsExportBehavior": "auto-define-custom-elements",
        }
    ],
}


def get_root_dir(settings: Settings) -> Path:
    return settings.root_path or Path.cwd()


def locate_config_file(settings: Settings) -> Path | None:
    """Return an existing config: the explicit one, else the project default."""
    if settings.config_path is not None:
        if not settings.config_path.is_file():
            raise ConfigurationError(f"Stencil config not found: {settings.config_path}")
        return settings.config_path
    candidate = get_root_dir(settings) / STENCIL_CONFIG_NAME
    return candidate if candidate.is_file() else None


def render_stencil_config(settings: Settings) -> str:
    root = get_root_dir(settings)
    config: dict[str, Any] = {
        **DEFAULT_STENCIL_CONFIG,
        "namespace": settings.namespace or root.name,
        **settings.stencil_config,
    }
    body = orjson.dumps(config, option=orjson.OPT_INDENT_2).decode("utf-8")
    return "\n".join(
        [
            "import type { Config } from '@stencil/core'\n",
            f"export const config: Config = {body}",
        ]
    )


def create_stencil_config_file(settings: Settings) -> Path:
    """Write ``.stencil/<namespace>.stencil.config.ts`` under the project root."""
    root = get_root_dir(settings)
    namespace = settings.namespace or root.name
    stencil_dir = root / STENCIL_BUILD_DIR
    config_path = stencil_dir / f"{namespace}.{STENCIL_CONFIG_NAME}"
    try:
        stencil_dir.mkdir(parents=True, exist_ok=True)
        config_path.write_text(render_stencil_config(settings), encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Could not write Stencil config to {config_path}: {exc}") from exc
    logger.info("Wrote Stencil config %s", config_path)
    return config_path


def ensure_config_file(settings: Settings) -> Path:
    root = get_root_dir(settings)
    if not root.is_dir():
        raise ConfigurationError(f"Project root does not exist: {root}")
    located = locate_config_file(settings)
    if located is not None:
        logger.debug("Using Stencil config %s", located)
        return located
    return create_stencil_config_file(settings)


__all__ = [
    "DEFAULT_STENCIL_CONFIG",
    "STENCIL_BUILD_DIR",
    "create_stencil_config_file",
    "ensure_config_file",
    "get_root_dir",
    "locate_config_file",
    "render_stencil_config",
]
