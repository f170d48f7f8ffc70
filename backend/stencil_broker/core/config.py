"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationInfo, field_validator

ENV_PREFIX = "STENCIL_BROKER_"
DEFAULT_CONFIG_PATH = Path("stencil-broker.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("paths", "root"): "root_path",
    ("paths", "src_dir"): "src_dir",
    ("paths", "output_dir"): "output_dir",
    ("stencil", "config_path"): "config_path",
    ("stencil", "namespace"): "namespace",
    ("stencil", "config"): "stencil_config",
    ("build", "command"): "stencil_command",
    ("build", "cache_artifacts"): "cache_artifacts",
    ("watch", "enabled"): "watch",
    ("logging", "level"): "log_level",
    ("logging", "json"): "log_json",
}

# Fields whose YAML value is itself a mapping and must not be flattened further.
_MAPPING_FIELDS = {("stencil", "config"), ("stencil_config",)}
_EMPTY_PATH_DEFAULTS = {
    "root_path": Path.cwd,
    "src_dir": lambda: Path("src"),
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    root_path: Path = Field(default_factory=Path.cwd)
    src_dir: Path = Field(default=Path("src"), validate_default=True)
    output_dir: Path | None = Field(default=None, validate_default=True)
    config_path: Path | None = None
    namespace: str | None = None
    stencil_command: list[str] = Field(default_factory=lambda: ["npx", "stencil", "build"])
    stencil_config: dict[str, Any] = Field(default_factory=dict)
    source_extensions: list[str] = Field(default_factory=lambda: [".tsx"])
    style_extensions: list[str] = Field(default_factory=lambda: [".css", ".scss"])
    artifact_extension: str = ".js"
    cache_artifacts: bool = True
    watch: bool = False
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("root_path", "src_dir", "output_dir", "config_path", mode="before")
    @classmethod
    def _expand_path(cls, value: Any, info: ValidationInfo) -> Path | None:
        if value is None or value == "":
            # An empty environment override means "use the default".
            return _EMPTY_PATH_DEFAULTS.get(info.field_name, lambda: None)()
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise ValueError("paths must be a path or string")

    @field_validator("stencil_command", "source_extensions", "style_extensions", mode="before")
    @classmethod
    def _split_list(cls, value: Any) -> Any:
        # Environment variables arrive as "npx stencil build" or ".tsx,.ts".
        if isinstance(value, str):
            separator = "," if "," in value else None
            return [part.strip() for part in value.split(separator) if part.strip()]
        return value

    @field_validator("root_path", mode="after")
    @classmethod
    def _resolve_root(cls, value: Path) -> Path:
        return value.resolve()

    @field_validator("src_dir", "output_dir", "config_path", mode="after")
    @classmethod
    def _anchor_to_root(cls, value: Path | None, info: ValidationInfo) -> Path | None:
        root = info.data.get("root_path") or Path.cwd().resolve()
        if value is None:
            return root / "dist" / "components" if info.field_name == "output_dir" else None
        return value if value.is_absolute() else root / value

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        return DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping) and next_prefix not in _MAPPING_FIELDS:
            flat.update(_flatten_yaml(value, prefix=next_prefix))
            continue
        mapped_key = _YAML_KEY_MAP.get(next_prefix)
        if mapped_key:
            flat[mapped_key] = value
        elif key in Settings.model_fields:
            flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with STENCIL_BROKER_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
