"""Global user configuration helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
import tomllib

from pydantic import BaseModel, Field, ValidationInfo, field_validator

GLOBAL_CONFIG_PATH = Path.home() / ".slideomatic" / "config.toml"
API_URL_ENV_NAME = "SLIDEOMATIC_API_URL"
KB = 1024


class ImageSettings(BaseModel):
    """Byte budgets and search grid used when ingesting images."""

    target_bytes: int = Field(default=400 * KB, gt=0)
    max_bytes: int = Field(default=500 * KB, gt=0)
    dimension_steps: list[int] = Field(default_factory=lambda: [1600, 1400, 1200, 1024, 900, 720])
    quality_steps: list[float] = Field(default_factory=lambda: [0.72, 0.62, 0.55, 0.48, 0.42])
    settle_window_seconds: float = Field(default=10.0, ge=0)

    @field_validator("dimension_steps", "quality_steps")
    @classmethod
    def sort_descending(cls, value: list[Any]) -> list[Any]:
        if not value:
            raise ValueError("Search steps cannot be empty.")
        return sorted(value, reverse=True)

    @field_validator("max_bytes")
    @classmethod
    def max_not_below_target(cls, value: int, info: ValidationInfo) -> int:
        target = info.data.get("target_bytes")
        if target is not None and value < target:
            raise ValueError("max_bytes must be greater than or equal to target_bytes.")
        return value


class ServerSettings(BaseModel):
    """Limits and storage location for the asset/share server."""

    data_dir: str = str(Path.home() / ".slideomatic" / "data")
    max_asset_bytes: int = Field(default=500 * KB, gt=0)
    max_deck_bytes: int = Field(default=400 * KB, gt=0)
    max_share_asset_bytes: int = Field(default=400 * KB, gt=0)
    share_ttl_days: int = Field(default=30, ge=1)


class GlobalConfig(BaseModel):
    """User-level configuration stored in ~/.slideomatic/config.toml."""

    api_base_url: str = "http://127.0.0.1:8787"
    images: ImageSettings = Field(default_factory=ImageSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


def load_global_config(path: Path = GLOBAL_CONFIG_PATH) -> GlobalConfig:
    """Load global config from TOML, returning defaults when missing."""
    if not path.exists():
        return GlobalConfig()

    contents = path.read_text(encoding="utf-8")
    data = tomllib.loads(contents)
    return GlobalConfig.model_validate(data)


def save_global_config(config: GlobalConfig, path: Path = GLOBAL_CONFIG_PATH) -> None:
    """Persist global config to TOML."""
    path.parent.mkdir(parents=True, exist_ok=True)
    images = config.images
    server = config.server
    lines = [
        f'api_base_url = "{_escape_toml_string(config.api_base_url)}"',
        "",
        "[images]",
        f"target_bytes = {images.target_bytes}",
        f"max_bytes = {images.max_bytes}",
        f"dimension_steps = [{', '.join(str(step) for step in images.dimension_steps)}]",
        f"quality_steps = [{', '.join(str(step) for step in images.quality_steps)}]",
        f"settle_window_seconds = {images.settle_window_seconds}",
        "",
        "[server]",
        f'data_dir = "{_escape_toml_string(server.data_dir)}"',
        f"max_asset_bytes = {server.max_asset_bytes}",
        f"max_deck_bytes = {server.max_deck_bytes}",
        f"max_share_asset_bytes = {server.max_share_asset_bytes}",
        f"share_ttl_days = {server.share_ttl_days}",
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _escape_toml_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def resolve_api_base_url(config: GlobalConfig) -> str:
    """Return the asset server URL, letting the environment override config."""
    override = os.getenv(API_URL_ENV_NAME, "").strip()
    return (override or config.api_base_url).rstrip("/")
