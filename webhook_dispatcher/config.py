"""Configuration management with Pydantic Settings + YAML dispatch rules."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    bind: str = "0.0.0.0"
    port: int = 8000
    max_body_size: int = 10 * 1024 * 1024


class RedisConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 6379
    db: int = 0
    password: str = ""


class ArchiveConfig(BaseModel):
    """Secondary SQLite archive. Disabled while ``path`` is empty."""
    path: str = ""


class ForwardingConfig(BaseModel):
    timeout: float = 10.0
    max_concurrency: int = 100


class MetricsConfig(BaseModel):
    enabled: bool = True
    interval: float = 15.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DISPATCHER_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    archive: ArchiveConfig = Field(default_factory=ArchiveConfig)
    forwarding: ForwardingConfig = Field(default_factory=ForwardingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    dispatch_config: str = "config.yaml"
    log_level: str = "INFO"
    log_json: bool = False
    log_requests: bool = False


def load_settings(**overrides: Any) -> Settings:
    """Load settings from env vars, then apply explicit (CLI) overrides."""
    settings = Settings()
    for name, value in overrides.items():
        if value is None:
            continue
        if name == "port":
            settings.server.port = value
        else:
            setattr(settings, name, value)
    return settings


# ---------------------------------------------------------------------------
# Dispatch file
# ---------------------------------------------------------------------------

class DispatchRule(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    path: str = Field(alias="Path")
    targets: tuple[str, ...] = Field(default=(), alias="Targets")


class DispatchMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_version: int = Field(default=1, alias="SchemaVersion")


class DispatchFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    meta: DispatchMeta = Field(default_factory=DispatchMeta, alias="Meta")
    dispatch: list[DispatchRule] = Field(default_factory=list, alias="Dispatch")


def read_dispatch_file(path: str | Path) -> DispatchFile:
    """Parse a dispatch YAML file.

    Raises OSError, UnicodeDecodeError, yaml.YAMLError or
    pydantic.ValidationError; callers decide whether that is fatal.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return DispatchFile.model_validate(data)
