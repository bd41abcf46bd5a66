from __future__ import annotations

import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from surveyor_cache.schemas import DEFAULT_MIME, SESSION_HEADER

DEFAULT_TTL_DAYS = 14
DEFAULT_MAX_BYTES = 200 * 1024 * 1024


class CacheConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    directory: str = "data/surveyor_cache"
    ttl_days: int = Field(default=DEFAULT_TTL_DAYS, ge=0)
    max_bytes: int = Field(default=DEFAULT_MAX_BYTES, ge=0)

    @field_validator("directory")
    @classmethod
    def validate_directory(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("cache.directory must not be empty")
        return normalized

    @property
    def ttl(self) -> timedelta:
        return timedelta(days=self.ttl_days)


class SessionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    header: str = SESSION_HEADER
    schema_name: str = "sensor_v1"
    mime: str = DEFAULT_MIME

    @field_validator("header")
    @classmethod
    def validate_header(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("session.header must not be empty")
        if "\n" in value or "\r" in value:
            raise ValueError("session.header must be a single line")
        return value


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not isinstance(logging.getLevelName(normalized), int):
            raise ValueError(f"Unknown logging level: {value}")
        return normalized


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cache: CacheConfig = Field(default_factory=CacheConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: str | Path) -> AppConfig:
    raw = Path(path).read_text(encoding="utf-8")
    payload = _parse_yaml_or_json(raw)
    try:
        return AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


def _parse_yaml_or_json(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        parsed = _parse_yaml(raw)
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError("Configuration root must be an object.")
    return parsed


def _parse_yaml(raw: str) -> Any:
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
