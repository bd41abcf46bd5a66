from __future__ import annotations

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

TModel = TypeVar("TModel", bound=BaseModel)

SESSION_HEADER_FIELDS = (
    "GPS UTC",
    "Error Code",
    "Methane (ppm)",
    "Ethane (ppm)",
    "Phone Latitude",
    "Phone Longitude",
)
SESSION_HEADER = ",".join(SESSION_HEADER_FIELDS)
DEFAULT_MIME = "text/csv"


def now_utc() -> datetime:
    return datetime.fromtimestamp(time.time(), tz=timezone.utc)


def format_utc_iso(moment: datetime) -> str:
    return _normalize_datetime(moment).isoformat().replace("+00:00", "Z")


def _normalize_datetime(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DTOBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


class CacheEntry(DTOBase):
    """Metadata tracked for one file in the cache directory.

    Serialized with the snapshot keys ``filename``, ``expiresAt``, ``bytes``,
    ``mime`` and ``meta``.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    filename: str = Field(pattern=r"^[A-Za-z0-9._-]+$")
    expires_at: datetime = Field(alias="expiresAt")
    size_bytes: int = Field(alias="bytes", ge=0)
    mime: str = DEFAULT_MIME
    meta: dict[str, Any] | None = None

    @field_validator("expires_at", mode="after")
    @classmethod
    def validate_expires_at(cls, value: datetime) -> datetime:
        return _normalize_datetime(value)

    @property
    def recovered(self) -> bool:
        return bool(self.meta) and self.meta.get("recovered") is True

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


CACHE_ENTRY_LIST = TypeAdapter(list[CacheEntry])


class FileMeta(DTOBase):
    """Listing row for an active cache file."""

    name: str
    path: Path
    size_bytes: int = Field(default=0, ge=0)
    modified: datetime
    record_count: int = Field(default=0, ge=0)
    expires_at: datetime | None = None
    error: str | None = None


class SensorReading(DTOBase):
    gps_utc: str
    error_code: str = ""
    methane_ppm: str = ""
    ethane_ppm: str = ""
    latitude: str = ""
    longitude: str = ""

    def fields(self) -> tuple[str, ...]:
        return (
            self.gps_utc,
            self.error_code,
            self.methane_ppm,
            self.ethane_ppm,
            self.latitude,
            self.longitude,
        )

    def to_line(self) -> str:
        line = ",".join(self.fields())
        if len(line.split(",")) != len(SESSION_HEADER_FIELDS):
            raise ValueError(
                f"reading must serialize to {len(SESSION_HEADER_FIELDS)} fields: {line!r}"
            )
        return line


class SessionInfo(DTOBase):
    session_number: int = Field(ge=1)
    filename: str
    path: Path
    device_name: str
    device_id: str
    started_at: datetime

    @field_validator("started_at", mode="after")
    @classmethod
    def validate_started_at(cls, value: datetime) -> datetime:
        return _normalize_datetime(value)


def json_schema_for(model_cls: type[TModel]) -> dict[str, Any]:
    return model_cls.model_json_schema()


def validate_json(model_cls: type[TModel], payload: str | bytes | bytearray) -> TModel:
    return model_cls.model_validate_json(payload)
