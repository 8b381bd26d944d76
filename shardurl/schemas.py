"""Pydantic schemas for records, persisted payloads and the HTTP layer.

Schema Hierarchy
=================
::
    ShortRecord (domain)
    ├─ short_id: str
    ├─ original_url: str
    ├─ created_at: datetime (UTC)
    ├─ ttl_seconds: int
    └─ expires_at: datetime (computed)

    AnalyticsSnapshot (domain)
    ├─ record: ShortRecord
    └─ clicks: int

    StoredRecordPayload (persisted, primary key on the shard)
    ├─ originalUrl: str
    ├─ createdAt: ISO-8601 str
    └─ ttl: int

    URLCreate (input)  ─►  URLResponse / URLStats (output)

    HealthResponse (output)
    ├─ status: ok | degraded
    └─ shards: [ShardHealthResponse]

Key Behaviours
===============
- The persisted payload keeps camelCase keys so records written by other
  services sharing the shards stay readable.
- URL format is checked at the schema level; self-reference and TTL bounds
  are checked by the service before any shard is touched.
"""

import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictInt, computed_field, field_validator

from shardurl.enums import HealthStatus
from shardurl.validation import check_url_format

__all__ = [
    "ShortRecord",
    "AnalyticsSnapshot",
    "StoredRecordPayload",
    "URLCreate",
    "URLResponse",
    "URLStats",
    "ShardHealthResponse",
    "HealthResponse",
]


class ShortRecord(BaseModel):
    short_id: str
    original_url: str
    created_at: datetime.datetime
    ttl_seconds: int = Field(..., gt=0)

    @computed_field
    @property
    def expires_at(self) -> datetime.datetime:
        return self.created_at + datetime.timedelta(seconds=self.ttl_seconds)


class AnalyticsSnapshot(BaseModel):
    record: ShortRecord
    clicks: int = Field(0, ge=0)


class StoredRecordPayload(BaseModel):
    """Primary record as stored on its shard."""

    original_url: str = Field(..., alias="originalUrl")
    created_at: datetime.datetime = Field(..., alias="createdAt")
    ttl: int = Field(..., gt=0)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls, record: ShortRecord) -> "StoredRecordPayload":
        return cls(original_url=record.original_url, created_at=record.created_at, ttl=record.ttl_seconds)

    def to_record(self, short_id: str) -> ShortRecord:
        created_at = self.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=datetime.timezone.utc)
        return ShortRecord(
            short_id=short_id,
            original_url=self.original_url,
            created_at=created_at,
            ttl_seconds=self.ttl,
        )


class URLCreate(BaseModel):
    url: str
    ttl: StrictInt | None = None
    custom_alias: str | None = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return check_url_format(v)


class URLResponse(BaseModel):
    short_id: str
    short_url: str
    original_url: str
    ttl: int
    created_at: datetime.datetime
    expires_at: datetime.datetime

    @classmethod
    def from_record(cls, record: ShortRecord, base_url: str) -> "URLResponse":
        return cls(
            short_id=record.short_id,
            short_url=f"{base_url.rstrip('/')}/{record.short_id}",
            original_url=record.original_url,
            ttl=record.ttl_seconds,
            created_at=record.created_at,
            expires_at=record.expires_at,
        )


class URLStats(URLResponse):
    clicks: int

    @classmethod
    def from_snapshot(cls, snapshot: AnalyticsSnapshot, base_url: str) -> "URLStats":
        base = URLResponse.from_record(snapshot.record, base_url)
        return cls(**base.model_dump(), clicks=snapshot.clicks)


class ShardHealthResponse(BaseModel):
    index: int
    address: str
    status: HealthStatus
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    status: HealthStatus
    shards: list[ShardHealthResponse]
