from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from app.domain.enums.change import ChangeOperation

PROCESSED_BY = "kafka-consumer"


def isoformat_utc(dt: datetime) -> str:
    """Millisecond ISO8601 in UTC with a ``Z`` suffix, the format every producer of the topic emits."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


class ChangeRecord(BaseModel):
    """One database mutation as published on the changes topic."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: datetime
    operation: ChangeOperation
    table: str = Field(min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    user_id: int | None = Field(default=None, alias="userId")

    @field_validator("timestamp")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @field_serializer("timestamp", when_used="json")
    def serialize_timestamp(self, dt: datetime) -> str:
        return isoformat_utc(dt)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class ProcessedChangeRecord(BaseModel):
    """A change record decorated by the consumer; only ever written to the log sink."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # processing time, same value as processed_timestamp
    timestamp: datetime
    processed_timestamp: datetime = Field(alias="processedTimestamp")
    original_timestamp: datetime = Field(alias="originalTimestamp")
    operation: ChangeOperation
    table: str
    data: dict[str, Any]
    user_id: int | None = Field(default=None, alias="userId")
    processed_by: str = Field(default=PROCESSED_BY, alias="processedBy")
    processing_latency_ms: int = Field(ge=0, alias="processingLatencyMs")

    @field_serializer("timestamp", "processed_timestamp", "original_timestamp", when_used="json")
    def serialize_timestamps(self, dt: datetime) -> str:
        return isoformat_utc(dt)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
