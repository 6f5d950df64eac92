"""Encoding of database mutations into change records and their JSON wire form."""

import json
from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import ValidationError

from app.domain.enums.change import ChangeOperation
from app.domain.events import ChangeRecord

from .errors import ChangeRecordDecodeError


def encode_change(
    operation: ChangeOperation | str,
    table: str,
    data: Mapping[str, Any],
    user_id: int | None = None,
    *,
    now: datetime | None = None,
) -> ChangeRecord:
    """Capture a mutation as a ChangeRecord stamped with the capture time."""
    return ChangeRecord(
        timestamp=now or datetime.now(timezone.utc),
        operation=ChangeOperation(operation),
        table=table,
        data=dict(data),
        user_id=user_id,
    )


def partition_key(table: str, captured_at: datetime) -> str:
    """Message key ``<table>-<epoch millis>``; spreads one table's changes over partitions."""
    return f"{table}-{int(captured_at.timestamp() * 1000)}"


class ChangeRecordSerializer:
    """Serializer between ChangeRecord and UTF-8 JSON bytes."""

    def serialize(self, record: ChangeRecord) -> bytes:
        return record.to_json().encode("utf-8")

    def deserialize(self, raw: bytes | None) -> ChangeRecord:
        """Parse a topic payload.

        Raises:
            ChangeRecordDecodeError: If the payload is empty, not UTF-8 JSON,
                or does not describe a change record.
        """
        if not raw:
            raise ChangeRecordDecodeError("Empty change record payload")
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
            raise ChangeRecordDecodeError(f"Payload is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise ChangeRecordDecodeError(f"Expected a JSON object, got {type(payload).__name__}")
        try:
            return ChangeRecord.model_validate(payload)
        except ValidationError as e:
            raise ChangeRecordDecodeError(f"Payload is not a change record: {e}") from e
