import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from app.domain.events import PROCESSED_BY, ChangeRecord, ProcessedChangeRecord, isoformat_utc
from app.events.core.serializer import ChangeRecordSerializer
from app.events.core.types import ProcessingStats

DEFAULT_STATS_INTERVAL = 10
_PAYLOAD_PREVIEW_BYTES = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChangeProcessor:
    """Turns consumed change records into processed records on the observability sink.

    The sink is a logger: each processed record becomes exactly one JSON line on it.
    Every ``stats_interval`` records a throughput snapshot is logged as well.
    """

    def __init__(
        self,
        sink: logging.Logger,
        logger: logging.Logger,
        serializer: ChangeRecordSerializer | None = None,
        stats_interval: int = DEFAULT_STATS_INTERVAL,
        clock: Callable[[], datetime] = _utcnow,
        processed_by: str = PROCESSED_BY,
    ):
        if stats_interval < 1:
            raise ValueError("stats_interval must be at least 1")
        self._sink = sink
        self.logger = logger
        self._serializer = serializer or ChangeRecordSerializer()
        self._stats_interval = stats_interval
        self._clock = clock
        self._processed_by = processed_by

    @staticmethod
    def calculate_latency(original: datetime, now: datetime) -> int:
        """Milliseconds between capture and processing, clamped at zero for clock skew."""
        return max(0, int((now - original).total_seconds() * 1000))

    def handle(self, raw: bytes | None, stats: ProcessingStats) -> ProcessedChangeRecord | None:
        """Decode and process one payload from the topic.

        Never raises: malformed payloads and sink failures are logged and the
        record counts as handled, so the consumer can move on to the next offset.
        """
        try:
            record = self._serializer.deserialize(raw)
        except Exception as e:
            preview = raw[:_PAYLOAD_PREVIEW_BYTES] if raw else raw
            self.logger.error(f"Error processing database change: {e}; raw payload: {preview!r}")
            return None

        try:
            return self.process(record, stats)
        except Exception as e:
            self.logger.error(f"Error processing database change: {e}", exc_info=True)
            return None

    def process(self, record: ChangeRecord, stats: ProcessingStats) -> ProcessedChangeRecord:
        now = self._clock()
        processed = ProcessedChangeRecord(
            timestamp=now,
            processed_timestamp=now,
            original_timestamp=record.timestamp,
            operation=record.operation,
            table=record.table,
            data=record.data,
            user_id=record.user_id,
            processed_by=self._processed_by,
            processing_latency_ms=self.calculate_latency(record.timestamp, now),
        )

        self._sink.info(processed.to_json())

        stats.total_processed += 1
        if stats.total_processed % self._stats_interval == 0:
            self._emit_statistics(stats, now)

        return processed

    def _emit_statistics(self, stats: ProcessingStats, now: datetime) -> None:
        elapsed_seconds = (now - stats.start_time).total_seconds()
        stats.average_rate_per_minute = (
            round(stats.total_processed / (elapsed_seconds / 60), 2) if elapsed_seconds > 0 else 0.0
        )
        snapshot = {
            "timestamp": isoformat_utc(now),
            "totalProcessed": stats.total_processed,
            "uptime": round(max(elapsed_seconds, 0.0)),
            "averageProcessingRate": stats.average_rate_per_minute,
        }
        self.logger.info(f"Processing statistics: {json.dumps(snapshot)}")
