import asyncio
import logging
from typing import Any, Mapping

from app.domain.enums.change import ChangeOperation
from app.domain.events import ChangeRecord
from app.events.core.producer import ChangeEventProducer
from app.events.core.serializer import encode_change, partition_key


class ChangeEventPublisher:
    """Fire-and-forget publication of database mutations from the write path.

    ``log_change`` schedules the send as a detached task and returns at once; the
    outcome of that task only ever reaches the logs, never the HTTP response.
    """

    def __init__(self, producer: ChangeEventProducer, topic: str, logger: logging.Logger):
        self._producer = producer
        self._topic = topic
        self.logger = logger
        self._pending: set[asyncio.Task[bool]] = set()

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def log_change(
        self,
        operation: ChangeOperation | str,
        table: str,
        data: Mapping[str, Any],
        user_id: int | None = None,
    ) -> asyncio.Task[bool]:
        record = encode_change(operation, table, data, user_id)
        key = partition_key(table, record.timestamp)

        task = asyncio.create_task(self._publish(key, record), name=f"change-log-{table}")
        # the event loop only keeps weak references to tasks
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def _publish(self, key: str, record: ChangeRecord) -> bool:
        try:
            return await self._producer.publish(self._topic, key, record)
        except Exception as e:
            self.logger.error(f"Unexpected error publishing change for table '{record.table}': {e}", exc_info=True)
            return False

    def _on_done(self, task: asyncio.Task[bool]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            self.logger.warning(f"Change publish task {task.get_name()} was cancelled")

    async def drain(self, timeout: float) -> None:
        """Wait for in-flight publishes during shutdown; cancel whatever exceeds the timeout."""
        if not self._pending:
            return

        self.logger.info(f"Waiting for {len(self._pending)} in-flight change publishes...")
        _, still_pending = await asyncio.wait(set(self._pending), timeout=timeout)
        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)
            self.logger.warning(f"Dropped {len(still_pending)} change publishes still pending after {timeout}s")
