import asyncio
import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from aiokafka import AIOKafkaConsumer, TopicPartition
from aiokafka.errors import KafkaError
from aiokafka.structs import ConsumerRecord

from app.core.lifecycle import LifecycleEnabled
from app.domain.events import isoformat_utc

from .errors import ConsumerStateError
from .types import (
    ConsumerConfig,
    ConsumerMetrics,
    ConsumerMetricsSnapshot,
    ConsumerState,
    ConsumerStatus,
    ProcessingStats,
)

if TYPE_CHECKING:
    from app.services.change_processor.processor import ChangeProcessor

ConsumerFactory = Callable[..., AIOKafkaConsumer]


class ChangeEventConsumer(LifecycleEnabled):
    """Pull loop over the changes topic.

    Records are handled one at a time: the next fetch happens only after the
    current record went through the processor and its offset was committed.
    Stopping lets the in-flight record finish before leaving the group.
    """

    def __init__(
        self,
        config: ConsumerConfig,
        processor: "ChangeProcessor",
        logger: logging.Logger,
        kafka_logger: logging.Logger | None = None,
        client_factory: ConsumerFactory = AIOKafkaConsumer,
        fetch_error_backoff_seconds: float = 1.0,
    ):
        self._config = config
        self._processor = processor
        self.logger = logger
        self.kafka_logger = kafka_logger or logger
        self._client_factory = client_factory
        self._fetch_error_backoff = fetch_error_backoff_seconds
        self._consumer: AIOKafkaConsumer | None = None
        self._state = ConsumerState.DISCONNECTED
        self._running = False
        self._metrics = ConsumerMetrics()
        self._stats = ProcessingStats()
        self._consume_task: asyncio.Task[None] | None = None
        self._in_flight: asyncio.Future[None] | None = None

    @property
    def state(self) -> ConsumerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == ConsumerState.RUNNING

    @property
    def metrics(self) -> ConsumerMetrics:
        return self._metrics

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    @property
    def consume_task(self) -> asyncio.Task[None] | None:
        return self._consume_task

    async def start(self) -> None:
        """Connect, subscribe and launch the pull loop.

        Any error while connecting or subscribing propagates to the caller; the
        consumer is left DISCONNECTED.
        """
        if self._state != ConsumerState.DISCONNECTED:
            raise ConsumerStateError(f"Cannot start consumer in state {self._state}")

        self._state = ConsumerState.CONNECTING
        consumer = self._client_factory(**self._config.to_consumer_kwargs())
        try:
            await consumer.start()
            if self._state != ConsumerState.CONNECTING:
                # stop() ran while connecting
                self.kafka_logger.info("Stop requested while connecting, not subscribing")
                await self._close_quietly(consumer)
                return
            self.kafka_logger.info("Consumer connected to Kafka")

            consumer.subscribe([self._config.topic])
            self._state = ConsumerState.SUBSCRIBED
            self.kafka_logger.info(
                f"Subscribed to {self._config.topic} topic as group {self._config.group_id}"
            )
        except Exception:
            self._state = ConsumerState.DISCONNECTED
            await self._close_quietly(consumer)
            raise

        self._consumer = consumer
        self._stats = ProcessingStats()
        self._running = True
        self._consume_task = asyncio.create_task(self._consume_loop(), name=f"consume-{self._config.topic}")
        self._state = ConsumerState.RUNNING
        self.logger.info("Kafka consumer is running and waiting for messages...")

    async def stop(self) -> None:
        if self._state in (ConsumerState.DISCONNECTED, ConsumerState.DISCONNECTING):
            return

        self._state = ConsumerState.DISCONNECTING
        self._running = False

        if self._consume_task:
            self._consume_task.cancel()
            await asyncio.gather(self._consume_task, return_exceptions=True)
            self._consume_task = None

        # the loop only awaits the in-flight record through a shield, so it is still running here
        if self._in_flight is not None:
            self.logger.info("Waiting for in-flight record to finish before disconnecting")
            await asyncio.gather(self._in_flight, return_exceptions=True)
            self._in_flight = None

        if self._consumer:
            await self._close_quietly(self._consumer)
            self._consumer = None

        self._state = ConsumerState.DISCONNECTED
        self.kafka_logger.info("Consumer disconnected")

    async def _consume_loop(self) -> None:
        self.logger.info(f"Consumer loop started for group {self._config.group_id}")

        while self._running and self._consumer:
            try:
                message = await self._consumer.getone()
            except KafkaError as e:
                self._metrics.fetch_errors += 1
                self.logger.error(f"Consumer error: {e}")
                await asyncio.sleep(self._fetch_error_backoff)
                continue

            self._in_flight = asyncio.ensure_future(self._handle_message(message))
            await asyncio.shield(self._in_flight)
            self._in_flight = None

        self.logger.info(f"Consumer loop ended for group {self._config.group_id}")

    async def _handle_message(self, message: ConsumerRecord) -> None:
        message_info = {
            "topic": message.topic,
            "partition": message.partition,
            "offset": message.offset,
            "timestamp": isoformat_utc(datetime.now(timezone.utc)),
            "key": message.key.decode("utf-8", errors="replace") if message.key else None,
        }
        self.kafka_logger.info(f"Received message: {json.dumps(message_info)}")

        self._processor.handle(message.value, self._stats)

        self._metrics.messages_consumed += 1
        self._metrics.bytes_consumed += len(message.value) if message.value else 0
        self._metrics.last_message_time = datetime.now(timezone.utc)

        if not self._config.enable_auto_commit:
            await self._commit(message)

    async def _commit(self, message: ConsumerRecord) -> None:
        if not self._consumer:
            return
        partition = TopicPartition(message.topic, message.partition)
        try:
            await self._consumer.commit({partition: message.offset + 1})
        except KafkaError as e:
            # the record is redelivered after a rebalance; duplicates are acceptable
            self._metrics.commit_failures += 1
            self.logger.error(f"Failed to commit offset {message.offset} for {partition}: {e}")

    async def _close_quietly(self, consumer: AIOKafkaConsumer) -> None:
        try:
            await consumer.stop()
        except Exception as e:
            self.logger.error(f"Error while closing Kafka consumer: {e}")

    def get_status(self) -> ConsumerStatus:
        return ConsumerStatus(
            state=self._state.value,
            is_running=self.is_running,
            group_id=self._config.group_id,
            client_id=self._config.client_id,
            topic=self._config.topic,
            metrics=ConsumerMetricsSnapshot(
                messages_consumed=self._metrics.messages_consumed,
                bytes_consumed=self._metrics.bytes_consumed,
                fetch_errors=self._metrics.fetch_errors,
                commit_failures=self._metrics.commit_failures,
                total_processed=self._stats.total_processed,
                last_message_time=self._metrics.last_message_time,
            ),
        )
