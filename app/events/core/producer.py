import asyncio
import logging
import random
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from aiokafka import AIOKafkaProducer

from app.core.lifecycle import LifecycleEnabled
from app.domain.events import ChangeRecord

from .serializer import ChangeRecordSerializer
from .types import ProducerConfig, ProducerMetrics, ProducerState

ProducerFactory = Callable[..., AIOKafkaProducer]


class ChangeEventProducer(LifecycleEnabled):
    """Long-lived broker connection used by the API process to publish change records.

    Publishing is best effort: ``publish`` never raises, a failed send is logged,
    counted and reported as ``False``.
    """

    def __init__(
        self,
        config: ProducerConfig,
        logger: logging.Logger,
        serializer: ChangeRecordSerializer | None = None,
        client_factory: ProducerFactory = AIOKafkaProducer,
    ):
        self._config = config
        self.logger = logger
        self._serializer = serializer or ChangeRecordSerializer()
        self._client_factory = client_factory
        self._producer: AIOKafkaProducer | None = None
        self._state = ProducerState.STOPPED
        self._metrics = ProducerMetrics()

    @property
    def is_running(self) -> bool:
        return self._state == ProducerState.RUNNING

    @property
    def state(self) -> ProducerState:
        return self._state

    @property
    def metrics(self) -> ProducerMetrics:
        return self._metrics

    async def start(self) -> None:
        """Connect to the brokers.

        A connection failure leaves the producer in ERROR state instead of raising:
        the API keeps serving and publishes are dropped (and logged) until restart.
        """
        if self._state not in (ProducerState.STOPPED, ProducerState.ERROR):
            self.logger.warning(f"Producer already in state {self._state}, skipping start")
            return

        self._state = ProducerState.STARTING
        self.logger.info(f"Starting producer for brokers {self._config.bootstrap_servers}...")

        producer = self._client_factory(**self._config.to_producer_kwargs())
        try:
            await producer.start()
        except Exception as e:
            self.logger.error(f"Kafka connection failed: {e}")
            self._metrics.last_error = str(e)
            self._metrics.last_error_time = datetime.now(timezone.utc)
            await self._close_quietly(producer)
            self._state = ProducerState.ERROR
            return

        self._producer = producer
        self._state = ProducerState.RUNNING
        self.logger.info("Kafka producer connected successfully")

    async def stop(self) -> None:
        if self._state in (ProducerState.STOPPED, ProducerState.STOPPING):
            self.logger.info(f"Producer already in state {self._state}, skipping stop")
            return

        self._state = ProducerState.STOPPING
        self.logger.info("Stopping producer...")

        if self._producer:
            # stop() flushes buffered records before closing the connection
            await self._close_quietly(self._producer)
            self._producer = None

        self._state = ProducerState.STOPPED
        self.logger.info("Producer stopped")

    async def publish(self, topic: str, key: str, record: ChangeRecord) -> bool:
        """Send one change record and wait for the broker acknowledgement.

        Args:
            topic: Destination topic
            key: Partition key
            record: The change record

        Returns:
            True when the broker acknowledged the record, False otherwise.
        """
        if not self._producer or not self.is_running:
            self.logger.error(f"Producer not running, dropping change record for table '{record.table}'")
            self._metrics.messages_failed += 1
            return False

        value = self._serializer.serialize(record)
        attempts = self._config.max_retries + 1

        attempt = 1
        while True:
            try:
                metadata = await self._producer.send_and_wait(topic, value=value, key=key.encode("utf-8"))
                break
            except Exception as e:
                if attempt >= attempts:
                    self._record_error(e)
                    self.logger.error(f"Failed to log database change to Kafka: {e}")
                    return False
                delay = self._retry_delay(attempt)
                self.logger.warning(
                    f"Publish attempt {attempt}/{attempts} to {topic} failed: {e}; retrying in {delay:.2f}s"
                )
                await asyncio.sleep(delay)
                attempt += 1

        self._metrics.messages_sent += 1
        self._metrics.bytes_sent += len(value)
        if metadata is not None:
            self.logger.debug(f"Message delivered to {metadata.topic}[{metadata.partition}]")
        self.logger.info(f"Database change logged: {record.to_json()}")
        return True

    def get_status(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "running": self.is_running,
            "config": {
                "bootstrap_servers": self._config.bootstrap_servers,
                "client_id": self._config.client_id,
                "max_retries": self._config.max_retries,
            },
            "metrics": {
                "messages_sent": self._metrics.messages_sent,
                "messages_failed": self._metrics.messages_failed,
                "bytes_sent": self._metrics.bytes_sent,
                "last_error": self._metrics.last_error,
                "last_error_time": self._metrics.last_error_time.isoformat() if self._metrics.last_error_time else None,
            },
        }

    def _retry_delay(self, attempt: int) -> float:
        # exponential backoff with full jitter
        return random.uniform(0, self._config.retry_base_delay_seconds * 2 ** (attempt - 1))

    def _record_error(self, error: Exception) -> None:
        self._metrics.messages_failed += 1
        self._metrics.last_error = str(error)
        self._metrics.last_error_time = datetime.now(timezone.utc)

    async def _close_quietly(self, producer: AIOKafkaProducer) -> None:
        try:
            await producer.stop()
        except Exception as e:
            self.logger.error(f"Error while closing Kafka producer: {e}")
