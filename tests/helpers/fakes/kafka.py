"""In-memory stand-ins for the aiokafka clients."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from aiokafka.errors import KafkaConnectionError, KafkaError
from aiokafka.structs import ConsumerRecord, RecordMetadata, TopicPartition


@dataclass
class SentMessage:
    topic: str
    value: bytes
    key: bytes | None


class FakeAIOKafkaProducer:
    """Fake for AIOKafkaProducer that records what was sent.

    ``fail_start`` simulates an unreachable broker, ``fail_sends`` makes that many
    next sends raise, ``hang`` blocks every send until ``release()``.
    """

    def __init__(self, **config: Any) -> None:
        self.config = config
        self.sent: list[SentMessage] = []
        self.started = False
        self.stopped = False
        self.fail_start = False
        self.fail_sends = 0
        self.send_attempts = 0
        self._gate = asyncio.Event()
        self._gate.set()

    def hang(self) -> None:
        self._gate.clear()

    def release(self) -> None:
        self._gate.set()

    async def start(self) -> None:
        if self.fail_start:
            raise KafkaConnectionError("Unable to bootstrap from [('kafka', 9092)]")
        self.started = True

    async def stop(self) -> None:
        self.started = False
        self.stopped = True

    async def send_and_wait(self, topic: str, value: bytes | None = None, key: bytes | None = None, **kwargs: Any) -> RecordMetadata:
        self.send_attempts += 1
        await self._gate.wait()
        if self.fail_sends > 0:
            self.fail_sends -= 1
            raise KafkaError("broker unavailable")
        offset = len(self.sent)
        self.sent.append(SentMessage(topic=topic, value=value or b"", key=key))
        return RecordMetadata(
            topic=topic,
            partition=0,
            topic_partition=TopicPartition(topic, 0),
            offset=offset,
            timestamp=-1,
            timestamp_type=0,
            log_start_offset=0,
        )


class FakeAIOKafkaConsumer:
    """Fake for AIOKafkaConsumer fed through ``feed``; ``getone`` blocks until a record arrives.

    ``commit_gate`` (when set) makes each commit wait for it, which keeps a record
    in flight for as long as a test needs; ``start_gate`` does the same for connecting.
    """

    def __init__(self, **config: Any) -> None:
        self.config = config
        self.topics: list[str] = []
        self.started = False
        self.stopped = False
        self.fail_start = False
        self.start_gate: asyncio.Event | None = None
        self.committed: list[dict[TopicPartition, int]] = []
        self.commit_gate: asyncio.Event | None = None
        self._queue: asyncio.Queue[ConsumerRecord | Exception] = asyncio.Queue()
        self._next_offset = 0

    async def start(self) -> None:
        if self.fail_start:
            raise KafkaConnectionError("Unable to bootstrap from [('kafka', 9092)]")
        if self.start_gate is not None:
            await self.start_gate.wait()
        self.started = True

    async def stop(self) -> None:
        self.started = False
        self.stopped = True

    def subscribe(self, topics: list[str]) -> None:
        self.topics = list(topics)

    def feed(self, value: bytes | None, key: bytes | None = None, topic: str = "database-changes") -> ConsumerRecord:
        record = ConsumerRecord(
            topic=topic,
            partition=0,
            offset=self._next_offset,
            timestamp=0,
            timestamp_type=0,
            key=key,
            value=value,
            checksum=None,
            serialized_key_size=len(key) if key else -1,
            serialized_value_size=len(value) if value else -1,
            headers=(),
        )
        self._next_offset += 1
        self._queue.put_nowait(record)
        return record

    def feed_error(self, error: Exception) -> None:
        self._queue.put_nowait(error)

    async def getone(self, *partitions: TopicPartition) -> ConsumerRecord:
        item = await self._queue.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def commit(self, offsets: dict[TopicPartition, int] | None = None) -> None:
        if self.commit_gate is not None:
            await self.commit_gate.wait()
        self.committed.append(dict(offsets or {}))

    @property
    def committed_offsets(self) -> list[int]:
        return [offset for batch in self.committed for offset in batch.values()]


@dataclass
class FakeKafkaClients:
    """Remembers every client built so tests can reach the instances the code created."""

    producers: list[FakeAIOKafkaProducer] = field(default_factory=list)
    consumers: list[FakeAIOKafkaConsumer] = field(default_factory=list)
    producer_fail_start: bool = False
    consumer_fail_start: bool = False
    consumer_start_gate: asyncio.Event | None = None

    def make_producer(self, **config: Any) -> FakeAIOKafkaProducer:
        producer = FakeAIOKafkaProducer(**config)
        producer.fail_start = self.producer_fail_start
        self.producers.append(producer)
        return producer

    def make_consumer(self, **config: Any) -> FakeAIOKafkaConsumer:
        consumer = FakeAIOKafkaConsumer(**config)
        consumer.fail_start = self.consumer_fail_start
        consumer.start_gate = self.consumer_start_gate
        self.consumers.append(consumer)
        return consumer

    @property
    def producer(self) -> FakeAIOKafkaProducer:
        return self.producers[-1]

    @property
    def consumer(self) -> FakeAIOKafkaConsumer:
        return self.consumers[-1]
