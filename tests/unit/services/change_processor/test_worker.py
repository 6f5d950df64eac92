import asyncio
import signal

import httpx
import pytest

from app.events.core import ChangeEventConsumer, ChangeRecordSerializer, ConsumerConfig, KafkaClientFactories, encode_change
from app.services.change_processor.health_server import HealthCheckServer
from app.services.change_processor.processor import ChangeProcessor
from app.services.change_processor.worker import ChangeConsumerWorker, run_change_consumer
from app.settings import Settings

from tests.helpers.eventually import wait_until
from tests.helpers.fakes import FakeKafkaClients
from tests.helpers.logs import RecordingHandler, make_logger, recording

pytestmark = pytest.mark.unit


def _worker(clients: FakeKafkaClients) -> tuple[ChangeConsumerWorker, ChangeEventConsumer, HealthCheckServer, RecordingHandler, RecordingHandler]:
    logger, log = make_logger("consumer")
    sink, sink_records = make_logger("database")
    config = ConsumerConfig(bootstrap_servers=["kafka:9092"], group_id="database-changes-group", topic="database-changes")
    consumer = ChangeEventConsumer(config, ChangeProcessor(sink, logger), logger, client_factory=clients.make_consumer)
    health = HealthCheckServer("127.0.0.1", 0, "kafka-consumer", logger)
    return ChangeConsumerWorker(consumer, health, logger), consumer, health, log, sink_records


async def test_run_until_stop_event_then_shut_down_in_order() -> None:
    clients = FakeKafkaClients()
    worker, consumer, health, log, sink = _worker(clients)
    stop_event = asyncio.Event()

    run_task = asyncio.create_task(worker.run(stop_event))
    await wait_until(lambda: consumer.is_running)
    assert health.is_running

    clients.consumer.feed(ChangeRecordSerializer().serialize(encode_change("INSERT", "users", {"id": 1})))
    await wait_until(lambda: len(sink.messages) == 1)

    stop_event.set()
    exit_code = await asyncio.wait_for(run_task, timeout=5)

    assert exit_code == 0
    assert not health.is_running
    assert clients.consumer.stopped
    messages = log.messages
    assert messages.index("Consumer disconnected successfully") < messages.index("Health check server closed")


async def test_stop_during_in_flight_record_keeps_health_up_until_record_done() -> None:
    clients = FakeKafkaClients()
    worker, consumer, health, log, sink = _worker(clients)
    stop_event = asyncio.Event()

    run_task = asyncio.create_task(worker.run(stop_event))
    await wait_until(lambda: consumer.is_running)
    clients.consumer.commit_gate = asyncio.Event()
    clients.consumer.feed(ChangeRecordSerializer().serialize(encode_change("INSERT", "users", {"id": 2})))
    await wait_until(lambda: len(sink.messages) == 1)

    stop_event.set()
    await asyncio.sleep(0.05)
    assert not run_task.done()
    assert health.is_running
    async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{health.port}") as client:
        resp = await client.get("/health")
    assert resp.status_code == 200

    clients.consumer.commit_gate.set()
    exit_code = await asyncio.wait_for(run_task, timeout=5)

    assert exit_code == 0
    assert clients.consumer.committed_offsets == [1]
    assert not health.is_running
    messages = log.messages
    assert messages.index("Waiting for in-flight record to finish before disconnecting") < messages.index(
        "Health check server closed"
    )
    assert messages.index("Consumer disconnected successfully") < messages.index("Health check server closed")


async def test_consumer_start_failure_exits_with_code_one() -> None:
    clients = FakeKafkaClients(consumer_fail_start=True)
    worker, _, health, log, _ = _worker(clients)

    exit_code = await worker.run(asyncio.Event())

    assert exit_code == 1
    assert not health.is_running
    assert any(m.startswith("Consumer error:") for m in log.messages)


async def test_health_endpoint_is_up_before_consumer_connects() -> None:
    clients = FakeKafkaClients()
    worker, _, health, _, _ = _worker(clients)
    seen_health_running: list[bool] = []

    original_factory = clients.make_consumer

    def factory(**config: object):  # type: ignore[no-untyped-def]
        seen_health_running.append(health.is_running)
        return original_factory(**config)

    worker._consumer._client_factory = factory  # type: ignore[attr-defined]
    stop_event = asyncio.Event()
    stop_event.set()

    assert await worker.run(stop_event) == 0
    assert seen_health_running == [True]


async def test_run_change_consumer_handles_sigterm(test_settings: Settings, kafka_clients: FakeKafkaClients, kafka_factories: KafkaClientFactories) -> None:
    from app.core.logging import get_logger

    with recording(get_logger("consumer")) as log:
        run_task = asyncio.create_task(run_change_consumer(test_settings, kafka_factories))
        await wait_until(lambda: bool(kafka_clients.consumers) and kafka_clients.consumer.started)

        kafka_clients.consumer.feed(ChangeRecordSerializer().serialize(encode_change("INSERT", "users", {"id": 3})))
        await wait_until(lambda: len(kafka_clients.consumer.committed) == 1)

        signal.raise_signal(signal.SIGTERM)
        exit_code = await asyncio.wait_for(run_task, timeout=5)

    assert exit_code == 0
    assert kafka_clients.consumer.stopped
    assert "Received SIGTERM, shutting down gracefully..." in log.messages


async def test_run_change_consumer_rejects_invalid_session_settings(test_settings: Settings, kafka_factories: KafkaClientFactories) -> None:
    settings = test_settings.model_copy(update={"KAFKA_SESSION_TIMEOUT_MS": 5000})

    assert await run_change_consumer(settings, kafka_factories) == 1


async def test_processed_records_go_to_database_logger(test_settings: Settings) -> None:
    from app.core.container import create_change_consumer_container

    container = create_change_consumer_container(test_settings)
    try:
        processor = await container.get(ChangeProcessor)
    finally:
        await container.close()

    assert processor._sink.name == "auditstream.database"  # type: ignore[attr-defined]
