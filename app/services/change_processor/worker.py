import asyncio
import logging
import signal
from contextlib import suppress

from app.core.logging import get_logger
from app.events.core import ChangeEventConsumer, KafkaClientFactories
from app.services.change_processor.health_server import HealthCheckServer
from app.settings import Settings, get_settings


class ChangeConsumerWorker:
    """Owns the worker process lifecycle.

    Start order: liveness endpoint, then consumer. Stop order: consumer (after its
    in-flight record), then liveness endpoint.
    """

    def __init__(self, consumer: ChangeEventConsumer, health_server: HealthCheckServer, logger: logging.Logger):
        self._consumer = consumer
        self._health_server = health_server
        self.logger = logger

    async def run(self, stop_event: asyncio.Event) -> int:
        """Run until ``stop_event`` is set; return the process exit code."""
        await self._health_server.start()

        try:
            await self._consumer.start()
        except Exception as e:
            self.logger.error(f"Consumer error: {e}", exc_info=True)
            await self._health_server.stop()
            return 1

        exit_code = 0
        stop_waiter = asyncio.create_task(stop_event.wait(), name="stop-signal")
        waiters: set[asyncio.Task[object]] = {stop_waiter}
        consume_task = self._consumer.consume_task
        if consume_task is not None:
            waiters.add(consume_task)  # type: ignore[arg-type]

        done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        if consume_task is not None and consume_task in done and not stop_event.is_set():
            error = None if consume_task.cancelled() else consume_task.exception()
            self.logger.error(f"Consumer loop terminated unexpectedly: {error}")
            exit_code = 1

        stop_waiter.cancel()
        with suppress(asyncio.CancelledError):
            await stop_waiter

        return await self.shutdown(exit_code)

    async def shutdown(self, exit_code: int = 0) -> int:
        try:
            await self._consumer.stop()
            self.logger.info("Consumer disconnected successfully")
        except Exception as e:
            self.logger.error(f"Error during shutdown: {e}")
            exit_code = 1
        finally:
            await self._health_server.stop()
        return exit_code


def install_signal_handlers(stop_event: asyncio.Event, logger: logging.Logger) -> None:
    loop = asyncio.get_running_loop()

    def _handle(sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, shutting down gracefully...")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handle, sig)


async def run_change_consumer(
    settings: Settings | None = None,
    kafka_clients: KafkaClientFactories | None = None,
) -> int:
    from app.core.container import create_change_consumer_container

    settings = settings or get_settings()
    logger = get_logger("consumer")

    container = create_change_consumer_container(settings, kafka_clients)
    try:
        try:
            worker = await container.get(ChangeConsumerWorker)
        except ValueError as e:
            logger.error(f"Consumer error: invalid configuration: {e}")
            return 1

        stop_event = asyncio.Event()
        install_signal_handlers(stop_event, logger)
        return await worker.run(stop_event)
    finally:
        await container.close()
