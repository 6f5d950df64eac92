import os
from pathlib import Path
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport

# Safe defaults applied before any app module reads settings.
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-32chars!!")
os.environ.setdefault("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from app.events.core import KafkaClientFactories  # noqa: E402
from app.settings import Settings  # noqa: E402

from tests.helpers.fakes import FakeKafkaClients  # noqa: E402


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'auditstream.db'}"


@pytest.fixture
def test_settings(database_url: str) -> Settings:
    return Settings(
        DATABASE_URL=database_url,
        SECRET_KEY="test-secret-key-for-testing-only-32chars!!",
        BCRYPT_ROUNDS=4,
        KAFKA_BOOTSTRAP_SERVERS="localhost:9092",
        CONSUMER_HEALTH_HOST="127.0.0.1",
        CONSUMER_HEALTH_PORT=0,
        CHANGE_PUBLISH_DRAIN_TIMEOUT_SECONDS=2.0,
        TESTING=True,
    )


@pytest.fixture
def kafka_clients() -> FakeKafkaClients:
    return FakeKafkaClients()


@pytest.fixture
def kafka_factories(kafka_clients: FakeKafkaClients) -> KafkaClientFactories:
    return KafkaClientFactories(producer=kafka_clients.make_producer, consumer=kafka_clients.make_consumer)


# ===== App with fake broker clients and a file-backed SQLite database =====
@pytest_asyncio.fixture
async def app(test_settings: Settings, kafka_factories: KafkaClientFactories) -> AsyncGenerator[FastAPI, None]:
    from app.core.container import create_app_container
    from app.main import create_app

    container = create_app_container(test_settings, kafka_factories)
    application = create_app(test_settings, container)

    # runs startup (tables, default user, producer) and closes the container afterwards
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            timeout=30.0,
    ) as c:
        yield c

