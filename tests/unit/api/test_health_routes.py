import httpx
import pytest

from app.settings import Settings

from tests.helpers.fakes import FakeKafkaClients

pytestmark = pytest.mark.unit


async def test_api_health(client: httpx.AsyncClient) -> None:
    resp = await client.get("/api/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "OK"
    assert body["service"] == "backend-api"
    assert body["timestamp"].endswith("Z")


async def test_correlation_id_is_echoed(client: httpx.AsyncClient) -> None:
    resp = await client.get("/api/health", headers={"X-Correlation-ID": "req_abc"})

    assert resp.headers["X-Correlation-ID"] == "req_abc"


async def test_api_starts_when_broker_is_down(test_settings: Settings) -> None:
    from app.core.container import create_app_container
    from app.events.core import KafkaClientFactories, ProducerState
    from app.events.core.producer import ChangeEventProducer
    from app.main import create_app

    clients = FakeKafkaClients(producer_fail_start=True)
    factories = KafkaClientFactories(producer=clients.make_producer, consumer=clients.make_consumer)
    application = create_app(test_settings, create_app_container(test_settings, factories))

    async with application.router.lifespan_context(application):
        producer = await application.state.dishka_container.get(ChangeEventProducer)
        assert producer.state == ProducerState.ERROR

        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=application), base_url="http://test") as client:
            health = await client.get("/api/health")
            register = await client.post(
                "/api/register", json={"username": "carol", "email": "carol@example.com", "password": "pw"}
            )

    assert health.status_code == 200
    assert register.status_code == 201
