import pytest

from app.settings import Settings

pytestmark = pytest.mark.unit


def test_defaults_match_deployment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("KAFKA_BOOTSTRAP_SERVERS", "LOG_LEVEL", "TESTING"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.SERVER_PORT == 3001
    assert settings.CONSUMER_HEALTH_PORT == 3003
    assert settings.KAFKA_CHANGES_TOPIC == "database-changes"
    assert settings.KAFKA_CONSUMER_GROUP_ID == "database-changes-group"
    assert settings.KAFKA_SESSION_TIMEOUT_MS == 30000
    assert settings.KAFKA_HEARTBEAT_INTERVAL_MS == 3000
    assert settings.CHANGE_STATS_INTERVAL == 10
    assert settings.CHANGE_PUBLISH_MAX_RETRIES == 0
    assert settings.kafka_brokers == ["kafka:9092"]


def test_broker_list_is_comma_separated(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KAFKA_BOOTSTRAP_SERVERS", "k1:9092, k2:9092,")

    assert Settings(_env_file=None).kafka_brokers == ["k1:9092", "k2:9092"]  # type: ignore[call-arg]


def test_short_secret_key_is_rejected() -> None:
    with pytest.raises(ValueError):
        Settings(SECRET_KEY="short", _env_file=None)  # type: ignore[call-arg]


def test_stats_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Settings(CHANGE_STATS_INTERVAL=0, _env_file=None)  # type: ignore[call-arg]
