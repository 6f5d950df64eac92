from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from pydantic import BaseModel, ConfigDict

from app.core.utils import StringEnum

# Minimum ratio between session timeout and heartbeat interval; anything tighter
# lets a single late heartbeat trigger a group rebalance.
SESSION_TO_HEARTBEAT_RATIO = 10


class ProducerState(StringEnum):
    """Kafka producer state enumeration."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


class ConsumerState(StringEnum):
    """Consumer loop state machine.

    DISCONNECTED -> CONNECTING -> SUBSCRIBED -> RUNNING -> DISCONNECTING -> DISCONNECTED
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    RUNNING = "running"
    DISCONNECTING = "disconnecting"


@dataclass(slots=True)
class ProducerConfig:
    """Kafka producer configuration."""

    bootstrap_servers: list[str]
    client_id: str = "backend-api"
    request_timeout_ms: int = 40000
    retry_backoff_ms: int = 100

    # Application-level retry on top of the client's own retries (0 = single send)
    max_retries: int = 0
    retry_base_delay_seconds: float = 0.5

    def to_producer_kwargs(self) -> dict[str, Any]:
        """Convert to AIOKafkaProducer keyword arguments."""
        return {
            "bootstrap_servers": self.bootstrap_servers,
            "client_id": self.client_id,
            "request_timeout_ms": self.request_timeout_ms,
            "retry_backoff_ms": self.retry_backoff_ms,
        }


@dataclass(slots=True)
class ConsumerConfig:
    """Kafka consumer configuration."""

    bootstrap_servers: list[str]
    group_id: str
    topic: str
    client_id: str = "database-change-consumer"

    # Offset management: offsets are committed after each processed record
    auto_offset_reset: str = "latest"
    enable_auto_commit: bool = False

    # Session configuration
    session_timeout_ms: int = 30000
    heartbeat_interval_ms: int = 3000
    max_poll_interval_ms: int = 300000
    request_timeout_ms: int = 40000
    retry_backoff_ms: int = 1000

    def __post_init__(self) -> None:
        if self.heartbeat_interval_ms <= 0:
            raise ValueError("heartbeat_interval_ms must be positive")
        if self.session_timeout_ms < self.heartbeat_interval_ms * SESSION_TO_HEARTBEAT_RATIO:
            raise ValueError(
                f"session_timeout_ms ({self.session_timeout_ms}) must be at least "
                f"{SESSION_TO_HEARTBEAT_RATIO}x heartbeat_interval_ms ({self.heartbeat_interval_ms})"
            )

    def to_consumer_kwargs(self) -> dict[str, Any]:
        """Convert to AIOKafkaConsumer keyword arguments."""
        return {
            "bootstrap_servers": self.bootstrap_servers,
            "group_id": self.group_id,
            "client_id": self.client_id,
            "auto_offset_reset": self.auto_offset_reset,
            "enable_auto_commit": self.enable_auto_commit,
            "session_timeout_ms": self.session_timeout_ms,
            "heartbeat_interval_ms": self.heartbeat_interval_ms,
            "max_poll_interval_ms": self.max_poll_interval_ms,
            "request_timeout_ms": self.request_timeout_ms,
            "retry_backoff_ms": self.retry_backoff_ms,
        }


@dataclass(slots=True)
class ProducerMetrics:
    """Metrics tracking for the change producer."""

    messages_sent: int = 0
    messages_failed: int = 0
    bytes_sent: int = 0

    last_error: str | None = None
    last_error_time: datetime | None = None


@dataclass(slots=True)
class ConsumerMetrics:
    """Metrics tracking for the change consumer."""

    messages_consumed: int = 0
    bytes_consumed: int = 0

    fetch_errors: int = 0
    commit_failures: int = 0

    last_message_time: datetime | None = None


@dataclass(slots=True)
class ProcessingStats:
    """Rolling throughput of the change processor.

    Owned by the consumer loop and handed to the processor on every call; only
    that single task mutates it.
    """

    total_processed: int = 0
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    average_rate_per_minute: float = 0.0


class ConsumerMetricsSnapshot(BaseModel):
    """Snapshot of consumer metrics for status reporting."""

    model_config = ConfigDict(from_attributes=True)

    messages_consumed: int
    bytes_consumed: int
    fetch_errors: int
    commit_failures: int
    total_processed: int
    last_message_time: datetime | None


class ConsumerStatus(BaseModel):
    """Consumer status information."""

    model_config = ConfigDict(from_attributes=True)

    state: str
    is_running: bool
    group_id: str
    client_id: str
    topic: str
    metrics: ConsumerMetricsSnapshot


@dataclass(frozen=True, slots=True)
class KafkaClientFactories:
    """Constructors for the broker clients; both processes build clients only through these."""

    producer: Callable[..., AIOKafkaProducer] = AIOKafkaProducer
    consumer: Callable[..., AIOKafkaConsumer] = AIOKafkaConsumer
