from .consumer import ChangeEventConsumer
from .errors import ChangeRecordDecodeError, ConsumerStateError, EventError
from .producer import ChangeEventProducer
from .serializer import ChangeRecordSerializer, encode_change, partition_key
from .types import (
    ConsumerConfig,
    ConsumerMetrics,
    ConsumerState,
    KafkaClientFactories,
    ProcessingStats,
    ProducerConfig,
    ProducerMetrics,
    ProducerState,
)

__all__ = [
    # Types
    "ProducerState",
    "ConsumerState",
    "ProducerConfig",
    "ConsumerConfig",
    "KafkaClientFactories",
    "ProducerMetrics",
    "ConsumerMetrics",
    "ProcessingStats",
    # Errors
    "EventError",
    "ChangeRecordDecodeError",
    "ConsumerStateError",
    # Core components
    "ChangeEventProducer",
    "ChangeEventConsumer",
    "ChangeRecordSerializer",
    "encode_change",
    "partition_key",
]
