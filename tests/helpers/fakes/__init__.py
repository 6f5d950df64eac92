from tests.helpers.fakes.kafka import (
    FakeAIOKafkaConsumer,
    FakeAIOKafkaProducer,
    FakeKafkaClients,
    SentMessage,
)

__all__ = [
    "FakeAIOKafkaConsumer",
    "FakeAIOKafkaProducer",
    "FakeKafkaClients",
    "SentMessage",
]
