from dishka import AsyncContainer, make_async_container
from dishka.integrations.fastapi import FastapiProvider

from app.core.providers import (
    AuthProvider,
    ChangeConsumerProvider,
    DatabaseProvider,
    LoggingProvider,
    MessagingProvider,
    SerializationProvider,
    SettingsProvider,
)
from app.events.core import KafkaClientFactories
from app.settings import Settings


def create_app_container(settings: Settings, kafka_clients: KafkaClientFactories | None = None) -> AsyncContainer:
    """
    Create the application DI container.
    """
    return make_async_container(
        SettingsProvider(),
        LoggingProvider(),
        DatabaseProvider(),
        SerializationProvider(),
        MessagingProvider(),
        AuthProvider(),
        FastapiProvider(),
        context={Settings: settings, KafkaClientFactories: kafka_clients or KafkaClientFactories()},
    )


def create_change_consumer_container(
        settings: Settings,
        kafka_clients: KafkaClientFactories | None = None,
) -> AsyncContainer:
    """
    Create a minimal DI container for the change consumer worker.
    Includes only settings, logging, serialization and the consumer pipeline.
    """
    return make_async_container(
        SettingsProvider(),
        LoggingProvider(),
        SerializationProvider(),
        ChangeConsumerProvider(),
        context={Settings: settings, KafkaClientFactories: kafka_clients or KafkaClientFactories()},
    )
