import logging
from collections.abc import AsyncIterator

from dishka import Provider, Scope, from_context, provide
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database_context import (
    AsyncDatabaseConnection,
    DatabaseConfig,
    create_database_connection,
)
from app.core.logging import get_logger
from app.core.logging import logger as app_logger
from app.core.security import SecurityService
from app.db.repositories import UserActivityRepository, UserRepository
from app.events.change_publisher import ChangeEventPublisher
from app.events.core import (
    ChangeEventConsumer,
    ChangeEventProducer,
    ChangeRecordSerializer,
    ConsumerConfig,
    KafkaClientFactories,
    ProducerConfig,
)
from app.services.auth_service import AuthService
from app.services.change_processor.health_server import HealthCheckServer
from app.services.change_processor.processor import ChangeProcessor
from app.services.change_processor.worker import ChangeConsumerWorker
from app.settings import Settings


class SettingsProvider(Provider):
    scope = Scope.APP

    settings = from_context(provides=Settings, scope=Scope.APP)
    kafka_clients = from_context(provides=KafkaClientFactories, scope=Scope.APP)


class LoggingProvider(Provider):
    scope = Scope.APP

    @provide
    def get_app_logger(self) -> logging.Logger:
        return app_logger


class DatabaseProvider(Provider):
    scope = Scope.APP

    @provide
    async def get_database_connection(self, settings: Settings) -> AsyncIterator[AsyncDatabaseConnection]:
        db_config = DatabaseConfig(
            url=settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            pool_size=settings.DATABASE_POOL_SIZE,
        )

        db_connection = create_database_connection(db_config, get_logger("db"))
        await db_connection.connect()
        yield db_connection
        await db_connection.disconnect()

    @provide
    def get_session_factory(self, db_connection: AsyncDatabaseConnection) -> async_sessionmaker[AsyncSession]:
        return db_connection.session_factory

    @provide(scope=Scope.REQUEST)
    async def get_session(self, session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session


class SerializationProvider(Provider):
    scope = Scope.APP

    @provide
    def get_serializer(self) -> ChangeRecordSerializer:
        return ChangeRecordSerializer()


class MessagingProvider(Provider):
    scope = Scope.APP

    @provide
    async def get_change_producer(
            self,
            settings: Settings,
            serializer: ChangeRecordSerializer,
            kafka_clients: KafkaClientFactories,
    ) -> AsyncIterator[ChangeEventProducer]:
        config = ProducerConfig(
            bootstrap_servers=settings.kafka_brokers,
            client_id=settings.KAFKA_PRODUCER_CLIENT_ID,
            request_timeout_ms=settings.KAFKA_REQUEST_TIMEOUT_MS,
            max_retries=settings.CHANGE_PUBLISH_MAX_RETRIES,
            retry_base_delay_seconds=settings.CHANGE_PUBLISH_RETRY_BASE_DELAY_SECONDS,
        )
        producer = ChangeEventProducer(config, get_logger("kafka"), serializer, kafka_clients.producer)
        # a broker outage at startup is logged, not raised
        await producer.start()
        yield producer
        await producer.stop()

    @provide
    async def get_change_publisher(
            self,
            settings: Settings,
            producer: ChangeEventProducer,
    ) -> AsyncIterator[ChangeEventPublisher]:
        publisher = ChangeEventPublisher(producer, settings.KAFKA_CHANGES_TOPIC, get_logger("kafka"))
        yield publisher
        await publisher.drain(settings.CHANGE_PUBLISH_DRAIN_TIMEOUT_SECONDS)


class AuthProvider(Provider):
    scope = Scope.APP

    @provide
    def get_security_service(self, settings: Settings) -> SecurityService:
        return SecurityService(settings)

    @provide(scope=Scope.REQUEST)
    def get_user_repository(self, session: AsyncSession) -> UserRepository:
        return UserRepository(session)

    @provide(scope=Scope.REQUEST)
    def get_user_activity_repository(self, session: AsyncSession) -> UserActivityRepository:
        return UserActivityRepository(session)

    @provide(scope=Scope.REQUEST)
    def get_auth_service(
            self,
            user_repository: UserRepository,
            activity_repository: UserActivityRepository,
            security_service: SecurityService,
            publisher: ChangeEventPublisher,
            logger: logging.Logger,
    ) -> AuthService:
        return AuthService(user_repository, activity_repository, security_service, publisher, logger)


class ChangeConsumerProvider(Provider):
    scope = Scope.APP

    @provide
    def get_consumer_config(self, settings: Settings) -> ConsumerConfig:
        return ConsumerConfig(
            bootstrap_servers=settings.kafka_brokers,
            group_id=settings.KAFKA_CONSUMER_GROUP_ID,
            topic=settings.KAFKA_CHANGES_TOPIC,
            client_id=settings.KAFKA_CONSUMER_CLIENT_ID,
            auto_offset_reset=settings.KAFKA_AUTO_OFFSET_RESET,
            session_timeout_ms=settings.KAFKA_SESSION_TIMEOUT_MS,
            heartbeat_interval_ms=settings.KAFKA_HEARTBEAT_INTERVAL_MS,
            request_timeout_ms=settings.KAFKA_REQUEST_TIMEOUT_MS,
            retry_backoff_ms=settings.KAFKA_RETRY_BACKOFF_MS,
        )

    @provide
    def get_change_processor(self, settings: Settings, serializer: ChangeRecordSerializer) -> ChangeProcessor:
        return ChangeProcessor(
            sink=get_logger("database"),
            logger=get_logger("consumer"),
            serializer=serializer,
            stats_interval=settings.CHANGE_STATS_INTERVAL,
            processed_by=settings.CONSUMER_SERVICE_NAME,
        )

    @provide
    def get_change_consumer(
            self,
            config: ConsumerConfig,
            processor: ChangeProcessor,
            kafka_clients: KafkaClientFactories,
    ) -> ChangeEventConsumer:
        return ChangeEventConsumer(
            config,
            processor,
            get_logger("consumer"),
            kafka_logger=get_logger("kafka"),
            client_factory=kafka_clients.consumer,
            fetch_error_backoff_seconds=config.retry_backoff_ms / 1000,
        )

    @provide
    def get_health_server(self, settings: Settings) -> HealthCheckServer:
        return HealthCheckServer(
            host=settings.CONSUMER_HEALTH_HOST,
            port=settings.CONSUMER_HEALTH_PORT,
            service_name=settings.CONSUMER_SERVICE_NAME,
            logger=get_logger("consumer"),
        )

    @provide
    def get_worker(self, consumer: ChangeEventConsumer, health_server: HealthCheckServer) -> ChangeConsumerWorker:
        return ChangeConsumerWorker(consumer, health_server, get_logger("consumer"))

