from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables (and an optional .env file).

    Both processes read the same settings: the API uses the database, security and
    producer sections; the change consumer worker uses the consumer and health sections.
    """

    PROJECT_NAME: str = "auditstream"
    API_PREFIX: str = "/api"
    SERVICE_NAME: str = "backend-api"

    SECRET_KEY: str = Field(
        default="auditstream-development-secret-key",  # override in every deployed environment
        min_length=32,
        description="Secret key for JWT token signing. Must be at least 32 characters.",
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    BCRYPT_ROUNDS: int = 10

    # Relational database (any SQLAlchemy async URL)
    DATABASE_URL: str = "mysql+aiomysql://root:@tidb:4000/auditstream"
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 10
    CREATE_DEFAULT_USER: bool = True
    DEFAULT_USER_USERNAME: str = "admin"
    DEFAULT_USER_EMAIL: str = "admin@example.com"
    DEFAULT_USER_PASSWORD: str = "admin123"

    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 3001
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])

    # Change-event pipeline
    KAFKA_BOOTSTRAP_SERVERS: str = "kafka:9092"  # comma separated broker list
    KAFKA_CHANGES_TOPIC: str = "database-changes"
    KAFKA_CONSUMER_GROUP_ID: str = "database-changes-group"
    KAFKA_PRODUCER_CLIENT_ID: str = "backend-api"
    KAFKA_CONSUMER_CLIENT_ID: str = "database-change-consumer"
    KAFKA_SESSION_TIMEOUT_MS: int = 30000
    KAFKA_HEARTBEAT_INTERVAL_MS: int = 3000
    KAFKA_AUTO_OFFSET_RESET: str = "latest"
    KAFKA_RETRY_BACKOFF_MS: int = 1000
    KAFKA_REQUEST_TIMEOUT_MS: int = 40000

    CHANGE_PUBLISH_MAX_RETRIES: int = Field(default=0, ge=0)
    CHANGE_PUBLISH_RETRY_BASE_DELAY_SECONDS: float = 0.5
    CHANGE_PUBLISH_DRAIN_TIMEOUT_SECONDS: float = 10.0
    CHANGE_STATS_INTERVAL: int = Field(default=10, ge=1)

    # Liveness endpoint of the change consumer worker
    CONSUMER_SERVICE_NAME: str = "kafka-consumer"
    CONSUMER_HEALTH_HOST: str = "0.0.0.0"
    CONSUMER_HEALTH_PORT: int = 3003

    TESTING: bool = False

    # Logging configuration
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    LOG_FILE: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def kafka_brokers(self) -> list[str]:
        return [broker.strip() for broker in self.KAFKA_BOOTSTRAP_SERVERS.split(",") if broker.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
