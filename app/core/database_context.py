import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.db.models import Base


class DatabaseError(Exception):
    pass


class DatabaseNotInitializedError(DatabaseError):
    """Raised when attempting to use database before initialization."""

    pass


class DatabaseAlreadyInitializedError(DatabaseError):
    """Raised when attempting to initialize an already initialized database."""

    pass


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    echo: bool = False
    pool_size: int = 10
    pool_pre_ping: bool = True

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def to_engine_kwargs(self) -> dict[str, object]:
        kwargs: dict[str, object] = {"echo": self.echo, "pool_pre_ping": self.pool_pre_ping}
        # SQLite uses a static/null pool that rejects sizing arguments
        if not self.is_sqlite:
            kwargs["pool_size"] = self.pool_size
        return kwargs


class AsyncDatabaseConnection:
    __slots__ = ("_config", "_engine", "_session_factory", "logger")

    def __init__(self, config: DatabaseConfig, logger: logging.Logger) -> None:
        self._config = config
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self.logger = logger

    async def connect(self) -> None:
        """
        Create the engine and verify that the database answers.

        Raises:
            DatabaseAlreadyInitializedError: If already connected
            SQLAlchemyError: If the database cannot be reached
        """
        if self._engine is not None:
            raise DatabaseAlreadyInitializedError("Connection already established")

        engine = create_async_engine(self._config.url, **self._config.to_engine_kwargs())
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            self.logger.error(f"Error connecting to database: {e}")
            await engine.dispose()
            raise

        self.logger.info(f"Connected to database ({engine.dialect.name})")
        self._engine = engine
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async def create_schema(self) -> None:
        """Create the users and user_activity tables when missing."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.logger.info("Database tables initialized successfully")

    async def disconnect(self) -> None:
        if self._engine is not None:
            self.logger.info("Closing database connection")
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseNotInitializedError("Database connection not established")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise DatabaseNotInitializedError("Database connection not established")
        return self._session_factory

    def is_connected(self) -> bool:
        return self._engine is not None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Open a session; the caller commits.

        Example:
            async with connection.session() as session:
                session.add(row)
                await session.commit()
        """
        async with self.session_factory() as session:
            yield session


def create_database_connection(config: DatabaseConfig, logger: logging.Logger) -> AsyncDatabaseConnection:
    return AsyncDatabaseConnection(config, logger)
