from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dishka import AsyncContainer
from fastapi import FastAPI

from app.core.database_context import AsyncDatabaseConnection
from app.core.logging import logger
from app.core.security import SecurityService
from app.core.startup import ensure_default_user, initialize_database
from app.events.change_publisher import ChangeEventPublisher
from app.settings import Settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan with dishka dependency injection.

    Startup: database connection and tables, default user, change producer.
    Shutdown (container close, reverse order): drain pending change publishes,
    stop the producer, dispose of the engine.
    """
    container: AsyncContainer = app.state.dishka_container
    settings = await container.get(Settings)
    logger.info(
        "Starting application with dishka DI",
        extra={
            "project_name": settings.PROJECT_NAME,
            "environment": "test" if settings.TESTING else "production",
        },
    )

    try:
        db_connection = await container.get(AsyncDatabaseConnection)
        await initialize_database(db_connection)

        security = await container.get(SecurityService)
        await ensure_default_user(db_connection, security, settings, logger)

        # opens the producer so the first request does not pay for the connection
        await container.get(ChangeEventPublisher)
        logger.info("Change event publisher ready")

        yield
    finally:
        logger.info("Shutting down application")
        await container.close()
        logger.info("Application shutdown complete")
