import logging

from app.core.database_context import AsyncDatabaseConnection
from app.core.security import SecurityService
from app.db.repositories import UserRepository
from app.domain.user import DomainUserCreate, UserAlreadyExistsError
from app.settings import Settings


async def initialize_database(db_connection: AsyncDatabaseConnection) -> None:
    await db_connection.create_schema()


async def ensure_default_user(
        db_connection: AsyncDatabaseConnection,
        security: SecurityService,
        settings: Settings,
        logger: logging.Logger,
) -> None:
    """Create the bootstrap account unless a user with that name or email exists."""
    if not settings.CREATE_DEFAULT_USER:
        return

    async with db_connection.session() as session:
        user_repo = UserRepository(session)
        if await user_repo.exists(settings.DEFAULT_USER_USERNAME, settings.DEFAULT_USER_EMAIL):
            logger.info(f"Default user '{settings.DEFAULT_USER_USERNAME}' already present")
            return

        try:
            await user_repo.create_user(
                DomainUserCreate(
                    username=settings.DEFAULT_USER_USERNAME,
                    email=settings.DEFAULT_USER_EMAIL,
                    hashed_password=security.get_password_hash(settings.DEFAULT_USER_PASSWORD),
                )
            )
        except UserAlreadyExistsError:
            # another API replica created it first
            return

    logger.info(f"Default user '{settings.DEFAULT_USER_USERNAME}' created")
