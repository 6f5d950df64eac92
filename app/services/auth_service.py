import logging
from datetime import datetime, timezone

from fastapi import Request

from app.core.security import SecurityService
from app.db.repositories import UserActivityRepository, UserRepository
from app.domain.enums.change import ChangeOperation
from app.domain.enums.user import UserAction
from app.domain.events import isoformat_utc
from app.domain.user import (
    AuthenticationRequiredError,
    DomainUserCreate,
    InvalidCredentialsError,
    InvalidTokenError,
    LoginResult,
    User,
    UserNotFoundError,
)
from app.events.change_publisher import ChangeEventPublisher


def extract_bearer_token(request: Request) -> str | None:
    """Second word of the Authorization header, whatever the scheme word."""
    header = request.headers.get("authorization")
    if not header:
        return None
    parts = header.split(" ")
    return parts[1] if len(parts) > 1 and parts[1] else None


class AuthService:
    """User lifecycle on the write path.

    Every row mutation is followed by a change record handed to the publisher; the
    publish runs detached and never changes the outcome of the call.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        activity_repo: UserActivityRepository,
        security: SecurityService,
        publisher: ChangeEventPublisher,
        logger: logging.Logger,
    ):
        self.user_repo = user_repo
        self.activity_repo = activity_repo
        self.security = security
        self.publisher = publisher
        self.logger = logger

    async def register(self, username: str, email: str, password: str) -> User:
        hashed_password = self.security.get_password_hash(password)
        user = await self.user_repo.create_user(
            DomainUserCreate(username=username, email=email, hashed_password=hashed_password)
        )
        self.logger.info(f"User registered: {user.username} (id={user.id})")

        self.publisher.log_change(
            ChangeOperation.INSERT,
            "users",
            {"id": user.id, "username": user.username, "email": user.email},
        )
        return user

    async def login(self, identifier: str, password: str, client_ip: str) -> LoginResult:
        user = await self.user_repo.get_by_username_or_email(identifier)
        if user is None or not self.security.verify_password(password, user.hashed_password):
            self.logger.warning(f"Login failed for '{identifier}' from {client_ip}")
            raise InvalidCredentialsError()

        token = self.security.create_access_token(user.id, user.username)
        await self.user_repo.set_token(user.id, token)

        activity = {
            "timestamp": isoformat_utc(datetime.now(timezone.utc)),
            "userId": user.id,
            "action": UserAction.LOGIN.value,
            "ipAddress": client_ip,
        }
        self.logger.info(f"User activity: {activity}")
        await self.activity_repo.record(user.id, UserAction.LOGIN, client_ip)

        self.publisher.log_change(ChangeOperation.INSERT, "user_activity", activity, user.id)
        return LoginResult(user=user, token=token)

    async def logout(self, user: User, client_ip: str) -> None:
        await self.user_repo.set_token(user.id, None)

        activity = {
            "timestamp": isoformat_utc(datetime.now(timezone.utc)),
            "userId": user.id,
            "action": UserAction.LOGOUT.value,
            "ipAddress": client_ip,
        }
        self.logger.info(f"User activity: {activity}")
        await self.activity_repo.record(user.id, UserAction.LOGOUT, client_ip)

        self.publisher.log_change(ChangeOperation.UPDATE, "users", {"id": user.id, "token": None}, user.id)

    async def get_profile(self, user_id: int) -> User:
        user = await self.user_repo.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    async def get_current_user(self, request: Request) -> User:
        """Resolve the bearer token to its user.

        A missing token is 401; a token that fails verification, or is no longer
        the one stored for the user (logout, newer login), is 403.
        """
        token = extract_bearer_token(request)
        if not token:
            raise AuthenticationRequiredError()

        try:
            user_id = self.security.decode_access_token(token)
        except InvalidTokenError:
            self.logger.warning("Token verification failed")
            raise

        user = await self.user_repo.get_user_by_id(user_id)
        if user is None or user.token != token:
            raise InvalidTokenError()
        return user
