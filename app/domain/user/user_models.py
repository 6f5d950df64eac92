from datetime import datetime

from pydantic.dataclasses import dataclass

from app.domain.enums.user import UserAction


@dataclass
class User:
    """User domain model."""

    id: int
    username: str
    email: str
    hashed_password: str
    token: str | None
    created_at: datetime
    updated_at: datetime


@dataclass
class DomainUserCreate:
    """User creation data for repository (with hashed password)."""

    username: str
    email: str
    hashed_password: str


@dataclass
class UserActivity:
    """One row of the user_activity audit table."""

    id: int
    user_id: int | None
    action: UserAction
    ip_address: str | None
    timestamp: datetime


@dataclass
class LoginResult:
    user: User
    token: str
