from .exceptions import (
    AuthenticationRequiredError,
    InvalidCredentialsError,
    InvalidTokenError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from .user_models import DomainUserCreate, LoginResult, User, UserActivity

__all__ = [
    "AuthenticationRequiredError",
    "DomainUserCreate",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "LoginResult",
    "User",
    "UserActivity",
    "UserAlreadyExistsError",
    "UserNotFoundError",
]
