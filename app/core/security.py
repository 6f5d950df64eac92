from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from passlib.context import CryptContext

from app.domain.user import InvalidTokenError
from app.settings import Settings


class SecurityService:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.BCRYPT_ROUNDS,
        )

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return self.pwd_context.verify(plain_password, hashed_password)  # type: ignore

    def get_password_hash(self, password: str) -> str:
        return self.pwd_context.hash(password)  # type: ignore

    def create_access_token(self, user_id: int, username: str, expires_delta: timedelta | None = None) -> str:
        expires_delta = expires_delta or timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        now = datetime.now(timezone.utc)
        to_encode: dict[str, Any] = {
            "sub": str(user_id),
            "userId": user_id,
            "username": username,
            "iat": now,
            "exp": now + expires_delta,
        }
        return jwt.encode(to_encode, self.settings.SECRET_KEY, algorithm=self.settings.ALGORITHM)

    def decode_access_token(self, token: str) -> int:
        """Return the user id carried by a valid token.

        Raises:
            InvalidTokenError: bad signature, expired, or missing the user id claim
        """
        try:
            payload = jwt.decode(token, self.settings.SECRET_KEY, algorithms=[self.settings.ALGORITHM])
        except jwt.PyJWTError as e:
            raise InvalidTokenError() from e

        user_id = payload.get("userId")
        if not isinstance(user_id, int):
            raise InvalidTokenError()
        return user_id
