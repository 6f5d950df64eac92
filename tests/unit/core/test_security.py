"""Unit tests for security services."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from app.core.security import SecurityService
from app.domain.user import InvalidTokenError
from app.settings import Settings

pytestmark = pytest.mark.unit


@pytest.fixture
def security_svc(test_settings: Settings) -> SecurityService:
    return SecurityService(test_settings)


class TestPasswordHashing:
    def test_password_hash_creates_different_hash(self, security_svc: SecurityService) -> None:
        hash1 = security_svc.get_password_hash("test_password_123")
        hash2 = security_svc.get_password_hash("test_password_123")

        # salted
        assert hash1 != hash2
        assert "test_password_123" not in hash1

    def test_password_verification(self, security_svc: SecurityService) -> None:
        hashed = security_svc.get_password_hash("correct_password")

        assert security_svc.verify_password("correct_password", hashed) is True
        assert security_svc.verify_password("wrong_password", hashed) is False

    def test_cost_factor_comes_from_settings(self, test_settings: Settings) -> None:
        svc = SecurityService(test_settings.model_copy(update={"BCRYPT_ROUNDS": 5}))

        assert svc.get_password_hash("pw").startswith("$2b$05$")


class TestAccessTokens:
    def test_token_round_trip(self, security_svc: SecurityService) -> None:
        token = security_svc.create_access_token(42, "alice")

        assert security_svc.decode_access_token(token) == 42

    def test_token_claims(self, security_svc: SecurityService, test_settings: Settings) -> None:
        token = security_svc.create_access_token(42, "alice")

        payload = jwt.decode(token, test_settings.SECRET_KEY, algorithms=[test_settings.ALGORITHM])
        assert payload["userId"] == 42
        assert payload["username"] == "alice"
        lifetime = datetime.fromtimestamp(payload["exp"], timezone.utc) - datetime.fromtimestamp(payload["iat"], timezone.utc)
        assert lifetime == timedelta(hours=24)

    def test_expired_token_is_rejected(self, security_svc: SecurityService) -> None:
        token = security_svc.create_access_token(42, "alice", expires_delta=timedelta(seconds=-1))

        with pytest.raises(InvalidTokenError):
            security_svc.decode_access_token(token)

    def test_token_signed_with_other_key_is_rejected(self, security_svc: SecurityService) -> None:
        forged = jwt.encode({"userId": 42, "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
                            "another-secret-key-that-is-long-enough!", algorithm="HS256")

        with pytest.raises(InvalidTokenError):
            security_svc.decode_access_token(forged)

    def test_token_without_user_id_is_rejected(self, security_svc: SecurityService, test_settings: Settings) -> None:
        token = jwt.encode({"username": "alice"}, test_settings.SECRET_KEY, algorithm=test_settings.ALGORITHM)

        with pytest.raises(InvalidTokenError):
            security_svc.decode_access_token(token)
