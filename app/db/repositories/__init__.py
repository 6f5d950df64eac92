from app.db.repositories.user_activity_repository import UserActivityRepository
from app.db.repositories.user_repository import UserRepository

__all__ = [
    "UserActivityRepository",
    "UserRepository",
]
