from app.db.models import Base, UserActivityRecord, UserRecord
from app.db.repositories import UserActivityRepository, UserRepository

__all__ = [
    "Base",
    "UserActivityRecord",
    "UserActivityRepository",
    "UserRecord",
    "UserRepository",
]
