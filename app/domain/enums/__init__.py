from app.domain.enums.change import ChangeOperation
from app.domain.enums.user import UserAction

__all__ = [
    "ChangeOperation",
    "UserAction",
]
