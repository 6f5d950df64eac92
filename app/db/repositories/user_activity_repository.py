from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import UserActivityRecord
from app.db.repositories._time import as_utc
from app.domain.enums.user import UserAction
from app.domain.user import UserActivity


class UserActivityRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def record(self, user_id: int | None, action: UserAction, ip_address: str | None) -> UserActivity:
        row = UserActivityRecord(user_id=user_id, action=action.value, ip_address=ip_address)
        self._session.add(row)
        await self._session.commit()
        await self._session.refresh(row)
        return UserActivity(
            id=row.id,
            user_id=row.user_id,
            action=UserAction(row.action),
            ip_address=row.ip_address,
            timestamp=as_utc(row.timestamp),
        )
