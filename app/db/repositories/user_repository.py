from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import UserRecord
from app.db.repositories._time import as_utc
from app.domain.user import DomainUserCreate, User, UserAlreadyExistsError


def _to_domain(row: UserRecord) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.password,
        token=row.token,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


class UserRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_username_or_email(self, identifier: str) -> User | None:
        stmt = select(UserRecord).where(or_(UserRecord.username == identifier, UserRecord.email == identifier))
        row = (await self._session.execute(stmt)).scalars().first()
        return _to_domain(row) if row else None

    async def get_user_by_id(self, user_id: int) -> User | None:
        row = await self._session.get(UserRecord, user_id)
        return _to_domain(row) if row else None

    async def exists(self, username: str, email: str) -> bool:
        stmt = select(UserRecord.id).where(or_(UserRecord.username == username, UserRecord.email == email))
        return (await self._session.execute(stmt)).first() is not None

    async def create_user(self, create_data: DomainUserCreate) -> User:
        if await self.exists(create_data.username, create_data.email):
            raise UserAlreadyExistsError()

        row = UserRecord(
            username=create_data.username,
            email=create_data.email,
            password=create_data.hashed_password,
        )
        self._session.add(row)
        try:
            await self._session.commit()
        except IntegrityError as e:
            # lost a race against a concurrent registration
            await self._session.rollback()
            raise UserAlreadyExistsError() from e

        await self._session.refresh(row)
        return _to_domain(row)

    async def set_token(self, user_id: int, token: str | None) -> bool:
        """Store (or clear, with ``None``) the active token; False when the row is gone."""
        stmt = update(UserRecord).where(UserRecord.id == user_id).values(token=token)
        result = await self._session.execute(stmt)
        await self._session.commit()
        return bool(result.rowcount)
