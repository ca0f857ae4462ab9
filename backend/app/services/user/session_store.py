from fastapi import Depends
from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.database import get_db
from models.user import User, PUBLIC_COLUMNS
from schemas.user import UserPublic

class SessionStore:
    """
    Narrow view of the user table used for token bookkeeping.

    Writes touch exactly one column with a single UPDATE statement, so they
    never run whole-record validation and are atomic per row.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: int) -> User | None:
        """Full record, secrets included"""
        result = await self.db.execute(
            select(User)
            .where(User.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get_public_user(self, user_id: int) -> UserPublic | None:
        """Record projected without password hash and refresh token"""
        result = await self.db.execute(select(*PUBLIC_COLUMNS).where(User.user_id == user_id))
        row = result.first()
        return UserPublic.model_validate(dict(row._mapping)) if row else None

    async def get_user_by_username_or_email(
        self,
        username: str | None = None,
        email: str | None = None,
    ) -> User | None:
        conditions = []
        if username:
            conditions.append(User.username == username.strip().lower())
        if email:
            conditions.append(User.email == email.strip())
        if not conditions:
            return None

        result = await self.db.execute(select(User).where(or_(*conditions)))
        return result.scalars().first()

    async def set_refresh_token(self, user_id: int, token: str) -> bool:
        return await self._write_refresh_token(user_id, token)

    async def clear_refresh_token(self, user_id: int) -> bool:
        return await self._write_refresh_token(user_id, None)

    async def swap_refresh_token(self, user_id: int, expected: str, token: str) -> bool:
        """Replace the refresh token only if it still equals `expected`"""
        return await self._write_refresh_token(user_id, token, User.refresh_token == expected)

    async def _write_refresh_token(self, user_id: int, token: str | None, *conditions) -> bool:
        try:
            result = await self.db.execute(
                update(User)
                .where(User.user_id == user_id, *conditions)
                .values(refresh_token=token)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return result.rowcount == 1

def get_session_store(db: AsyncSession = Depends(get_db)) -> SessionStore:
    return SessionStore(db)
