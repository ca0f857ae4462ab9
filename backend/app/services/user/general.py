import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.errors import ApiError, Conflict, Unauthorized, UserNotFound, ValidationError
from core.security.hashing import hash_password, verify_password
from models.user import User
from schemas.user import UserPublic
from services.user.session_store import SessionStore

logger = logging.getLogger(__name__)

class UserGeneralService:
    async def check_existence(self, db: AsyncSession, username: str, email: str) -> bool:
        """True if the username or email is already taken"""
        result = await db.execute(
            select(User.user_id).where((User.username == username.lower()) | (User.email == email))
        )
        return result.first() is not None

    async def create_user(
        self,
        db: AsyncSession,
        full_name: str,
        username: str,
        email: str,
        password: str,
        avatar: str,
        cover_image: str | None = None,
    ) -> UserPublic:
        """Create a user and return it re-read without secrets"""
        new_user = User(
            full_name=full_name,
            username=username.lower(),
            email=email,
            hashed_password=hash_password(password),
            avatar=avatar,
            cover_image=cover_image or "",
        )
        db.add(new_user)
        await db.commit()

        created_user = await SessionStore(db).get_public_user(new_user.user_id)
        if created_user is None:
            raise ApiError("Something went wrong while registering the user")
        logger.info(f"✅ Registered user {created_user.user_id} ({created_user.username})")
        return created_user

    async def authenticate(
        self,
        store: SessionStore,
        username: str | None,
        email: str | None,
        password: str,
    ) -> User:
        """Resolve login credentials to a user, checking the password hash"""
        user = await store.get_user_by_username_or_email(username=username, email=email)
        if user is None:
            raise UserNotFound("User does not exist")

        if not verify_password(password, user.hashed_password):
            raise Unauthorized("Invalid user credentials")
        return user

    @staticmethod
    def require_fields(**fields: str | None) -> None:
        if any(value is None or value.strip() == "" for value in fields.values()):
            raise ValidationError("All fields are required")

    async def ensure_available(self, db: AsyncSession, username: str, email: str) -> None:
        if await self.check_existence(db, username, email):
            raise Conflict("User with email or username already exists")

user_general_service = UserGeneralService()
