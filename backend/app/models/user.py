from sqlalchemy import Column, String, DateTime, func, Integer

from core.database import Base

class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(100), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    avatar = Column(String(512), nullable=False)
    cover_image = Column(String(512), nullable=False, default="")

    # at most one honored refresh token per user; NULL after logout
    refresh_token = Column(String(1024), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now(), nullable=False)

# columns that may leave the service; hashed_password and refresh_token never do
PUBLIC_COLUMNS = (
    User.user_id,
    User.username,
    User.email,
    User.full_name,
    User.avatar,
    User.cover_image,
    User.created_at,
    User.updated_at,
)
