from datetime import datetime
from pydantic import BaseModel, EmailStr, model_validator

class UserPublic(BaseModel):
    """
    User identity without secrets (no password hash, no refresh token)
    """
    user_id: int
    username: str
    email: EmailStr
    full_name: str
    avatar: str
    cover_image: str = ""
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class UserLogin(BaseModel):
    username: str | None = None
    email: str | None = None
    password: str

    @model_validator(mode="after")
    def username_or_email(self) -> "UserLogin":
        if not (self.username or "").strip() and not (self.email or "").strip():
            raise ValueError("username or email is required")
        return self

class UserCreate(BaseModel):
    full_name: str
    username: str
    email: EmailStr
    password: str
