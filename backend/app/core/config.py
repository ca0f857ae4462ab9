import os
from pydantic import model_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    APP_NAME: str = "Session Token Service"

    # URL & URI
    DATABASE_URL: str = "sqlite+aiosqlite:///./session.db"
    FRONTEND_URL: str = "http://localhost:5173"

    # JWT (access and refresh secrets must differ)
    ACCESS_TOKEN_SECRET: str
    REFRESH_TOKEN_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 10

    # Cookies
    COOKIE_SECURE: bool = True

    # Media upload
    TEMP_UPLOAD_DIR: str = "./public/temp"
    CLOUDINARY_CLOUD_NAME: str | None = None
    CLOUDINARY_API_KEY: str | None = None
    CLOUDINARY_API_SECRET: str | None = None
    MEDIA_UPLOAD_TIMEOUT_SECONDS: float = 30.0

    LOG_LEVEL: str = "INFO"

    class Config:
        current_file_dir = os.path.dirname(os.path.abspath(__file__))
        app_dir = os.path.dirname(current_file_dir)
        backend_dir = os.path.dirname(app_dir)

        env_file = os.path.join(backend_dir, ".env")
        env_file_encoding = "utf-8"

    @model_validator(mode="after")
    def check_distinct_secrets(self) -> "Settings":
        if self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
        return self

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
