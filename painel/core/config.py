# painel/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    # App
    ENV: str = "development"
    DEBUG: bool = False

    # Internal tool: 500 responses carry the traceback for operators
    VERBOSE_ERRORS: bool = True

    # Identity provider
    SECRET_KEY: str
    ALGORITHM: Literal["HS256", "HS512"] = "HS256"
    ADMIN_ROLE: str = "admin"

    # Database
    DATABASE_URL: str | None = None

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    WRITE_RATE_LIMIT: str = "30/minute"

    # Frontend
    CORS_ORIGINS: list[str] = [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="forbid",
    )


settings = Settings()
