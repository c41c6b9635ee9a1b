"""
Application configuration and environment settings.
"""
from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Union


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "EasySplit"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./easysplit.db"
    DB_ECHO: bool = False
    AUTO_CREATE_TABLES: bool = True

    # CORS
    CORS_ORIGINS: Union[List[str], str] = ["http://localhost:5000", "http://localhost:5173"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Share codes
    CODE_LENGTH: int = 8  # 6-character codes are still accepted for legacy menus
    CODE_MAX_ATTEMPTS: int = 10
    DEFAULT_CURRENCY: str = "£"

    # Code lookups are the only access control, so they are rate limited per client address
    RATE_LIMIT_REQUESTS: int = 60
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Client
    API_BASE_URL: str = "http://localhost:8000"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    SAVE_DEBOUNCE_SECONDS: float = 1.0
    POLL_INTERVAL_SECONDS: float = 5.0

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
