# app/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
import os
from pathlib import Path
import logging
from functools import lru_cache

# Configure logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Application info
    PROJECT_NAME: str = "Content Admin"
    API_V1_STR: str = "/api/v1"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Back-office for the learning content database"

    # Set base directory for data files
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    LOGS_DIR: Path = BASE_DIR / "logs"

    # Database connection settings
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "content"
    DB_POOL_SIZE: int = 20  # Default connection pool size
    DB_MAX_OVERFLOW: int = 10  # Additional connections when pool is full
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for a connection from pool
    DB_ECHO: bool = False  # Don't log SQL in production

    # Custom database URL (optional)
    DATABASE_URL: Optional[str] = None

    # Local database settings
    LOCAL_DB_PATH: Path = DATA_DIR / "local_data.db"
    USE_LOCAL_DB: bool = os.getenv("USE_LOCAL_DB", "false").lower() in ("true", "1", "yes")

    # Pagination settings
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 1000

    # Bulk import
    IMPORT_MAX_ROWS: int = 5000  # Rows accepted per import request

    # Audit trail of write operations
    AUDIT_LOG_CHANGES: bool = True

    # Server settings
    HOST: str = "0.0.0.0"
    PORT: int = 8001
    WORKERS: int = 4
    RELOAD: bool = False  # Set to True in development
    LOG_LEVEL: str = "info"

    # CORS settings
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True

    # Debug options
    DEBUG: bool = False

    @property
    def SQLALCHEMY_LOCAL_DATABASE_URI(self) -> str:
        """Build async SQLAlchemy database URI for the local SQLite database"""
        return f"sqlite+aiosqlite:///{self.LOCAL_DB_PATH}"

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Build SQLAlchemy database URI for asyncpg"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.USE_LOCAL_DB:
            return self.SQLALCHEMY_LOCAL_DATABASE_URI
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def get_logs_dir(self) -> Path:
        """Ensure logs directory exists and return it"""
        if not self.LOGS_DIR.exists():
            self.LOGS_DIR.mkdir(parents=True)
        return self.LOGS_DIR

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=True,
        extra="ignore"
    )


# Cache the settings instance
@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Create settings instance for import
settings = get_settings()
