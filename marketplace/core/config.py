from typing import Set

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Classifieds Marketplace API"
    VERSION: str = "v1"
    DESCRIPTION: str = "Follows and ad reviews for the classifieds marketplace"

    API_V1_STR: str = "/api/v1"

    # --- Database & JWT Secrets ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./marketplace.db"
    JWT_SECRET: str

    # Database Pool Settings
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600
    DB_POOL_TIMEOUT: int = 30
    DB_CREATE_TABLES: bool = True

    # --- Token Configuration ---
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    TOKEN_ISSUER: str = "marketplace-api"
    TOKEN_AUDIENCE: str = "marketplace:users"

    # --- Redis Configuration ---
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_ENABLED: bool = True
    CACHE_TTL: int = 300
    # Counts and ratings; bounds how long a read racing a write can stay stale
    AGGREGATE_CACHE_TTL: int = 30

    # --- Reviews ---
    REVIEW_MIN_RATING: int = 1
    REVIEW_MAX_RATING: int = 5
    REVIEW_BODY_MAX_LENGTH: int = 2000

    # --- Pagination ---
    DEFAULT_PAGE_SIZE: int = 20
    REVIEW_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100
    MAX_PAGE: int = 1_000_000

    # --- Identifiers ---
    MAX_ID: int = 2**63 - 1

    # --- HTTP ---
    CORS_ORIGINS: str = ""
    ALLOWED_HOSTS: str = ""
    MAX_REQUEST_SIZE: int = 1024 * 1024
    LOG_LEVEL: str = "INFO"
    LOGGING_EXCLUDE_PATHS: Set[str] = {"/health"}

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
