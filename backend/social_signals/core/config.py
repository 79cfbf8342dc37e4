"""
Configuration settings for the application.
"""
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator

logger = logging.getLogger(__name__)

# Load environment variables from backend/.env if it exists
env_path = Path(__file__).resolve().parent.parent.parent / ".env"

if env_path.exists():
    load_dotenv(dotenv_path=env_path)
    logger.debug(f"[ENV] Loaded .env from: {env_path}")
else:
    logger.debug(f"[ENV] No .env file at {env_path}, using process environment")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    # API configuration
    API_PORT: int = Field(default=7778)
    API_HOST: str = Field(default="0.0.0.0")
    LOG_LEVEL: str = Field(default="INFO")

    # Database configuration
    DATABASE_URL: Optional[str] = Field(default=None)
    DB_HOST: str = Field(default="localhost")
    DB_PORT: str = Field(default="5432")
    DB_USER: str = Field(default="postgres")
    DB_PASSWORD: str = Field(default="postgres")
    DB_NAME: str = Field(default="SocialSignals")

    DB_URI: Optional[str] = None

    # CORS configuration
    CORS_ORIGINS: Union[str, List[str]] = Field(default="*")

    # Apify scraping provider
    APIFY_BASE_URL: str = Field(default="https://api.apify.com/v2")
    APIFY_POLL_INTERVAL_SECONDS: float = Field(default=10.0)
    APIFY_MAX_WAIT_SECONDS: float = Field(default=30 * 60)
    APIFY_REQUEST_TIMEOUT_SECONDS: float = Field(default=60.0)

    APIFY_REACTIONS_ACTOR: str = Field(default="apimaestro~linkedin-post-reactions")
    APIFY_POST_DETAIL_ACTOR: str = Field(default="apimaestro~linkedin-post-detail")
    APIFY_COMMENTS_ACTOR: str = Field(default="apimaestro~linkedin-post-comments-replies-engagements-scraper-no-cookies")
    APIFY_PROFILE_POSTS_ACTOR: str = Field(default="apimaestro~linkedin-profile-posts")
    APIFY_PROFILE_ENRICHMENT_ACTOR: str = Field(default="apimaestro~linkedin-profile-batch-scraper-no-cookies-required")

    # Reactions pagination
    REACTIONS_PAGE_SIZE: int = Field(default=100)
    REACTIONS_MAX_PAGES: int = Field(default=10)
    REACTIONS_POST_BATCH_SIZE: int = Field(default=32)

    # Comments pagination
    COMMENTS_BULK_BATCH_SIZE: int = Field(default=100)
    COMMENTS_MAX_CONCURRENT_BATCHES: int = Field(default=32)
    COMMENTS_PAGE_SIZE: int = Field(default=100)
    COMMENTS_PAGE_SAFETY_MARGIN: int = Field(default=2)
    COMMENTS_MAX_PAGES: int = Field(default=50)

    # Profile enrichment
    ENRICHMENT_BATCH_SIZE: int = Field(default=50)
    ENRICHMENT_MAX_CONCURRENT_JOBS: int = Field(default=32)

    # Post metadata refresh
    METADATA_BATCH_SIZE: int = Field(default=30)
    METADATA_BATCH_DELAY_SECONDS: float = Field(default=2.0)

    # Profile posts
    PROFILE_POSTS_DEFAULT_LIMIT: int = Field(default=100)

    # Webhooks
    WEBHOOK_TIMEOUT_SECONDS: float = Field(default=10.0)
    WEBHOOK_DELIVERY_DELAY_SECONDS: float = Field(default=0.1)

    # Progress records are dropped this long after a terminal state was read
    PROGRESS_RETENTION_SECONDS: int = Field(default=30)

    @field_validator("DB_URI", mode="before")
    def assemble_db_uri(cls, v: Optional[str], info: Any) -> str:
        """
        Assemble the async database URI if not provided.

        DATABASE_URL (Railway, Heroku, etc.) wins over the individual DB_* parts.
        """
        if v is not None:
            return v

        values = info.data
        database_url = values.get("DATABASE_URL")
        if database_url:
            if database_url.startswith("postgres://"):
                return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
            if database_url.startswith("postgresql://"):
                return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return database_url

        user = values.get("DB_USER")
        password = values.get("DB_PASSWORD")
        host = values.get("DB_HOST")
        port = values.get("DB_PORT")
        name = values.get("DB_NAME")

        return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{name}"

    @field_validator("CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        """
        Parse a comma-separated string into a list of CORS origins.
        """
        if isinstance(v, str) and v != "*":
            return v.split(",")
        return v

    class Config:
        """Config for the BaseSettings class."""
        env_file = ".env"
        case_sensitive = True
        extra = 'ignore'  # Ignore extra fields from environment
        validate_default = True


# Create settings object
settings = Settings()
