"""Configuration settings for relsync.

Values are read from the environment (and an optional `.env` file).
"""

from typing import Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Attributes:
        PROJECT_NAME: Name used in logs and the API title
        LOCAL_DEVELOPMENT: Human readable logs instead of JSON
        LOG_LEVEL: Root log level
        POSTGRES_*: Job store connection
        QDRANT_URL: Default vector store endpoint
        OPENAI_API_KEY: Key for the dense embedder
        TEMPORAL_*: Work queue connection and worker tuning
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    PROJECT_NAME: str = "relsync"
    LOCAL_DEVELOPMENT: bool = False
    TESTING: bool = False
    LOG_LEVEL: str = "INFO"

    # Job store
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "relsync"
    POSTGRES_PASSWORD: str = "relsync"
    POSTGRES_DB: str = "relsync"
    DATABASE_URL_OVERRIDE: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy async URL; takes precedence over POSTGRES_* when set",
    )
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Vector store
    QDRANT_URL: str = "http://localhost:6333"
    QDRANT_API_KEY: Optional[str] = None
    QDRANT_TIMEOUT_SECONDS: int = 60

    # Embeddings
    OPENAI_API_KEY: Optional[str] = None
    EMBEDDING_MODEL: str = "text-embedding-3-large"
    EMBEDDING_DIMENSIONS: int = 3072
    EMBEDDING_REQUESTS_PER_MINUTE: int = 600
    EMBEDDING_RATE_LIMIT_MAX_WAIT_SECONDS: float = 30.0

    # Work queue
    TEMPORAL_HOST: str = "localhost"
    TEMPORAL_PORT: int = 7233
    TEMPORAL_NAMESPACE: str = "default"
    TEMPORAL_TASK_QUEUE: str = "relsync-sync-queue"
    TEMPORAL_GRACEFUL_SHUTDOWN_TIMEOUT: int = 300
    TEMPORAL_DISABLE_SANDBOX: bool = False
    TEMPORAL_MAX_CONCURRENT_ACTIVITIES: int = 8
    WORKER_METRICS_PORT: int = 8889

    # Sync engine
    SYNC_DEFAULT_BATCH_SIZE: int = 100
    SYNC_DEFAULT_BATCH_DELAY_MS: int = 1000
    WEBHOOK_MAX_CODES: int = 500
    WEBHOOK_CHUNK_SIZE: int = 20
    STALE_JOB_TIMEOUT_MINUTES: int = 30
    JOB_RETENTION_DAYS: int = 30
    STALE_JOB_SWEEP_CRON: str = "*/5 * * * *"
    JOB_RETENTION_CRON: str = "0 2 * * *"

    @computed_field  # type: ignore[misc]
    @property
    def SQLALCHEMY_ASYNC_DATABASE_URI(self) -> str:
        """Async SQLAlchemy URL for the job store."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @computed_field  # type: ignore[misc]
    @property
    def TEMPORAL_ADDRESS(self) -> str:
        """Host:port of the Temporal frontend."""
        return f"{self.TEMPORAL_HOST}:{self.TEMPORAL_PORT}"


settings = Settings()
