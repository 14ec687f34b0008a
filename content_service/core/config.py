from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # JWT verification (tokens are issued by the auth service)
    JWT_SECRET: str = "your-super-secret-jwt-key-change-in-production"  # IMPORTANT: Change in production!
    ALGORITHM: str = "HS256"

    # Database
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_NAME: str = "blog_db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_ECHO: bool = False
    AUTO_CREATE_TABLES: bool = False  # Alembic is the normal path

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Post creation
    ALLOW_ANONYMOUS_POST_CREATION: bool = False  # Development only
    DEFAULT_AUTHOR_ID: str = "00000000-0000-0000-0000-000000000001"
    WRITE_RETRY_ATTEMPTS: int = 5  # Retries on slug / version number collisions

    # Tag service (category service owns tags)
    TAG_SERVICE_URL: str = "http://category-service:3004"
    TAG_SERVICE_TIMEOUT: float = 5.0  # seconds

    # Scheduled publishing
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_INTERVAL_SECONDS: float = 60.0
    SCHEDULER_MODE: str = "local"  # "local" or "http"
    SCHEDULER_PUBLISH_URL: str = "http://localhost:3002/api/posts/scheduled/publish"
    SCHEDULER_HTTP_TIMEOUT: float = 10.0
    SCHEDULER_TRIGGER_TOKEN: Optional[str] = None  # Shared secret for the trigger endpoint
    DUE_POSTS_DEFAULT_LIMIT: int = 50

    class Config:
        env_file = ".env"
        extra = "ignore"  # Allow extra fields in .env file


settings = Settings()
