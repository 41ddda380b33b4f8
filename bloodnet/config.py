from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application Config
    PROJECT_NAME: str = Field(default="BloodNet API")
    PROJECT_DESCRIPTION: str = Field(
        default="Emergency blood availability and inventory coordination"
    )
    VERSION: str = Field(default="1.0.0")
    API_PREFIX: str = Field(default="/api")
    DOCS_URL: str = Field(default="/docs")

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=True)

    # Database
    DATABASE_URL: str = Field(default="")
    DATABASE_POOL_SIZE: int = Field(default=10)
    DATABASE_MAX_OVERFLOW: int = Field(default=20)
    DATABASE_POOL_TIMEOUT: int = Field(default=30)

    # Development database fallback
    DEV_DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./db.sqlite3")

    # Security
    SECRET_KEY: str = Field(default="dev-secret-key")
    ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30)

    # CORS Configuration
    BACKEND_CORS_ORIGINS: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost",
        ]
    )

    # Rate Limiting
    RATE_LIMIT_REQUESTS_PER_MINUTE: int = Field(default=60)
    EMERGENCY_RATE_LIMIT_PER_MINUTE: int = Field(default=120)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_TO_FILE: bool = Field(default=False)

    # Availability search
    DEFAULT_SEARCH_RADIUS_KM: float = Field(default=50.0)
    EMERGENCY_RESULT_LIMIT: int = Field(default=20)
    LOW_STOCK_THRESHOLD: int = Field(default=5)

    # Real-time notifications
    SSE_QUEUE_SIZE: int = Field(default=100)
    SSE_HEARTBEAT_SECONDS: float = Field(default=30.0)

    # Admin
    ADMIN_PATH: str = Field(default="/admin")
    ENABLE_ADMIN: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def model_post_init(self, __context) -> None:
        """Post-initialization validation and setup"""
        if isinstance(self.BACKEND_CORS_ORIGINS, str):
            self.BACKEND_CORS_ORIGINS = [
                origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",")
            ]

        if self.ENVIRONMENT.lower() == "production":
            if not self.DATABASE_URL:
                raise ValueError("DATABASE_URL must be set in production!")
            if not self.SECRET_KEY or self.SECRET_KEY == "dev-secret-key":
                raise ValueError(
                    "SECRET_KEY must be set to a secure value in production!"
                )
        else:
            # Fall back to the local sqlite database outside production
            if not self.DATABASE_URL:
                self.DATABASE_URL = self.DEV_DATABASE_URL


# Instantiate settings
settings = Settings()
