from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    A .env file is read as a fallback; real environment variables win.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Database
    DATABASE_URL: str = "sqlite:///./tracker_sms.db"
    DB_CONNECT_RETRIES: int = 5
    DB_CONNECT_RETRY_DELAY_SECONDS: float = 5.0
    SEED_DATABASE: bool = True

    # Logging / runtime mode ("development" exposes error details in responses)
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "production"

    # Shared API key; empty disables the check
    API_KEY: str = ""

    # Comma-separated list of origins allowed by CORS
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:8080"

    # Rate limiting (per client address, fixed window)
    RATE_LIMIT_MAX: int = 100
    RATE_LIMIT_WINDOW_SECONDS: float = 60.0
    RATE_LIMIT_MAX_ENTRIES: int = 10000

    # Send workflow
    MAX_PHONE_NUMBERS_PER_REQUEST: int = 100
    DISPATCH_LATENCY_MS: int = 100
    DISPATCH_SUCCESS_RATE: float = 0.9

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    SHUTDOWN_TIMEOUT_SECONDS: int = 10

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()


# Global settings instance
settings = get_settings()
