from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # === App Metadata ===
    PROJECT_NAME: str = "MemoReady Core API"
    SERVICE_NAME: str = "memoready-core"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field("dev")  # dev, staging, prod

    # === Security ===
    API_KEY: str = Field("super-secret-key")
    ENABLE_API_KEY_SECURITY: bool = Field(False)
    CORS_ORIGINS: list = Field(default_factory=lambda: [
        "http://localhost:5173",      # Local Vite dev
        "https://memoready.vc",       # Production frontend
    ])

    # === Logging ===
    LOG_LEVEL: str = Field("INFO")
    ENABLE_JSON_LOGS: bool = Field(False)
    LOG_TO_FILE: bool = Field(False)
    LOG_DIR: str = Field("./logs")
    SENTRY_DSN: str = Field("")

    # === Database ===
    DATABASE_URL: str = Field("sqlite:///./memoready.db")
    DB_ECHO: bool = Field(False)

    # === Google Calendar OAuth ===
    GOOGLE_CALENDAR_CLIENT_ID: str = Field("")
    GOOGLE_CALENDAR_CLIENT_SECRET: str = Field("")
    GOOGLE_TOKEN_URI: str = Field("https://oauth2.googleapis.com/token")

    # === Availability ===
    MAX_AVAILABILITY_RANGE_DAYS: int = Field(62, ge=1)
    DEFAULT_TIMEZONE: str = Field("UTC")  # zone weekly hours are read in when a request names none

    # === Memo readiness thresholds ===
    READY_THRESHOLD: int = Field(60)
    NEEDS_INPUT_THRESHOLD: int = Field(40)

    # === Feature Flags ===
    ENABLE_PROMETHEUS: bool = Field(True)

    # === Environment Shortcuts ===
    @property
    def IS_PROD(self) -> bool:
        return self.ENVIRONMENT.lower() == "prod"

    @property
    def GOOGLE_OAUTH_CONFIGURED(self) -> bool:
        return all([self.GOOGLE_CALENDAR_CLIENT_ID, self.GOOGLE_CALENDAR_CLIENT_SECRET])


@lru_cache()
def get_settings() -> AppConfig:
    return AppConfig()


# Global config instance
settings = get_settings()
