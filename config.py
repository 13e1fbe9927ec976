from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = ""
    DATABASE_NAME: str = ""

    # Application
    APP_NAME: str = "Campus Social API"
    BACKEND_CORS_ORIGINS: str = "*"
    UPLOADS_DIR: str = "uploads"
    PORT: int = 8000

    # Feed / explore paging
    FEED_DEFAULT_LIMIT: int = 10
    FEED_MAX_LIMIT: int = 100
    EXPLORE_LIMIT: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    @property
    def cors_origins(self) -> List[str]:
        return [
            origin.strip()
            for origin in self.BACKEND_CORS_ORIGINS.split(",")
            if origin.strip()
        ]


settings = Settings()
