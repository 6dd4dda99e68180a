"""Application configuration settings.

All configuration values are loaded from environment variables (.env file).
The signing secret has no default and is never hardcoded here.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    PROJECT_NAME: str = "Streamgate"
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    PORT: int = 3000
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Catalog store
    DATABASE_URL: str = "sqlite+aiosqlite:///./streamgate.db"

    # Packaging
    PUBLIC_DIR: str = "./public"
    TEMP_UPLOAD_DIR: str = "./temp-uploads"
    FFMPEG_BINARY_PATH: str = "ffmpeg"
    FFPROBE_BINARY_PATH: str = "ffprobe"

    # CDN prefix for produced manifest/thumbnail paths (optional)
    CDN_URL: str = ""

    # URI signing - JWT_PRIMARY_SECRET is REQUIRED for token issuance
    JWT_PRIMARY_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_PRIMARY_KID: str = "primary-key-2024"
    JWT_ISSUER: str = "CDN URI Authority"
    JWT_AUDIENCE: str = "mycdn"
    JWT_EXPIRES_IN: int = 3600
    JWT_RENEWAL_DURATION: int = 300
    URI_SIGNING_PARAM: str = "URISigningPackage"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )


settings = Settings()
