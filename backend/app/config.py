"""
Tubely Configuration Management Module

This module provides configuration management for the Tubely upload service
using Pydantic Settings. It loads and validates the environment variables
required for:
- Application settings (name, environment, debug mode, logging)
- JWT bearer token validation
- MongoDB connection for video records
- S3-compatible object storage for video files
- Local asset storage and the thumbnail storage backend
- Upload size ceilings
- External media tools (ffmpeg / ffprobe) and their timeout

All settings support environment variable overrides and .env file loading.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.models.video import ThumbnailStorageMode


BYTES_PER_MB = 1024 * 1024


class Settings(BaseSettings):
    """
    Configuration settings for the Tubely upload service.

    Values come from environment variables (case-insensitive) or a `.env`
    file in the working directory. Unknown keys are ignored so the same
    `.env` can be shared with other tooling.

    Example usage:
        ```python
        from app.config import get_settings

        settings = get_settings()
        print(f"Thumbnails stored as: {settings.thumbnail_storage}")
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(default="Tubely", description="Application name shown in docs and logs")

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=False, description="Enable FastAPI debug mode")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(default=False, description="Emit JSON log lines instead of text")

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    public_base_url: str = Field(
        default="http://localhost:8091",
        description="Externally reachable base URL, used for locally stored asset URLs",
    )

    cors_origins: list[str] = Field(
        default=["http://localhost:8091"],
        description="List of allowed CORS origins for frontend access",
    )

    # =========================================================================
    # JWT Configuration
    # =========================================================================

    jwt_secret: str = Field(
        default="development-jwt-secret-change-in-production-32chars",
        description="HS256 secret used to sign and verify bearer tokens",
        min_length=32,
    )

    jwt_issuer: str = Field(default="tubely-access", description="Required 'iss' claim")

    jwt_expiration_hours: int = Field(
        default=1, description="Lifetime of tokens minted by make_jwt, in hours", ge=1, le=168
    )

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI (e.g., mongodb://localhost:27017)",
    )

    mongodb_db_name: str = Field(default="tubely", description="MongoDB database name")

    mongodb_min_pool_size: int = Field(
        default=1, description="Minimum number of connections in the MongoDB pool", ge=0
    )

    mongodb_max_pool_size: int = Field(
        default=20, description="Maximum number of connections in the MongoDB pool", ge=1
    )

    # =========================================================================
    # S3 Storage Configuration
    # =========================================================================

    s3_bucket_name: str = Field(default="tubely-videos", description="Bucket for uploaded videos")

    s3_region: str = Field(default="us-east-1", description="AWS region of the bucket")

    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL, e.g. MinIO (None for AWS S3)"
    )

    s3_access_key_id: str | None = Field(
        default=None, description="Access key ID (None uses the default AWS credential chain)"
    )

    s3_secret_access_key: str | None = Field(
        default=None, description="Secret access key (None uses the default AWS credential chain)"
    )

    s3_public_base_url: str | None = Field(
        default=None,
        description="Distribution base URL (e.g. CloudFront) used instead of the bucket URL",
    )

    # =========================================================================
    # Asset Storage
    # =========================================================================

    assets_root: Path = Field(
        default=Path("./assets"), description="Directory for locally stored assets"
    )

    thumbnail_storage: ThumbnailStorageMode = Field(
        default=ThumbnailStorageMode.LOCAL,
        description="Thumbnail backend: local file, inline data URI, or S3 object",
    )

    # =========================================================================
    # Upload Limits
    # =========================================================================

    max_thumbnail_size_mb: int = Field(
        default=10, description="Maximum thumbnail size in MiB", ge=1
    )

    max_video_size_mb: int = Field(
        default=1024, description="Maximum video size in MiB (1 GiB)", ge=1
    )

    upload_tmp_dir: Path | None = Field(
        default=None, description="Directory for spooled video uploads (None = system temp)"
    )

    # =========================================================================
    # Media Tools
    # =========================================================================

    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable")

    ffprobe_path: str = Field(default="ffprobe", description="ffprobe executable")

    media_tool_timeout_seconds: float = Field(
        default=300.0, description="Timeout for a single ffmpeg/ffprobe invocation", gt=0
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"debug", "info", "warning", "error", "critical"}
        normalized = v.lower()
        if normalized not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {', '.join(valid_levels)}")
        return normalized

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate that app_env is a valid environment name."""
        valid_envs = {"development", "staging", "production", "testing"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(f"Invalid app_env '{v}'. Must be one of: {', '.join(valid_envs)}")
        return normalized

    @field_validator("thumbnail_storage", mode="before")
    @classmethod
    def validate_thumbnail_storage(cls, v: str | ThumbnailStorageMode) -> str | ThumbnailStorageMode:
        """Accept the storage mode case-insensitively."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string if provided as string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("public_base_url", "s3_public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Base URLs are joined with '/' so a trailing slash is dropped."""
        if v is None:
            return v
        return v.rstrip("/")

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def max_thumbnail_size_bytes(self) -> int:
        """Thumbnail ceiling in bytes."""
        return self.max_thumbnail_size_mb * BYTES_PER_MB

    @property
    def max_video_size_bytes(self) -> int:
        """Video ceiling in bytes."""
        return self.max_video_size_mb * BYTES_PER_MB


@lru_cache
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    The @lru_cache decorator ensures the Settings object is created once on
    first call; later calls return the cached instance without re-reading
    environment variables or the .env file.

    Returns:
        Settings: The global configuration instance.
    """
    return Settings()
