# src/files_proxy/settings.py
from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    The instance is frozen: it is read once at startup and handed to the
    request handlers through ``app.state.settings``.

    Usage:
        from files_proxy.settings import get_settings
        settings = get_settings()
        bucket_name = settings.s3_bucket_name
    """

    # Application Settings
    app_name: str = Field(
        default="files-proxy",
        description="Application name"
    )

    port: int = Field(
        default=4000,
        alias="PORT",
        description="Port the HTTP server listens on"
    )

    # Local tier
    storage_dir: str = Field(
        default="uploads",
        description="Local storage directory checked before the bucket"
    )

    # AWS Core Settings
    aws_region: str = Field(
        default="us-east-1",
        alias="AWS_DEFAULT_REGION"
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        alias="AWS_ACCESS_KEY_ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        alias="AWS_SECRET_ACCESS_KEY"
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        alias="AWS_ENDPOINT_URL",
        description="Custom endpoint for S3-compatible stores (MinIO, moto server)"
    )

    # Remote tier
    s3_bucket_name: str = Field(
        default="files-proxy",
        description="S3 bucket mirroring every upload"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator("aws_access_key_id", "aws_secret_access_key", "aws_endpoint_url", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Empty strings fall through to the default boto3 credential chain."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Validate the log level against the names `logging` knows."""
        level = v.upper()
        valid_levels = ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]
        if level not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return level

    @field_validator("storage_dir")
    @classmethod
    def validate_storage_dir(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("storage_dir must not be empty")
        return v

    def get_environment_dict(self) -> Dict[str, Any]:
        """Get configuration as a dictionary suitable for display.

        Secrets are masked.

        Returns:
            Dictionary of environment variable names to values
        """
        return {
            "APP_NAME": self.app_name,
            "PORT": self.port,
            "STORAGE_DIR": self.storage_dir,
            "AWS_DEFAULT_REGION": self.aws_region,
            "AWS_ENDPOINT_URL": self.aws_endpoint_url or "",
            "AWS_ACCESS_KEY_ID": "****" if self.aws_access_key_id else "",
            "AWS_SECRET_ACCESS_KEY": "****" if self.aws_secret_access_key else "",
            "S3_BUCKET_NAME": self.s3_bucket_name,
            "LOG_LEVEL": self.log_level,
        }

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
