"""Configuration for s3migrator via pydantic-settings.

Values are read from the environment (and a local ``.env`` file if present).
"""

from datetime import timedelta

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from s3migrator.core.exceptions import S3ConfigurationError
from s3migrator.core.status import BATCH_SIZE, MAXIMUM_DURATION


class MigratorSettings(BaseSettings):
    """Settings for connecting to S3 and running import passes."""

    # AWS ---------------------------------------------------------------------
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_default_region: str = "us-east-1"
    aws_url: str | None = None
    aws_bucket_name: str | None = None
    aws_retry_attempts: int = 3

    # Storage layout ----------------------------------------------------------
    s3_base_path: str = ""

    # Import job --------------------------------------------------------------
    batch_size: int = Field(BATCH_SIZE, ge=1)
    max_duration_seconds: float = Field(MAXIMUM_DURATION.total_seconds(), gt=0)

    # General -----------------------------------------------------------------
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("s3_base_path")
    @classmethod
    def _normalise_base_path(cls, value: str) -> str:
        if value and not value.endswith("/"):
            return f"{value}/"
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def max_duration(self) -> timedelta:
        return timedelta(seconds=self.max_duration_seconds)

    def require_bucket(self) -> str:
        """Return the configured bucket name.

        Raises:
            S3ConfigurationError: If no bucket is configured
        """
        if not self.aws_bucket_name:
            raise S3ConfigurationError(missing_fields=["AWS_BUCKET_NAME"])
        return self.aws_bucket_name
