"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables, optionally seeded from
a local .env file. Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

The storage-related fields are turned into an immutable BackendSelection
once at startup; nothing reads them per request.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.models import BackendKind, BackendSelection, StorageCredentials


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Field names map to upper-case env vars (MINIO_ACCESS_KEY, SERVICE_NAME, ...).
    """

    # API Configuration
    api_title: str = "Bucket Stream"
    api_version: str = "v1"

    # Minio-compatible storage
    minio_access_key: str = Field(default="", description="Minio access key")
    minio_secret_key: str = Field(default="", description="Minio secret key")
    minio_endpoint: str = Field(
        default="",
        description="Minio host[:port], without scheme. Always reached over TLS."
    )

    # S3 / R2 storage
    aws_access_key: str = Field(default="", description="S3/R2 access key ID")
    aws_secret_key: str = Field(default="", description="S3/R2 secret access key")
    aws_endpoint: str = Field(
        default="",
        description="Full endpoint URL, e.g. https://<account>.r2.cloudflarestorage.com"
    )

    service_name: str = Field(
        default="",
        description="Active backend: 'minio', 'S3' or 'R2'. Anything else fails every request."
    )

    # Request behaviour
    presign_lifetime_seconds: int = Field(
        default=10,
        gt=0,
        description="Lifetime of presigned URLs for S3/R2. Minio always signs for 60 seconds."
    )
    upstream_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Timeout for the fetch of the presigned URL. None waits indefinitely."
    )
    error_status_codes: bool = Field(
        default=True,
        description="Return a matching 4xx/5xx status on failure. False always returns 200."
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def backend_kind(self) -> BackendKind:
        return BackendKind.from_service_name(self.service_name)

    def backend_selection(self) -> BackendSelection:
        """
        Build the immutable backend selection for this process.

        Minio reads the MINIO_* credentials; S3 and R2 share the AWS_* ones.
        An unknown service name still yields a selection so the server can
        start and report the problem per request.
        """
        kind = self.backend_kind

        if kind is BackendKind.MINIO:
            credentials = StorageCredentials(
                access_key=self.minio_access_key,
                secret_key=self.minio_secret_key,
                endpoint=self.minio_endpoint,
            )
        elif kind.is_s3_compatible:
            credentials = StorageCredentials(
                access_key=self.aws_access_key,
                secret_key=self.aws_secret_key,
                endpoint=self.aws_endpoint,
            )
        else:
            credentials = StorageCredentials()

        return BackendSelection(
            kind=kind,
            credentials=credentials,
            service_name=self.service_name,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Return the env vars the selected backend needs but doesn't have.

        This is separate from Pydantic validation because which fields
        are required depends on SERVICE_NAME.
        """
        kind = self.backend_kind
        missing = []

        if kind is BackendKind.MINIO:
            if not self.minio_access_key:
                missing.append("MINIO_ACCESS_KEY")
            if not self.minio_secret_key:
                missing.append("MINIO_SECRET_KEY")
            if not self.minio_endpoint:
                missing.append("MINIO_ENDPOINT")
        elif kind.is_s3_compatible:
            if not self.aws_access_key:
                missing.append("AWS_ACCESS_KEY")
            if not self.aws_secret_key:
                missing.append("AWS_SECRET_KEY")
            if not self.aws_endpoint:
                missing.append("AWS_ENDPOINT")
        else:
            missing.append("SERVICE_NAME")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, call get_settings.cache_clear() to reset.
    """
    return Settings()
