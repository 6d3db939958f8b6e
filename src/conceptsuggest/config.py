"""Environment-based configuration for ConceptSuggest."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from CONCEPTSUGGEST_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CONCEPTSUGGEST_",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080

    # Optical text extraction (AWS Rekognition)
    aws_region: str = "eu-west-1"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    s3_bucket: str = "com.ft.imagepublish.k8s-content-test.test"

    # Content and concept APIs
    api_key: str = ""
    annotations_url: str = "http://test.api.ft.com"
    concordances_url: str = "http://test.api.ft.com"
    request_timeout: float = Field(default=10.0, gt=0)

    # Training
    model_path: str = "classifier.json"
    training_ids_path: str = "graphics_uuids.json"
    throttle_rate: float = Field(default=20.0, gt=0)
    throttle_burst: int = Field(default=1, ge=1)

    # Classifier
    min_class_size: int = Field(default=0, ge=0)
    smoothing: float = Field(default=1.0, gt=0)
    suggestion_threshold: float = Field(default=1e-8, ge=0.0, le=1.0)

    # Concurrency
    max_concurrent: int = Field(default=4, ge=1)
    queue_timeout: float = Field(default=5.0, gt=0)

    # Error responses echo internal messages when enabled
    expose_error_details: bool = False


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
