from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "renewals"
    db_username: str = "renewals"
    db_password: str = "secret"
    db_pool_max_size: int = Field(default=10, ge=1)
    db_pool_timeout_seconds: float = Field(default=30.0, gt=0)

    event_poll_interval_seconds: int = 5

    artifact_root: Path = Path("/app/files")
    artifact_bucket: str = "uploads"
    temp_dir: Path | None = None
    pdf_upload_prefix: str = "policy-uploads/"
    receipt_upload_prefix: str = "receipts/"

    # At most 500 writes per atomic batch.
    policy_batch_size: int = Field(default=400, ge=1, le=500)
    dedupe_pdf_imports: bool = True

    pdf_engine: str = "pdfplumber"

    extraction_provider: str = "gemini"
    extraction_api_key: str = ""
    extraction_base_url: str = ""
    extraction_model_name: str = "gemini-2.5-flash"
    extraction_temperature: float = Field(default=0.0, ge=0.0, le=1.0)
    pdf_extraction_timeout_seconds: int = Field(default=180, gt=0)
    receipt_extraction_timeout_seconds: int = Field(default=60, gt=0)
