"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATE_FIELD = "first_indexed"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Feature gate
    schedule_searches: bool = Field(False, description="Enable the email alert system")

    # Window resolution
    scheduled_search_date_field: str = Field(
        DEFAULT_DATE_FIELD,
        description="Record field used to sort results and bound the notification window",
    )
    result_limit: int = Field(50, ge=1, le=1000)

    # Site / mail identity
    site_title: str = Field("Library Catalog")
    site_email: str = Field("noreply@localhost")
    scheduled_search_email_from: Optional[str] = Field(
        None, description="Sender address for alert emails (defaults to site_email)"
    )
    base_url: str = Field("http://localhost")
    unsubscribe_secret: str = Field("change-me")

    # Search backend
    solr_url: str = Field("http://localhost:8983/solr/biblio")
    solr_timeout: float = Field(30.0, gt=0)
    solr_max_retries: int = Field(3, ge=1, le=10)

    # SMTP
    smtp_host: str = Field("localhost")
    smtp_port: int = Field(25, ge=1, le=65535)
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_starttls: bool = False
    smtp_timeout: float = Field(30.0, gt=0)

    # Batch execution
    max_concurrency: int = Field(4, ge=1, le=64)
    data_dir: Path = Field(Path(".ssa"))

    # Logging
    log_level: str = Field("INFO")
    log_format: str = Field("json", pattern="^(json|text)$")

    @property
    def sender_email(self) -> str:
        """Sender address, falling back to the site-wide address."""
        return self.scheduled_search_email_from or self.site_email

    @field_validator("data_dir")
    @classmethod
    def _create_dirs(cls, v: Path) -> Path:
        v.mkdir(parents=True, exist_ok=True)
        return v


# Instantiate global settings
settings = Settings()
