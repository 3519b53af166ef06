"""Configuration management using pydantic-settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
import logging
import sys
import structlog


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str

    # Redis Configuration (arq worker)
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_password: str = ""
    redis_url: Optional[str] = None

    # Database Pool Configuration
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=100)

    # Worker Configuration
    queue_name: str = "fabric-ingestion-queue"
    max_workers: int = 5
    job_timeout: int = 600
    log_level: str = "INFO"
    environment: str = "development"

    # Network Configuration
    http_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=600.0,
        description="Timeout for vendor HTTP requests (seconds)"
    )
    imap_timeout: float = Field(
        default=60.0,
        ge=1.0,
        le=600.0,
        description="Socket timeout for IMAP sessions (seconds)"
    )
    headless_timeout_ms: int = Field(
        default=60000,
        ge=1000,
        description="Navigation timeout for headless page rendering (milliseconds)"
    )

    # Ingestion Configuration
    upsert_batch_size: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Number of catalog upserts issued concurrently per batch"
    )
    dated_url_window_days: int = Field(
        default=30,
        ge=0,
        le=365,
        description="How many days back dated vendor URLs are tried"
    )
    rule_sample_rows: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Rows scanned when inferring parsing rules"
    )
    analyze_sample_rows: int = Field(
        default=15,
        ge=1,
        le=200,
        description="Rows returned by adapter analysis"
    )

    # Storage Configuration
    attachments_dir: str = Field(
        default="data/email-attachments",
        description="Scratch and tracked storage for email attachments"
    )
    snapshot_dir: str = Field(
        default="data/parsed",
        description="Directory for parsed-data snapshot workbooks"
    )
    export_snapshots: bool = Field(
        default=True,
        description="Write a workbook snapshot of parsed records after each run"
    )

    # Email Scheduler
    email_check_interval_minutes: int = Field(
        default=30,
        ge=5,
        le=60,
        description="Interval between scheduled email supplier runs (minutes)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def __init__(self, **kwargs):
        """Initialize settings and build derived values."""
        super().__init__(**kwargs)
        # Build Redis URL if not provided
        if not self.redis_url:
            self.redis_url = f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/0"


# Global settings instance
settings = Settings()


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog for JSON logging, filtered at ``log_level``."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


configure_logging(settings.log_level)
