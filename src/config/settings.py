"""Application settings using Pydantic Settings.

Centralized configuration for the compliance core. Every group of settings
reads its own environment prefix so operators can override one concern
without touching the others:

- APP_*         general application settings
- COMPLIANCE_*  scoring weights, tier thresholds, lookahead windows
- RBAC_*        location of the static role table
- REDIS_*       Redis connection (Celery broker/back end)
- CELERY_*      task queue behaviour
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_ROLE_TABLE_PATH = Path(__file__).parent / "roles.yaml"


class ComplianceSettings(BaseSettings):
    """Compliance scoring policy."""

    model_config = SettingsConfigDict(
        env_prefix="COMPLIANCE_",
        extra="ignore",
    )

    # Point deductions per signal
    missing_document_weight: int = Field(default=10, ge=0, description="Points lost per missing document")
    expiring_document_weight: int = Field(default=5, ge=0, description="Points lost per expiring document")
    overdue_filing_weight: int = Field(default=15, ge=0, description="Points lost per overdue filing")

    # Tier thresholds (inclusive lower bounds)
    green_threshold: int = Field(default=80, ge=0, le=100, description="Minimum score for green")
    amber_threshold: int = Field(default=60, ge=0, le=100, description="Minimum score for amber")

    # Evaluation windows
    expiring_lookahead_days: int = Field(default=30, ge=0, description="Days ahead a document counts as expiring")
    upcoming_filing_days: int = Field(default=14, ge=0, description="Days ahead a filing counts as upcoming")

    # Scheduling
    refresh_interval_seconds: float = Field(default=86400.0, gt=0, description="Beat interval for tenant refresh")

    @model_validator(mode="after")
    def _check_thresholds(self) -> "ComplianceSettings":
        if self.amber_threshold > self.green_threshold:
            raise ValueError("amber_threshold must not exceed green_threshold")
        return self


class RBACSettings(BaseSettings):
    """Role table location."""

    model_config = SettingsConfigDict(
        env_prefix="RBAC_",
        extra="ignore",
    )

    role_table_path: Path = Field(
        default=DEFAULT_ROLE_TABLE_PATH,
        description="YAML file holding the role -> grant table",
    )


class RedisSettings(BaseSettings):
    """Redis configuration for the Celery broker."""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    db: int = Field(default=0, description="Redis database number")
    password: Optional[str] = Field(default=None, description="Redis password")
    ssl: bool = Field(default=False, description="Use SSL for Redis connection")

    @property
    def url(self) -> str:
        """Get Redis URL."""
        auth = f":{self.password}@" if self.password else ""
        protocol = "rediss" if self.ssl else "redis"
        return f"{protocol}://{auth}{self.host}:{self.port}/{self.db}"


class CelerySettings(BaseSettings):
    """Celery task queue configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CELERY_",
        extra="ignore",
    )

    broker_db: int = Field(default=1, description="Redis DB for Celery broker")
    result_db: int = Field(default=2, description="Redis DB for Celery results")

    task_serializer: str = Field(default="json", description="Task serialization format")
    result_serializer: str = Field(default="json", description="Result serialization format")
    accept_content: list = Field(default=["json"], description="Accepted content types")

    task_acks_late: bool = Field(default=True, description="Acknowledge tasks after completion")
    worker_prefetch_multiplier: int = Field(default=1, description="Tasks to prefetch per worker")
    task_time_limit: int = Field(default=300, description="Hard task time limit in seconds")
    task_soft_time_limit: int = Field(default=240, description="Soft task time limit")

    recompute_max_retries: int = Field(default=5, ge=0, description="Retries for a failed recompute")
    recompute_backoff_max: int = Field(default=600, ge=1, description="Max seconds between recompute retries")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    name: str = Field(default="Compliance Core", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment name")

    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Emit JSON log lines")

    # Nested settings (loaded separately)
    @property
    def compliance(self) -> ComplianceSettings:
        return ComplianceSettings()

    @property
    def rbac(self) -> RBACSettings:
        return RBACSettings()

    @property
    def redis(self) -> RedisSettings:
        return RedisSettings()

    @property
    def celery(self) -> CelerySettings:
        return CelerySettings()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment in ("production", "prod", "staging")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Returns:
        Settings: Cached settings loaded from environment.
    """
    return Settings()


@lru_cache
def get_compliance_settings() -> ComplianceSettings:
    """Get cached compliance scoring settings."""
    return ComplianceSettings()
