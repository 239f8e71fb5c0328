"""Configuration module for the compliance core."""

from .database import DatabaseSettings, get_database_settings
from .settings import (
    Settings,
    ComplianceSettings,
    RBACSettings,
    RedisSettings,
    CelerySettings,
    get_settings,
    get_compliance_settings,
)

__all__ = [
    "DatabaseSettings",
    "get_database_settings",
    "Settings",
    "ComplianceSettings",
    "RBACSettings",
    "RedisSettings",
    "CelerySettings",
    "get_settings",
    "get_compliance_settings",
]
