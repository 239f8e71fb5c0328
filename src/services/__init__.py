"""Shared services: logging setup and request context variables."""

from .logging_config import (
    configure_logging,
    get_logger,
    request_id_var,
    tenant_id_var,
    user_id_var,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "request_id_var",
    "tenant_id_var",
    "user_id_var",
]
