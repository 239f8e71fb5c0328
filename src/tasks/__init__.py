"""
Background Tasks Module - Celery-based compliance recomputes.

Provides:
- Celery app configuration with Redis broker and beat schedule
- Per-client and per-tenant compliance recompute tasks
"""

from .celery_app import celery_app, get_celery_app, get_task_info
from .compliance_tasks import (
    recompute_client_compliance,
    refresh_tenant_compliance,
    refresh_all_tenants,
)

__all__ = [
    # Celery app
    "celery_app",
    "get_celery_app",
    "get_task_info",
    # Compliance tasks
    "recompute_client_compliance",
    "refresh_tenant_compliance",
    "refresh_all_tenants",
]
