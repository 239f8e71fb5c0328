"""
Celery App Configuration - Background compliance recomputes with Redis broker.

Configures Celery for:
- Per-client compliance recomputes (with retry on storage failure)
- Scheduled refresh of every tenant's compliance scores

Usage:
    # Run worker
    celery -A tasks.celery_app worker --loglevel=info

    # Run with beat scheduler
    celery -A tasks.celery_app worker --beat --loglevel=info
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from celery import Celery, Task
from celery.signals import task_retry, worker_ready, worker_shutdown

from config.settings import (
    CelerySettings,
    ComplianceSettings,
    RedisSettings,
    get_settings,
)

logger = logging.getLogger(__name__)

REFRESH_SCHEDULE_NAME = "refresh-compliance-scores"


def create_celery_app(
    redis_settings: Optional[RedisSettings] = None,
    celery_settings: Optional[CelerySettings] = None,
    compliance_settings: Optional[ComplianceSettings] = None,
) -> Celery:
    """
    Create and configure a Celery application.

    Args:
        redis_settings: Redis connection settings
        celery_settings: Celery configuration settings
        compliance_settings: Supplies the refresh interval for the beat schedule
    """
    settings = get_settings()
    redis_settings = redis_settings or settings.redis
    celery_settings = celery_settings or settings.celery
    compliance_settings = compliance_settings or settings.compliance

    auth = f":{redis_settings.password}@" if redis_settings.password else ""
    protocol = "rediss" if redis_settings.ssl else "redis"
    base_url = f"{protocol}://{auth}{redis_settings.host}:{redis_settings.port}"

    app = Celery(
        "compliance_core",
        broker=f"{base_url}/{celery_settings.broker_db}",
        backend=f"{base_url}/{celery_settings.result_db}",
        include=["tasks.compliance_tasks"],
    )

    app.conf.update(
        # Serialization
        task_serializer=celery_settings.task_serializer,
        result_serializer=celery_settings.result_serializer,
        accept_content=celery_settings.accept_content,
        result_accept_content=celery_settings.accept_content,

        # Acknowledge after completion so a lost worker's recompute is redelivered
        task_acks_late=celery_settings.task_acks_late,
        worker_prefetch_multiplier=celery_settings.worker_prefetch_multiplier,

        # Time limits
        task_time_limit=celery_settings.task_time_limit,
        task_soft_time_limit=celery_settings.task_soft_time_limit,

        result_expires=3600,
        task_track_started=True,

        timezone="UTC",
        enable_utc=True,

        beat_schedule={
            REFRESH_SCHEDULE_NAME: {
                "task": "tasks.compliance_tasks.refresh_all_tenants",
                "schedule": compliance_settings.refresh_interval_seconds,
            },
        },
    )

    return app


# Global Celery app instance
celery_app = create_celery_app()


def get_celery_app() -> Celery:
    """Get the global Celery app instance."""
    return celery_app


class TaskBase(Task):
    """
    Base task class: failure and retry logging.

    Retry policy is declared per task, so only the errors a task names
    are retried.
    """

    abstract = True

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(
            f"Task {self.name}[{task_id}] failed: {exc}",
            extra={
                "task_id": task_id,
                "task_name": self.name,
                "task_args": args,
                "task_kwargs": kwargs,
                "exception": str(exc),
            },
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_retry(self, exc, task_id, args, kwargs, einfo):
        logger.warning(
            f"Task {self.name}[{task_id}] retrying: {exc}",
            extra={
                "task_id": task_id,
                "task_name": self.name,
                "retry_count": self.request.retries,
                "exception": str(exc),
            },
        )
        super().on_retry(exc, task_id, args, kwargs, einfo)


# Register base task class
celery_app.Task = TaskBase


@worker_ready.connect
def on_worker_ready(sender, **kwargs):
    logger.info(f"Celery worker ready: {sender}")


@worker_shutdown.connect
def on_worker_shutdown(sender, **kwargs):
    logger.info(f"Celery worker shutting down: {sender}")


@task_retry.connect
def on_task_retry(request, reason, einfo, **kwargs):
    logger.warning(
        f"Task retry: {request.task}[{request.id}] - {reason}",
        extra={
            "task_id": request.id,
            "task_name": request.task,
            "retry_reason": str(reason),
        },
    )


def get_task_info(task_id: str) -> Dict[str, Any]:
    """
    Get information about a task.

    Args:
        task_id: Celery task ID

    Returns:
        Dict with task status and result
    """
    result = celery_app.AsyncResult(task_id)

    info = {
        "task_id": task_id,
        "status": result.status,
        "ready": result.ready(),
    }

    if result.ready():
        if result.successful():
            info["result"] = result.result
        else:
            info["error"] = str(result.result)

    return info
