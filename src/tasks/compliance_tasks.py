"""
Compliance Celery Tasks.

- recompute_client_compliance: one client, retried on storage failure
- refresh_tenant_compliance:   every client of one tenant
- refresh_all_tenants:         beat entry point, fans out one task per tenant

Tasks are synchronous Celery functions driving the async scoring service.
Each run builds its own engine so no connection outlives the event loop
that opened it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, TypeVar

from celery import shared_task

from compliance.service import ComplianceScoringService
from config.settings import get_settings
from core.exceptions import ScoreRecomputeFailed
from database.async_engine import create_engine, get_session_factory
from services.compliance_service import build_scoring_service

logger = logging.getLogger(__name__)

T = TypeVar("T")

_celery_settings = get_settings().celery


def _run_async(coro: Awaitable[T]) -> T:
    """
    Run a coroutine from sync context, handling existing event loops.

    Works in both Celery workers (no loop) and eager mode under an async
    test (running loop, so the coroutine runs on a helper thread).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    import concurrent.futures
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(asyncio.run, coro).result()


async def _with_service(operation: Callable[[ComplianceScoringService], Awaitable[T]]) -> T:
    engine = create_engine()
    try:
        service = build_scoring_service(session_factory=get_session_factory(engine))
        return await operation(service)
    finally:
        await engine.dispose()


@shared_task(
    bind=True,
    name="tasks.compliance_tasks.recompute_client_compliance",
    autoretry_for=(ScoreRecomputeFailed,),
    max_retries=_celery_settings.recompute_max_retries,
    retry_backoff=True,
    retry_backoff_max=_celery_settings.recompute_backoff_max,
    retry_jitter=True,
)
def recompute_client_compliance(self, client_id: int, tenant_id: int) -> Dict[str, Any]:
    """
    Recompute one client's compliance snapshot.

    ScoreRecomputeFailed is retried with exponential backoff; any other
    error (such as ClientNotFound) fails the task immediately.

    Returns:
        The stored snapshot as a dict
    """
    logger.info(
        f"Recomputing compliance for client {client_id}",
        extra={"client_id": client_id, "tenant_id": tenant_id, "task_id": self.request.id},
    )
    score = _run_async(
        _with_service(lambda service: service.recompute_for_client(client_id, tenant_id))
    )
    return score.to_dict()


@shared_task(
    bind=True,
    name="tasks.compliance_tasks.refresh_tenant_compliance",
    autoretry_for=(ScoreRecomputeFailed,),
    max_retries=_celery_settings.recompute_max_retries,
    retry_backoff=True,
    retry_backoff_max=_celery_settings.recompute_backoff_max,
    retry_jitter=True,
)
def refresh_tenant_compliance(self, tenant_id: int) -> Dict[str, int]:
    """Recompute every client of a tenant."""
    updated = _run_async(
        _with_service(lambda service: service.refresh_tenant_compliance(tenant_id))
    )
    return {"tenant_id": tenant_id, "updated": updated}


@shared_task(name="tasks.compliance_tasks.refresh_all_tenants")
def refresh_all_tenants() -> Dict[str, int]:
    """
    Enqueue a tenant refresh for every tenant that has clients.

    Runs on the beat schedule. Tenants are refreshed by separate tasks so
    one tenant's failures and retries never hold up the others.
    """
    tenant_ids = _run_async(_with_service(lambda service: service.list_tenant_ids()))

    for tenant_id in tenant_ids:
        refresh_tenant_compliance.delay(tenant_id)

    logger.info(
        f"Scheduled compliance refresh for {len(tenant_ids)} tenants",
        extra={"tenant_count": len(tenant_ids)},
    )
    return {"tenants": len(tenant_ids)}
