"""
Compliance API.

Provides endpoints for:
- Reading a client's latest compliance snapshot
- Triggering a recompute (inline or queued to Celery)
- Tenant dashboard summary and the list of clients needing attention
- The caller's own permission flags

Every query is scoped to the caller's tenant.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from compliance.service import ComplianceScoringService
from rbac.authorization import assert_tenant_access, get_permission_summary, get_user_modules
from rbac.context import UserPermissionContext
from rbac.dependencies import get_permission_context, require_permission
from services.compliance_service import get_scoring_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Compliance"],
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Insufficient permissions or wrong tenant"},
    },
)


@router.get("/clients/{client_id}/compliance")
async def get_client_compliance(
    client_id: int,
    ctx: UserPermissionContext = Depends(require_permission("compliance", "view")),
    service: ComplianceScoringService = Depends(get_scoring_service),
):
    """Latest compliance snapshot for a client."""
    score = await service.get_latest_score(client_id, ctx.tenant_id)
    if score is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No compliance score recorded for client {client_id}",
        )
    assert_tenant_access(ctx.tenant_id, score.tenant_id)
    return score.to_dict()


@router.post("/clients/{client_id}/compliance/recompute")
async def recompute_client_compliance(
    client_id: int,
    queue: bool = Query(False, description="Run in the background instead of inline"),
    ctx: UserPermissionContext = Depends(require_permission("compliance", "edit")),
    service: ComplianceScoringService = Depends(get_scoring_service),
):
    """
    Recompute a client's compliance score.

    Inline by default, returning the new snapshot. With ?queue=true the
    recompute is handed to Celery and the task id is returned.
    """
    if queue:
        from tasks.compliance_tasks import recompute_client_compliance as recompute_task

        result = recompute_task.delay(client_id, ctx.tenant_id)
        logger.info(
            f"Queued compliance recompute for client {client_id}",
            extra={"client_id": client_id, "task_id": result.id},
        )
        return {"queued": True, "task_id": result.id, "client_id": client_id}

    score = await service.recompute_for_client(client_id, ctx.tenant_id)
    return score.to_dict()


@router.get("/compliance/summary")
async def get_compliance_summary(
    ctx: UserPermissionContext = Depends(require_permission("compliance", "view")),
    service: ComplianceScoringService = Depends(get_scoring_service),
):
    """Totals by tier and average score over the tenant's clients."""
    summary = await service.get_compliance_summary(ctx.tenant_id)
    return summary.to_dict()


@router.get("/compliance/issues")
async def get_clients_with_issues(
    limit: int = Query(50, ge=1, le=500, description="Maximum results"),
    ctx: UserPermissionContext = Depends(require_permission("compliance", "view")),
    service: ComplianceScoringService = Depends(get_scoring_service),
):
    """Amber and red clients, worst first."""
    scores = await service.get_clients_with_issues(ctx.tenant_id)
    return {
        "clients": [score.to_dict() for score in scores[:limit]],
        "total": len(scores),
    }


@router.get("/me/permissions")
async def get_my_permissions(
    ctx: UserPermissionContext = Depends(get_permission_context),
):
    """Permission flags for the current user, used to drive the UI."""
    return {
        "role": ctx.role_name,
        "tenant_id": ctx.tenant_id,
        "user_id": ctx.user_id,
        "modules": get_user_modules(ctx),
        "permissions": get_permission_summary(ctx.role),
    }
