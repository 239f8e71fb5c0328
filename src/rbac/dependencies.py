"""
FastAPI Dependencies for Authorization

Authentication itself happens upstream: the auth middleware stores the
session mapping on request.state.session. These dependencies only turn
that session into a UserPermissionContext and gate routes on it.

Usage:
    @router.post("/clients/{client_id}/compliance/recompute")
    async def recompute(
        client_id: int,
        ctx: UserPermissionContext = Depends(require_permission("compliance", "edit")),
    ):
        ...
"""

from typing import Awaitable, Callable, Union

from fastapi import Depends, Request

from services.logging_config import tenant_id_var, user_id_var
from .authorization import assert_permission
from .context import UserPermissionContext
from .roles import Action


async def get_permission_context(request: Request) -> UserPermissionContext:
    """
    Resolve the permission context for the current request.

    Must stay async: the tenant and user context variables have to be set
    in the request task, not in a threadpool copy of its context.

    Raises:
        AuthenticationRequired: If no complete session is attached.
    """
    session = getattr(request.state, "session", None)
    ctx = UserPermissionContext.from_session(session)
    tenant_id_var.set(ctx.tenant_id)
    user_id_var.set(ctx.user_id)
    return ctx


def require_permission(module: str, action: Union[str, Action]) -> Callable[..., Awaitable[UserPermissionContext]]:
    """
    Dependency factory: require a (module, action) permission.

    PermissionDenied propagates to the exception handlers in
    web.api_errors, which answer 403.
    """

    async def dependency(
        ctx: UserPermissionContext = Depends(get_permission_context),
    ) -> UserPermissionContext:
        assert_permission(ctx, module, action)
        return ctx

    return dependency
