"""
Authorization Engine

Decides whether an actor may perform an action on a module, and guards
tenant boundaries.

Rules for has_permission, in order:
    1. The super-role (SuperAdmin) is always allowed.
    2. A role missing from the role table is denied.
    3. A FullAccess grant allows everything.
    4. No grant for the module: denied.
    5. A wildcard-action grant for the module: allowed.
    6. Otherwise allowed iff the action is listed in the module's grant.

Every mutating operation should start with assert_permission, and every
record read or write must pass assert_tenant_access (or an equivalent
tenant filter on the query) before the record is returned or changed.

Usage:
    from rbac import assert_permission, assert_tenant_access

    assert_permission(ctx, "filings", "submit")
    assert_tenant_access(ctx.tenant_id, filing.tenant_id)
"""

import logging
from typing import Dict, Iterable, List, Optional, Union

from core.exceptions import PermissionDenied, TenantMismatch
from .context import UserPermissionContext
from .permissions import PermissionGrant, RoleTable, get_role_table
from .roles import (
    ADMIN_ROLES,
    ALL_MODULES,
    CLIENT_ROLES,
    SUPER_ROLE,
    Action,
    Role,
    parse_role,
)

logger = logging.getLogger(__name__)

_ADMIN_REQUIRED_MESSAGE = "This operation requires administrator privileges"


def _action_value(action: Union[str, Action]) -> str:
    return action.value if isinstance(action, Action) else action


def role_has_permission(
    role: Union[Role, str, None],
    module: str,
    action: Union[str, Action],
    role_table: Optional[RoleTable] = None,
) -> bool:
    """Check whether a role (rather than a full context) allows an action."""
    parsed = parse_role(role)
    if parsed is SUPER_ROLE:
        return True

    table = role_table if role_table is not None else get_role_table()
    definition = table.lookup(parsed)
    if definition is None:
        return False

    if definition.has_full_access:
        return True

    grant = definition.grant_for(module)
    if grant is None:
        return False

    return grant.allows(_action_value(action))


def has_permission(
    context: UserPermissionContext,
    module: str,
    action: Union[str, Action],
    role_table: Optional[RoleTable] = None,
) -> bool:
    """
    Check if the acting user may perform an action on a module.

    Pure: depends only on the role table and the arguments.
    """
    return role_has_permission(context.role, module, action, role_table)


def assert_permission(
    context: UserPermissionContext,
    module: str,
    action: Union[str, Action],
    message: Optional[str] = None,
    role_table: Optional[RoleTable] = None,
) -> None:
    """
    Raise PermissionDenied unless the user may perform the action.

    Raises:
        PermissionDenied: With the custom message or
            "{role} cannot {action} on {module}".
    """
    if has_permission(context, module, action, role_table):
        return

    action = _action_value(action)
    logger.warning(
        f"Permission denied: {context.role_name} -> {module}.{action}",
        extra={
            "event": "permission_denied",
            "role": context.role_name,
            "permission_module": module,
            "permission_action": action,
            "tenant_id": context.tenant_id,
            "user_id": context.user_id,
        },
    )
    raise PermissionDenied(
        message or f"{context.role_name} cannot {action} on {module}",
        role=context.role_name,
        module=module,
        action=action,
    )


def assert_tenant_access(user_tenant_id: int, resource_tenant_id: int) -> None:
    """
    Ensure a user only touches resources in their own tenant.

    Raises:
        TenantMismatch: When the tenant ids differ.
    """
    if user_tenant_id == resource_tenant_id:
        return

    logger.warning(
        f"[AUDIT] Tenant access DENIED: tenant {user_tenant_id} -> {resource_tenant_id}",
        extra={
            "event": "tenant_access",
            "user_tenant_id": user_tenant_id,
            "resource_tenant_id": resource_tenant_id,
            "granted": False,
        },
    )
    raise TenantMismatch(user_tenant_id, resource_tenant_id)


# =============================================================================
# CONVENIENCE CHECKS
# =============================================================================


def can_view_module(context: UserPermissionContext, module: str) -> bool:
    """Check if user can view a module."""
    return has_permission(context, module, Action.VIEW)


def can_create_entity(context: UserPermissionContext, module: str) -> bool:
    """Check if user can create entities in a module."""
    return has_permission(context, module, Action.CREATE)


def can_edit_entity(context: UserPermissionContext, module: str) -> bool:
    """Check if user can edit entities in a module."""
    return has_permission(context, module, Action.EDIT)


def can_delete_entity(context: UserPermissionContext, module: str) -> bool:
    """Check if user can delete entities in a module."""
    return has_permission(context, module, Action.DELETE)


def assert_can_view(context: UserPermissionContext, module: str, message: Optional[str] = None) -> None:
    assert_permission(context, module, Action.VIEW, message)


def assert_can_create(context: UserPermissionContext, module: str, message: Optional[str] = None) -> None:
    assert_permission(context, module, Action.CREATE, message)


def assert_can_edit(context: UserPermissionContext, module: str, message: Optional[str] = None) -> None:
    assert_permission(context, module, Action.EDIT, message)


def assert_can_delete(context: UserPermissionContext, module: str, message: Optional[str] = None) -> None:
    assert_permission(context, module, Action.DELETE, message)


def is_super_admin(context: UserPermissionContext) -> bool:
    return parse_role(context.role) is SUPER_ROLE


def is_admin(context: UserPermissionContext) -> bool:
    """SuperAdmin or FirmAdmin."""
    return parse_role(context.role) in ADMIN_ROLES


def assert_admin(context: UserPermissionContext, message: Optional[str] = None) -> None:
    """
    Raises:
        PermissionDenied: Unless the user holds an admin role.
    """
    if not is_admin(context):
        logger.warning(
            f"Admin operation refused for {context.role_name}",
            extra={"role": context.role_name, "user_id": context.user_id},
        )
        raise PermissionDenied(message or _ADMIN_REQUIRED_MESSAGE, role=context.role_name)


def is_client_portal_user(context: UserPermissionContext) -> bool:
    return parse_role(context.role) in CLIENT_ROLES


def is_staff_user(context: UserPermissionContext) -> bool:
    """Any known role other than a client portal login."""
    role = parse_role(context.role)
    return role is not None and role not in CLIENT_ROLES


# =============================================================================
# INTROSPECTION
# =============================================================================


def get_role_grants(
    role: Union[Role, str],
    role_table: Optional[RoleTable] = None,
) -> List[PermissionGrant]:
    """Get the grants of a role; empty for unknown roles."""
    table = role_table if role_table is not None else get_role_table()
    definition = table.lookup(role)
    return list(definition.grants) if definition else []


def get_user_modules(
    context: UserPermissionContext,
    role_table: Optional[RoleTable] = None,
) -> List[str]:
    """
    Get all modules a user can reach.

    Full-access roles get every known module; others get the modules
    named in their grants, in declaration order.
    """
    if is_super_admin(context):
        return list(ALL_MODULES)

    table = role_table if role_table is not None else get_role_table()
    definition = table.lookup(context.role)
    if definition is None:
        return []
    if definition.has_full_access:
        return list(ALL_MODULES)
    return list(definition.modules)


def can_access_client(
    context: UserPermissionContext,
    client_id: int,
    assigned_client_ids: Iterable[int],
) -> bool:
    """
    Client-level access inside the user's tenant.

    Staff can access every client in their tenant; client portal users only
    the clients they are assigned to. Tenant checks still apply separately.
    """
    if not is_client_portal_user(context):
        return True
    return client_id in set(assigned_client_ids)


def get_permission_summary(
    role: Union[Role, str],
    role_table: Optional[RoleTable] = None,
) -> Dict[str, bool]:
    """Flag summary for UI rendering (what buttons to show)."""

    def allowed(module: str, action: str) -> bool:
        return role_has_permission(role, module, action, role_table)

    parsed = parse_role(role)
    return {
        "can_view_clients": allowed("clients", "view"),
        "can_create_clients": allowed("clients", "create"),
        "can_edit_clients": allowed("clients", "edit"),
        "can_delete_clients": allowed("clients", "delete"),
        "can_view_documents": allowed("documents", "view"),
        "can_create_documents": allowed("documents", "create"),
        "can_view_filings": allowed("filings", "view"),
        "can_create_filings": allowed("filings", "create"),
        "can_submit_filings": allowed("filings", "submit"),
        "can_view_compliance": allowed("compliance", "view"),
        "can_recompute_compliance": allowed("compliance", "edit"),
        "can_manage_users": allowed("users", "create") and allowed("users", "edit"),
        "can_manage_tenants": allowed("tenants", "manage"),
        "is_admin": parsed in ADMIN_ROLES,
        "is_super_admin": parsed is SUPER_ROLE,
    }
