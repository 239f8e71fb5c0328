"""
Role-Based Access Control (RBAC)

Static role table + wildcard grants + tenant isolation.

Roles:
    SuperAdmin          - Unconditional access
    FirmAdmin           - Tenant owner
    ComplianceManager   - Compliance oversight
    ComplianceOfficer   - Filings and document review
    DocumentOfficer     - Documents
    FilingClerk         - Filings
    Viewer              - Read-only
    ClientPortalUser    - Client portal

Usage:
    from rbac import UserPermissionContext, has_permission, assert_permission

    ctx = UserPermissionContext(role=Role.VIEWER, tenant_id=1, user_id=2)
    has_permission(ctx, "filings", "submit")   # False
"""

from .roles import Role, Action, SUPER_ROLE, ADMIN_ROLES, CLIENT_ROLES, STAFF_ROLES, ALL_MODULES
from .permissions import (
    WILDCARD,
    FullAccess,
    ModuleGrant,
    PermissionGrant,
    RoleDefinition,
    RoleTable,
    build_role_table,
    load_role_table,
    get_role_table,
)
from .context import UserPermissionContext
from .authorization import (
    role_has_permission,
    has_permission,
    assert_permission,
    assert_tenant_access,
    can_view_module,
    can_create_entity,
    can_edit_entity,
    can_delete_entity,
    assert_can_view,
    assert_can_create,
    assert_can_edit,
    assert_can_delete,
    is_super_admin,
    is_admin,
    assert_admin,
    is_staff_user,
    is_client_portal_user,
    get_role_grants,
    get_user_modules,
    can_access_client,
    get_permission_summary,
)

__all__ = [
    # Roles
    "Role",
    "Action",
    "SUPER_ROLE",
    "ADMIN_ROLES",
    "CLIENT_ROLES",
    "STAFF_ROLES",
    "ALL_MODULES",

    # Role table
    "WILDCARD",
    "FullAccess",
    "ModuleGrant",
    "PermissionGrant",
    "RoleDefinition",
    "RoleTable",
    "build_role_table",
    "load_role_table",
    "get_role_table",

    # Context
    "UserPermissionContext",

    # Checks
    "role_has_permission",
    "has_permission",
    "assert_permission",
    "assert_tenant_access",
    "can_view_module",
    "can_create_entity",
    "can_edit_entity",
    "can_delete_entity",
    "assert_can_view",
    "assert_can_create",
    "assert_can_edit",
    "assert_can_delete",
    "is_super_admin",
    "is_admin",
    "assert_admin",
    "is_staff_user",
    "is_client_portal_user",
    "get_role_grants",
    "get_user_modules",
    "can_access_client",
    "get_permission_summary",
]
