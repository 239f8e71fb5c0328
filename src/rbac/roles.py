"""
Role Definitions

8 roles, one per user in a tenant:

    PLATFORM
    └── SuperAdmin         - Full access across all tenants

    FIRM (staff inside one tenant)
    ├── FirmAdmin          - Tenant owner, manages users and settings
    ├── ComplianceManager  - Compliance oversight, filings, clients
    ├── ComplianceOfficer  - Client filings and document review
    ├── DocumentOfficer    - Document uploads
    ├── FilingClerk        - Prepares filings
    └── Viewer             - Read-only

    CLIENT
    └── ClientPortalUser   - A client's own portal login

What each role may do lives in the role table (config/roles.yaml),
loaded by rbac.permissions.
"""

from enum import Enum
from typing import Optional, Union


class Role(str, Enum):
    """
    All 8 roles in the system.

    Values match the names stored in sessions and in the role table.
    """

    SUPER_ADMIN = "SuperAdmin"
    FIRM_ADMIN = "FirmAdmin"
    COMPLIANCE_MANAGER = "ComplianceManager"
    COMPLIANCE_OFFICER = "ComplianceOfficer"
    DOCUMENT_OFFICER = "DocumentOfficer"
    FILING_CLERK = "FilingClerk"
    VIEWER = "Viewer"
    CLIENT_PORTAL_USER = "ClientPortalUser"


class Action(str, Enum):
    """Common action identifiers. Grants may also name arbitrary actions."""

    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    SUBMIT = "submit"
    UPLOAD = "upload"
    MESSAGE = "message"


# Holder of unconditional access
SUPER_ROLE = Role.SUPER_ADMIN

# Roles that can manage users and tenant settings
ADMIN_ROLES = frozenset({
    Role.SUPER_ADMIN,
    Role.FIRM_ADMIN,
})

CLIENT_ROLES = frozenset({
    Role.CLIENT_PORTAL_USER,
})

STAFF_ROLES = frozenset(Role) - CLIENT_ROLES

# Every functional area a full-access role can reach
ALL_MODULES = (
    "clients",
    "documents",
    "filings",
    "services",
    "users",
    "settings",
    "compliance",
    "tasks",
    "messages",
    "analytics",
    "wizards",
)


def parse_role(value: Union[str, Role, None]) -> Optional[Role]:
    """
    Resolve a role name to a Role.

    Returns None for names outside the enumeration so callers can deny
    instead of raising.
    """
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None
