"""
Domain Exceptions

Every error raised by the authorization and compliance layers derives
from ComplianceCoreError so request handlers can translate the whole
family in one place (see web.api_errors).

Taxonomy:
    - AuthenticationRequired: no usable user context on the request (401)
    - PermissionDenied: role lacks the (module, action) grant (403)
    - TenantMismatch: cross-tenant access attempt (403)
    - ClientNotFound: no such client in the caller's tenant (404)
    - ScoreRecomputeFailed: storage failure during a recompute (503)
    - RoleTableError: the static role table could not be loaded
"""

from typing import Optional


class ComplianceCoreError(Exception):
    """Base class for all domain errors."""

    code: str = "COMPLIANCE_CORE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationRequired(ComplianceCoreError):
    """Raised when a session does not carry a complete user context."""

    code = "AUTH_REQUIRED"


class PermissionDenied(ComplianceCoreError):
    """Raised when a role is not allowed to perform an action on a module."""

    code = "AUTH_INSUFFICIENT_PERMISSIONS"

    def __init__(
        self,
        message: str,
        role: Optional[str] = None,
        module: Optional[str] = None,
        action: Optional[str] = None,
    ):
        super().__init__(message)
        self.role = role
        self.module = module
        self.action = action


class TenantMismatch(ComplianceCoreError):
    """Raised when a user touches a resource owned by another tenant."""

    code = "TENANT_ACCESS_DENIED"

    def __init__(self, user_tenant_id: int, resource_tenant_id: int):
        super().__init__("Access denied: resource belongs to a different tenant")
        self.user_tenant_id = user_tenant_id
        self.resource_tenant_id = resource_tenant_id


class ClientNotFound(ComplianceCoreError):
    """Raised when a client does not exist within the given tenant."""

    code = "CLIENT_NOT_FOUND"

    def __init__(self, client_id: int, tenant_id: Optional[int] = None):
        super().__init__(f"Client {client_id} not found")
        self.client_id = client_id
        self.tenant_id = tenant_id


class ScoreRecomputeFailed(ComplianceCoreError):
    """
    Raised when a compliance recompute cannot read counts or write its snapshot.

    The prior snapshot remains authoritative. Retrying is the job of the
    scheduling layer (tasks.compliance_tasks), never of the service itself.
    """

    code = "COMPLIANCE_RECOMPUTE_FAILED"

    def __init__(self, client_id: int, tenant_id: Optional[int] = None, reason: str = ""):
        # reason stays off the public message; it may hold storage internals
        super().__init__(f"Compliance recompute failed for client {client_id}")
        self.client_id = client_id
        self.tenant_id = tenant_id
        self.reason = reason


class RoleTableError(ComplianceCoreError):
    """Raised when the static role table is missing or malformed."""

    code = "ROLE_TABLE_INVALID"
