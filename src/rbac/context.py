"""
Permission Context

UserPermissionContext is the request-scoped identity every authorization
check receives: who is acting, in which tenant, under which role.
It is rebuilt from session state for each request and never persisted.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from core.exceptions import AuthenticationRequired
from .roles import Role, parse_role


@dataclass(frozen=True)
class UserPermissionContext:
    """
    Who is making the request.

    role is normally a Role; a raw string that is not a known role is kept
    as-is so that authorization denies it instead of failing to build.
    """

    role: Union[Role, str]
    tenant_id: int
    user_id: int

    @property
    def role_name(self) -> str:
        return self.role.value if isinstance(self.role, Role) else str(self.role)

    @classmethod
    def from_session(cls, session: Optional[Mapping[str, Any]]) -> "UserPermissionContext":
        """
        Build a context from session state.

        Expected shape:
            {"user": {"id": 7, "tenantId": 3}, "role": "Viewer"}

        Raises:
            AuthenticationRequired: If user id, tenant id or role is missing.
        """
        session = session or {}
        user = session.get("user") or {}
        user_id = user.get("id")
        tenant_id = user.get("tenantId", user.get("tenant_id"))
        role = session.get("role")

        if user_id is None or tenant_id is None or not role:
            raise AuthenticationRequired("Invalid session: missing user context")

        try:
            tenant_id = int(tenant_id)
            user_id = int(user_id)
        except (TypeError, ValueError) as e:
            raise AuthenticationRequired("Invalid session: malformed user context") from e

        return cls(
            role=parse_role(role) or role,
            tenant_id=tenant_id,
            user_id=user_id,
        )
