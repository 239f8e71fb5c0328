"""
Core Module - Shared pieces used by every other package.

Currently holds the domain exception hierarchy.
"""

from .exceptions import (
    ComplianceCoreError,
    AuthenticationRequired,
    PermissionDenied,
    TenantMismatch,
    ClientNotFound,
    ScoreRecomputeFailed,
    RoleTableError,
)

__all__ = [
    "ComplianceCoreError",
    "AuthenticationRequired",
    "PermissionDenied",
    "TenantMismatch",
    "ClientNotFound",
    "ScoreRecomputeFailed",
    "RoleTableError",
]
