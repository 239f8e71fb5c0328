"""Repository implementations for compliance scoring."""

from .compliance_repository import ComplianceCountsRepository, ComplianceScoreRepository

__all__ = [
    "ComplianceCountsRepository",
    "ComplianceScoreRepository",
]
