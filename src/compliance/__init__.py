"""
Compliance Scoring

Deterministic 0-100 score per client from missing documents, expiring
documents and overdue filings, bucketed into green/amber/red.

Usage:
    from compliance import compute_score

    compute_score(missing_count=1, expiring_count=2, overdue_filings_count=0)
    # ScoreResult(score_value=80, level=ComplianceLevel.GREEN)
"""

from .models import (
    ComplianceLevel,
    ScoreResult,
    ComplianceBreakdown,
    ComplianceCounts,
    ComplianceScore,
    ComplianceSummary,
)
from .scoring import ScoringPolicy, DEFAULT_POLICY, compute_score, get_compliance_level
from .evaluation import (
    RuleType,
    FilingStatus,
    RuleSpec,
    DocumentRecord,
    FilingRecord,
    evaluate_client,
    summarize_issues,
)
from .repositories import IComplianceCountsProvider, IComplianceScoreStore, IComplianceUnitOfWork
from .service import ComplianceScoringService

__all__ = [
    # Models
    "ComplianceLevel",
    "ScoreResult",
    "ComplianceBreakdown",
    "ComplianceCounts",
    "ComplianceScore",
    "ComplianceSummary",

    # Scoring
    "ScoringPolicy",
    "DEFAULT_POLICY",
    "compute_score",
    "get_compliance_level",

    # Evaluation
    "RuleType",
    "FilingStatus",
    "RuleSpec",
    "DocumentRecord",
    "FilingRecord",
    "evaluate_client",
    "summarize_issues",

    # Repositories
    "IComplianceCountsProvider",
    "IComplianceScoreStore",
    "IComplianceUnitOfWork",

    # Service
    "ComplianceScoringService",
]
