"""
Compliance Domain Models

ComplianceCounts  - raw signals for one client (input to scoring)
ScoreResult       - output of compute_score
ComplianceScore   - persisted point-in-time snapshot for one client
ComplianceSummary - tenant-wide dashboard totals
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ComplianceLevel(str, Enum):
    """Coarse compliance tier shown on dashboards."""
    GREEN = "green"
    AMBER = "amber"
    RED = "red"


@dataclass(frozen=True)
class ScoreResult:
    """Score and tier for one set of counts."""
    score_value: int
    level: ComplianceLevel


@dataclass
class ComplianceBreakdown:
    """Detail collected while evaluating a client's records."""
    missing_documents: int = 0
    expired_documents: int = 0
    expiring_documents: int = 0
    overdue_filings: int = 0
    upcoming_filings: int = 0
    rules_evaluated: int = 0
    # Rule weights, reported for dashboards; the score itself is count-based
    total_weight: int = 0
    achieved_weight: float = 0.0
    issues: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ComplianceCounts:
    """
    The three signals scoring is based on.

    expiring_count includes documents that have already expired as well as
    those expiring inside the lookahead window.
    """
    missing_count: int
    expiring_count: int
    overdue_filings_count: int
    breakdown: Optional[ComplianceBreakdown] = None

    def __post_init__(self):
        for name in ("missing_count", "expiring_count", "overdue_filings_count"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")


@dataclass(frozen=True)
class ComplianceScore:
    """
    Point-in-time compliance evaluation for one client.

    Never updated in place: each recompute writes a new snapshot and the
    latest one is authoritative.
    """
    client_id: int
    tenant_id: int
    score_value: int
    level: ComplianceLevel
    missing_count: int
    expiring_count: int
    overdue_filings_count: int
    last_calculated_at: datetime
    breakdown: Optional[Dict[str, Any]] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "tenant_id": self.tenant_id,
            "score_value": self.score_value,
            "level": self.level.value,
            "missing_count": self.missing_count,
            "expiring_count": self.expiring_count,
            "overdue_filings_count": self.overdue_filings_count,
            "last_calculated_at": self.last_calculated_at.isoformat(),
            "breakdown": self.breakdown,
        }


@dataclass(frozen=True)
class ComplianceSummary:
    """Dashboard totals over the latest snapshot of every client in a tenant."""
    total_clients: int = 0
    green: int = 0
    amber: int = 0
    red: int = 0
    average_score: int = 0
    total_missing_documents: int = 0
    total_expiring_documents: int = 0
    total_overdue_filings: int = 0

    @classmethod
    def from_scores(cls, scores: List[ComplianceScore]) -> "ComplianceSummary":
        if not scores:
            return cls()
        return cls(
            total_clients=len(scores),
            green=sum(1 for s in scores if s.level == ComplianceLevel.GREEN),
            amber=sum(1 for s in scores if s.level == ComplianceLevel.AMBER),
            red=sum(1 for s in scores if s.level == ComplianceLevel.RED),
            average_score=round(sum(s.score_value for s in scores) / len(scores)),
            total_missing_documents=sum(s.missing_count for s in scores),
            total_expiring_documents=sum(s.expiring_count for s in scores),
            total_overdue_filings=sum(s.overdue_filings_count for s in scores),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
