"""
Compliance Evaluation

Walks a client's documents and filings against the tenant's active
compliance rules and produces the counts that scoring consumes.

Rule types:
    document_required  - the client must hold a current document of a type
    filing_required    - the client's latest filing of a type must be submitted

Document outcomes:
    none of that type                -> missing
    expiry date in the past          -> expired (counted as expiring)
    expiry within lookahead window   -> expiring
    otherwise / no expiry date       -> ok

Filing outcomes:
    none of that type                -> overdue
    latest submitted or approved     -> ok
    latest marked overdue            -> overdue
    due date in the past             -> overdue
    due within the upcoming window   -> upcoming (informational)
    otherwise                        -> ok
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Sequence, Union

from .models import ComplianceBreakdown, ComplianceCounts

DEFAULT_EXPIRING_LOOKAHEAD_DAYS = 30
DEFAULT_UPCOMING_FILING_DAYS = 14


class RuleType(str, Enum):
    DOCUMENT_REQUIRED = "document_required"
    FILING_REQUIRED = "filing_required"


class FilingStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    OVERDUE = "overdue"


COMPLETED_FILING_STATUSES = frozenset({FilingStatus.SUBMITTED, FilingStatus.APPROVED})


@dataclass(frozen=True)
class RuleSpec:
    """
    One active compliance rule.

    weight feeds the total/achieved weight in the breakdown only; it does
    not change the score.
    """
    rule_type: RuleType
    target: str
    weight: int = 1
    client_types: Optional[FrozenSet[str]] = None

    def applies_to(self, client_type: Optional[str]) -> bool:
        if not self.client_types:
            return True
        return client_type in self.client_types


@dataclass(frozen=True)
class DocumentRecord:
    document_type: str
    expiry_date: Optional[Union[date, datetime]] = None


@dataclass(frozen=True)
class FilingRecord:
    filing_type: str
    status: FilingStatus
    due_date: Optional[Union[date, datetime]] = None
    created_at: Optional[datetime] = None


def _as_utc(value: Union[date, datetime]) -> datetime:
    """Normalize dates and naive datetimes (as SQLite returns them) to aware UTC."""
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _latest_expiry(documents: Sequence[DocumentRecord]) -> Optional[datetime]:
    """Latest expiry among documents of one type; None if any never expires."""
    if any(doc.expiry_date is None for doc in documents):
        return None
    return max(_as_utc(doc.expiry_date) for doc in documents)


def _latest_filing(filings: Sequence[FilingRecord]) -> FilingRecord:
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return max(filings, key=lambda f: _as_utc(f.created_at) if f.created_at else epoch)


@dataclass
class _Evaluation:
    now: datetime
    expiring_cutoff: datetime
    upcoming_cutoff: datetime
    breakdown: ComplianceBreakdown = field(default_factory=ComplianceBreakdown)

    def document_rule(self, rule: RuleSpec, documents: Sequence[DocumentRecord]) -> None:
        name = rule.target
        matching = [doc for doc in documents if doc.document_type == name]
        self.breakdown.total_weight += rule.weight

        if not matching:
            self.breakdown.missing_documents += 1
            self.breakdown.issues.append(f"Missing required document: {name}")
            self.breakdown.recommendations.append(f"Upload {name}")
            return

        expiry = _latest_expiry(matching)
        if expiry is None:
            self.breakdown.achieved_weight += rule.weight
            return
        if expiry < self.now:
            self.breakdown.expired_documents += 1
            self.breakdown.issues.append(f"{name} has expired")
            self.breakdown.recommendations.append(f"Renew {name} immediately")
        elif expiry < self.expiring_cutoff:
            self.breakdown.expiring_documents += 1
            self.breakdown.issues.append(f"{name} expiring soon")
            self.breakdown.recommendations.append(f"Plan renewal for {name}")
            # Still valid today
            self.breakdown.achieved_weight += rule.weight
        else:
            self.breakdown.achieved_weight += rule.weight

    def filing_rule(self, rule: RuleSpec, filings: Sequence[FilingRecord]) -> None:
        name = rule.target
        matching = [f for f in filings if f.filing_type == name]
        self.breakdown.total_weight += rule.weight

        if not matching:
            self.breakdown.overdue_filings += 1
            self.breakdown.issues.append(f"No {name} filings found")
            self.breakdown.recommendations.append(f"File {name} immediately")
            return

        latest = _latest_filing(matching)
        if latest.status in COMPLETED_FILING_STATUSES:
            self.breakdown.achieved_weight += rule.weight
            return

        due = _as_utc(latest.due_date) if latest.due_date else None
        if latest.status == FilingStatus.OVERDUE or (due is not None and due < self.now):
            self.breakdown.overdue_filings += 1
            self.breakdown.issues.append(f"{name} is overdue")
            self.breakdown.recommendations.append(f"Submit {name} immediately")
        elif due is not None and due < self.upcoming_cutoff:
            self.breakdown.upcoming_filings += 1
            self.breakdown.recommendations.append(f"{name} due soon")
            # Partial credit
            self.breakdown.achieved_weight += rule.weight * 0.5
        else:
            self.breakdown.achieved_weight += rule.weight


def evaluate_client(
    client_type: Optional[str],
    rules: Iterable[RuleSpec],
    documents: Sequence[DocumentRecord],
    filings: Sequence[FilingRecord],
    now: datetime,
    expiring_lookahead_days: int = DEFAULT_EXPIRING_LOOKAHEAD_DAYS,
    upcoming_filing_days: int = DEFAULT_UPCOMING_FILING_DAYS,
) -> ComplianceCounts:
    """
    Evaluate one client's records into compliance counts.

    Args:
        client_type: Used to filter rules that target specific client types
        rules: Active rules of the client's tenant
        documents: The client's documents
        filings: The client's filings
        now: Evaluation time
        expiring_lookahead_days: Window for "expiring soon"
        upcoming_filing_days: Window for "due soon"

    Returns:
        ComplianceCounts with a populated breakdown
    """
    now = _as_utc(now)
    evaluation = _Evaluation(
        now=now,
        expiring_cutoff=now + timedelta(days=expiring_lookahead_days),
        upcoming_cutoff=now + timedelta(days=upcoming_filing_days),
    )

    for rule in rules:
        if not rule.applies_to(client_type):
            continue
        evaluation.breakdown.rules_evaluated += 1
        if rule.rule_type == RuleType.DOCUMENT_REQUIRED:
            evaluation.document_rule(rule, documents)
        elif rule.rule_type == RuleType.FILING_REQUIRED:
            evaluation.filing_rule(rule, filings)

    breakdown = evaluation.breakdown
    return ComplianceCounts(
        missing_count=breakdown.missing_documents,
        expiring_count=breakdown.expiring_documents + breakdown.expired_documents,
        overdue_filings_count=breakdown.overdue_filings,
        breakdown=breakdown,
    )


def summarize_issues(counts: ComplianceCounts) -> List[str]:
    """Short human-readable list of what needs attention."""
    parts = []
    if counts.missing_count:
        parts.append(f"{counts.missing_count} missing document(s)")
    if counts.expiring_count:
        parts.append(f"{counts.expiring_count} expired or expiring document(s)")
    if counts.overdue_filings_count:
        parts.append(f"{counts.overdue_filings_count} overdue filing(s)")
    return parts
