"""
Compliance Scoring

Turns the three compliance signals for a client into a 0-100 score and a
green/amber/red tier.

Formula:
    score = 100
            - missing_count          * missing_document_weight   (10)
            - expiring_count         * expiring_document_weight  (5)
            - overdue_filings_count  * overdue_filing_weight     (15)
    clamped to [0, 100]

Tiers (inclusive lower bounds):
    score >= 80  -> green
    score >= 60  -> amber
    otherwise    -> red

Both functions are pure: no I/O, no clock, no hidden state.
"""

from dataclasses import dataclass
from typing import Optional, Union

from .models import ComplianceLevel, ScoreResult

MAX_SCORE = 100
MIN_SCORE = 0


@dataclass(frozen=True)
class ScoringPolicy:
    """Weights and thresholds used by compute_score."""

    missing_document_weight: int = 10
    expiring_document_weight: int = 5
    overdue_filing_weight: int = 15
    green_threshold: int = 80
    amber_threshold: int = 60

    def __post_init__(self):
        for name in ("missing_document_weight", "expiring_document_weight", "overdue_filing_weight"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if not MIN_SCORE <= self.amber_threshold <= self.green_threshold <= MAX_SCORE:
            raise ValueError("thresholds must satisfy 0 <= amber <= green <= 100")

    @classmethod
    def from_settings(cls, settings) -> "ScoringPolicy":
        """Build a policy from config.settings.ComplianceSettings."""
        return cls(
            missing_document_weight=settings.missing_document_weight,
            expiring_document_weight=settings.expiring_document_weight,
            overdue_filing_weight=settings.overdue_filing_weight,
            green_threshold=settings.green_threshold,
            amber_threshold=settings.amber_threshold,
        )


DEFAULT_POLICY = ScoringPolicy()


def get_compliance_level(
    score: Union[int, float],
    policy: Optional[ScoringPolicy] = None,
) -> ComplianceLevel:
    """Map a score to its tier."""
    policy = policy or DEFAULT_POLICY
    if score >= policy.green_threshold:
        return ComplianceLevel.GREEN
    if score >= policy.amber_threshold:
        return ComplianceLevel.AMBER
    return ComplianceLevel.RED


def compute_score(
    missing_count: int,
    expiring_count: int,
    overdue_filings_count: int,
    policy: Optional[ScoringPolicy] = None,
) -> ScoreResult:
    """
    Compute the compliance score and tier for one client.

    Args:
        missing_count: Required documents not present
        expiring_count: Present documents expired or expiring within the lookahead
        overdue_filings_count: Filings past due and not submitted
        policy: Weights/thresholds; defaults to DEFAULT_POLICY

    Returns:
        ScoreResult with score_value in [0, 100]

    Raises:
        ValueError: If any count is negative.
    """
    policy = policy or DEFAULT_POLICY

    for name, value in (
        ("missing_count", missing_count),
        ("expiring_count", expiring_count),
        ("overdue_filings_count", overdue_filings_count),
    ):
        if value < 0:
            raise ValueError(f"{name} must be non-negative, got {value}")

    penalty = (
        missing_count * policy.missing_document_weight
        + expiring_count * policy.expiring_document_weight
        + overdue_filings_count * policy.overdue_filing_weight
    )
    score_value = max(MIN_SCORE, min(MAX_SCORE, MAX_SCORE - penalty))

    return ScoreResult(
        score_value=score_value,
        level=get_compliance_level(score_value, policy),
    )
