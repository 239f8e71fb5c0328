"""Async Compliance Repositories.

SQLAlchemy implementations of the compliance repository interfaces:
the counts provider evaluates a client's documents and filings against
the tenant's active rules, the score store appends and reads snapshots.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance import evaluation
from compliance.models import ComplianceCounts, ComplianceLevel, ComplianceScore
from compliance.repositories import IComplianceCountsProvider, IComplianceScoreStore
from database.models import (
    ClientRecord,
    ComplianceRuleRecord,
    ComplianceScoreRecord,
    DocumentRecord,
    FilingRecord,
)

logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_rule(row: ComplianceRuleRecord) -> evaluation.RuleSpec:
    return evaluation.RuleSpec(
        rule_type=evaluation.RuleType(row.rule_type),
        target=row.target,
        weight=row.weight,
        client_types=frozenset(row.client_types) if row.client_types else None,
    )


def _to_score(row: ComplianceScoreRecord) -> ComplianceScore:
    return ComplianceScore(
        id=row.id,
        client_id=row.client_id,
        tenant_id=row.tenant_id,
        score_value=row.score_value,
        level=ComplianceLevel(row.level),
        missing_count=row.missing_count,
        expiring_count=row.expiring_count,
        overdue_filings_count=row.overdue_filings_count,
        last_calculated_at=_aware(row.last_calculated_at),
        breakdown=row.breakdown,
    )


class ComplianceCountsRepository(IComplianceCountsProvider):
    """
    Reads clients, rules, documents and filings and evaluates them.

    Args:
        session: SQLAlchemy async session
        expiring_lookahead_days: Window for "expiring soon" documents
        upcoming_filing_days: Window for "due soon" filings
        clock: Evaluation time source
    """

    def __init__(
        self,
        session: AsyncSession,
        expiring_lookahead_days: int = evaluation.DEFAULT_EXPIRING_LOOKAHEAD_DAYS,
        upcoming_filing_days: int = evaluation.DEFAULT_UPCOMING_FILING_DAYS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._session = session
        self._expiring_lookahead_days = expiring_lookahead_days
        self._upcoming_filing_days = upcoming_filing_days
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_counts(self, client_id: int, tenant_id: int) -> Optional[ComplianceCounts]:
        client = await self._session.scalar(
            select(ClientRecord).where(
                ClientRecord.id == client_id,
                ClientRecord.tenant_id == tenant_id,
            )
        )
        if client is None:
            return None

        rules = await self._session.scalars(
            select(ComplianceRuleRecord).where(
                ComplianceRuleRecord.tenant_id == tenant_id,
                ComplianceRuleRecord.is_active.is_(True),
            ).order_by(ComplianceRuleRecord.id)
        )
        documents = await self._session.scalars(
            select(DocumentRecord).where(
                DocumentRecord.tenant_id == tenant_id,
                DocumentRecord.client_id == client_id,
            )
        )
        filings = await self._session.scalars(
            select(FilingRecord).where(
                FilingRecord.tenant_id == tenant_id,
                FilingRecord.client_id == client_id,
            )
        )

        return evaluation.evaluate_client(
            client_type=client.client_type,
            rules=[_to_rule(row) for row in rules],
            documents=[
                evaluation.DocumentRecord(document_type=d.document_type, expiry_date=d.expiry_date)
                for d in documents
            ],
            filings=[
                evaluation.FilingRecord(
                    filing_type=f.filing_type,
                    status=evaluation.FilingStatus(f.status),
                    due_date=f.due_date,
                    created_at=f.created_at,
                )
                for f in filings
            ],
            now=self._clock(),
            expiring_lookahead_days=self._expiring_lookahead_days,
            upcoming_filing_days=self._upcoming_filing_days,
        )

    async def list_client_ids(self, tenant_id: int) -> List[int]:
        result = await self._session.scalars(
            select(ClientRecord.id)
            .where(ClientRecord.tenant_id == tenant_id)
            .order_by(ClientRecord.id)
        )
        return list(result)

    async def list_tenant_ids(self) -> List[int]:
        result = await self._session.scalars(
            select(ClientRecord.tenant_id).distinct().order_by(ClientRecord.tenant_id)
        )
        return list(result)


class ComplianceScoreRepository(IComplianceScoreStore):
    """Append-only snapshot storage in compliance_scores."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, score: ComplianceScore) -> ComplianceScore:
        record = ComplianceScoreRecord(
            tenant_id=score.tenant_id,
            client_id=score.client_id,
            score_value=score.score_value,
            level=score.level.value,
            missing_count=score.missing_count,
            expiring_count=score.expiring_count,
            overdue_filings_count=score.overdue_filings_count,
            last_calculated_at=score.last_calculated_at,
            breakdown=score.breakdown,
        )
        self._session.add(record)
        await self._session.flush()

        logger.debug(f"Stored compliance snapshot {record.id} for client {score.client_id}")
        return dataclasses.replace(score, id=record.id)

    async def latest_for_client(self, client_id: int, tenant_id: int) -> Optional[ComplianceScore]:
        row = await self._session.scalar(
            select(ComplianceScoreRecord)
            .where(
                ComplianceScoreRecord.tenant_id == tenant_id,
                ComplianceScoreRecord.client_id == client_id,
            )
            .order_by(
                ComplianceScoreRecord.last_calculated_at.desc(),
                ComplianceScoreRecord.id.desc(),
            )
            .limit(1)
        )
        return _to_score(row) if row is not None else None

    async def latest_for_tenant(self, tenant_id: int) -> List[ComplianceScore]:
        ranked = (
            select(
                ComplianceScoreRecord.id,
                func.row_number().over(
                    partition_by=ComplianceScoreRecord.client_id,
                    order_by=(
                        ComplianceScoreRecord.last_calculated_at.desc(),
                        ComplianceScoreRecord.id.desc(),
                    ),
                ).label("rank"),
            )
            .where(ComplianceScoreRecord.tenant_id == tenant_id)
            .subquery()
        )
        rows = await self._session.scalars(
            select(ComplianceScoreRecord)
            .join(ranked, ranked.c.id == ComplianceScoreRecord.id)
            .where(ranked.c.rank == 1)
            .order_by(ComplianceScoreRecord.client_id)
        )
        return [_to_score(row) for row in rows]
