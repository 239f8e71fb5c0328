"""
Tests for ComplianceScoringService.

Uses in-memory fakes for the unit of work so the orchestration contract
(one transaction, rollback on failure, error wrapping) is checked without
a database.
"""

import dataclasses
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from compliance.models import ComplianceCounts, ComplianceLevel, ComplianceScore
from compliance.repositories import (
    IComplianceCountsProvider,
    IComplianceScoreStore,
    IComplianceUnitOfWork,
)
from compliance.scoring import ScoringPolicy
from compliance.service import ComplianceScoringService
from core.exceptions import ClientNotFound, ScoreRecomputeFailed

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeCounts(IComplianceCountsProvider):
    def __init__(self, counts: Dict[Tuple[int, int], ComplianceCounts], error: Optional[Exception] = None):
        self._counts = counts
        self.error = error

    async def get_counts(self, client_id, tenant_id):
        if self.error:
            raise self.error
        return self._counts.get((client_id, tenant_id))

    async def list_client_ids(self, tenant_id):
        return sorted(c for c, t in self._counts if t == tenant_id)

    async def list_tenant_ids(self):
        return sorted({t for _, t in self._counts})


class FakeScores(IComplianceScoreStore):
    def __init__(self):
        self.committed: List[ComplianceScore] = []
        self.pending: List[ComplianceScore] = []
        self.error: Optional[Exception] = None

    async def add(self, score):
        if self.error:
            raise self.error
        stored = dataclasses.replace(score, id=len(self.committed) + len(self.pending) + 1)
        self.pending.append(stored)
        return stored

    async def latest_for_client(self, client_id, tenant_id):
        matching = [s for s in self.committed if s.client_id == client_id and s.tenant_id == tenant_id]
        return matching[-1] if matching else None

    async def latest_for_tenant(self, tenant_id):
        latest = {}
        for s in self.committed:
            if s.tenant_id == tenant_id:
                latest[s.client_id] = s
        return list(latest.values())


class FakeUnitOfWork(IComplianceUnitOfWork):
    def __init__(self, counts: FakeCounts, scores: FakeScores, log: List[str]):
        self.counts = counts
        self.scores = scores
        self._log = log

    async def commit(self):
        self.scores.committed.extend(self.scores.pending)
        self.scores.pending.clear()
        self._log.append("commit")

    async def rollback(self):
        self.scores.pending.clear()
        self._log.append("rollback")


@pytest.fixture
def store():
    counts = FakeCounts({
        (1, 10): ComplianceCounts(0, 0, 0),
        (2, 10): ComplianceCounts(1, 2, 0),
        (3, 10): ComplianceCounts(3, 2, 1),
        (5, 10): ComplianceCounts(2, 1, 1),
        (4, 20): ComplianceCounts(0, 1, 1),
    })
    return counts, FakeScores(), []


@pytest.fixture
def service(store):
    counts, scores, log = store
    return ComplianceScoringService(
        uow_factory=lambda: FakeUnitOfWork(counts, scores, log),
        clock=lambda: NOW,
    )


class TestRecomputeForClient:
    """Single-client recompute."""

    @pytest.mark.asyncio
    async def test_persists_snapshot(self, service, store):
        _, scores, log = store
        score = await service.recompute_for_client(2, 10)

        assert score.score_value == 80
        assert score.level == ComplianceLevel.GREEN
        assert score.missing_count == 1
        assert score.expiring_count == 2
        assert score.last_calculated_at == NOW
        assert score.id is not None
        assert scores.committed == [score]
        assert log == ["commit"]

    @pytest.mark.asyncio
    async def test_red_client(self, service):
        score = await service.recompute_for_client(3, 10)
        assert score.score_value == 45
        assert score.level == ComplianceLevel.RED

    @pytest.mark.asyncio
    async def test_repeat_recompute_is_stable(self, service, store):
        """Should give identical score and level for unchanged counts."""
        first = await service.recompute_for_client(3, 10)
        second = await service.recompute_for_client(3, 10)
        assert (first.score_value, first.level) == (second.score_value, second.level)
        assert len(store[1].committed) == 2

    @pytest.mark.asyncio
    async def test_unknown_client(self, service, store):
        with pytest.raises(ClientNotFound):
            await service.recompute_for_client(99, 10)
        assert store[2] == ["rollback"]

    @pytest.mark.asyncio
    async def test_client_of_other_tenant_not_found(self, service):
        with pytest.raises(ClientNotFound):
            await service.recompute_for_client(4, 10)

    @pytest.mark.asyncio
    async def test_read_failure_wrapped(self, service, store):
        counts, scores, log = store
        counts.error = ConnectionError("database is down")

        with pytest.raises(ScoreRecomputeFailed) as exc_info:
            await service.recompute_for_client(1, 10)

        err = exc_info.value
        assert err.client_id == 1
        assert err.tenant_id == 10
        assert isinstance(err.__cause__, ConnectionError)
        assert log == ["rollback"]

    @pytest.mark.asyncio
    async def test_write_failure_keeps_prior_snapshot(self, service, store):
        """Should roll back so the previous snapshot stays authoritative."""
        _, scores, _ = store
        prior = await service.recompute_for_client(2, 10)

        scores.error = RuntimeError("disk full")
        with pytest.raises(ScoreRecomputeFailed) as exc_info:
            await service.recompute_for_client(2, 10)

        assert exc_info.value.reason == "disk full"
        assert "disk full" not in exc_info.value.message

        assert await service.get_latest_score(2, 10) == prior
        assert scores.pending == []

    @pytest.mark.asyncio
    async def test_custom_policy(self, store):
        counts, scores, log = store
        service = ComplianceScoringService(
            uow_factory=lambda: FakeUnitOfWork(counts, scores, log),
            policy=ScoringPolicy(missing_document_weight=50),
            clock=lambda: NOW,
        )
        score = await service.recompute_for_client(2, 10)
        assert score.score_value == 40


class TestTenantOperations:
    """Refresh, summary and issues."""

    @pytest.mark.asyncio
    async def test_refresh_tenant(self, service, store):
        updated = await service.refresh_tenant_compliance(10)
        assert updated == 4
        assert {s.client_id for s in store[1].committed} == {1, 2, 3, 5}

    @pytest.mark.asyncio
    async def test_refresh_empty_tenant(self, service):
        assert await service.refresh_tenant_compliance(999) == 0

    @pytest.mark.asyncio
    async def test_refresh_propagates_failure(self, service, store):
        store[0].error = ConnectionError("gone")
        with pytest.raises(ScoreRecomputeFailed):
            await service.refresh_tenant_compliance(10)

    @pytest.mark.asyncio
    async def test_list_tenant_ids(self, service):
        assert await service.list_tenant_ids() == [10, 20]

    @pytest.mark.asyncio
    async def test_summary(self, service):
        await service.refresh_tenant_compliance(10)
        summary = await service.get_compliance_summary(10)

        assert summary.total_clients == 4
        assert (summary.green, summary.amber, summary.red) == (2, 1, 1)
        assert summary.average_score == 71
        assert summary.total_missing_documents == 6

    @pytest.mark.asyncio
    async def test_summary_empty(self, service):
        summary = await service.get_compliance_summary(10)
        assert summary.total_clients == 0
        assert summary.average_score == 0

    @pytest.mark.asyncio
    async def test_clients_with_issues_sorted(self, service):
        """Should list amber and red clients, lowest score first."""
        await service.refresh_tenant_compliance(10)
        await service.refresh_tenant_compliance(20)

        issues = await service.get_clients_with_issues(10)
        assert [(s.client_id, s.score_value) for s in issues] == [(3, 45), (5, 60)]

        # Tenant 20 only has a green client
        assert await service.get_clients_with_issues(20) == []

    @pytest.mark.asyncio
    async def test_get_latest_score_none(self, service):
        assert await service.get_latest_score(1, 10) is None
