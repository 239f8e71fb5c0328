"""
Compliance Scoring Service

Orchestrates recomputes: read a client's counts, score them, append a
snapshot. Storage is reached only through the unit of work handed in by
the caller, so the same service runs against SQLAlchemy in production
and in-memory fakes in tests.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from core.exceptions import ClientNotFound, ComplianceCoreError, ScoreRecomputeFailed

from .models import ComplianceLevel, ComplianceScore, ComplianceSummary
from .repositories import IComplianceUnitOfWork
from .scoring import DEFAULT_POLICY, ScoringPolicy, compute_score

logger = logging.getLogger(__name__)

ISSUE_LEVELS = frozenset({ComplianceLevel.AMBER, ComplianceLevel.RED})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ComplianceScoringService:
    """
    Recompute and query compliance snapshots.

    Args:
        uow_factory: Zero-argument callable returning a fresh unit of work
        policy: Scoring weights and thresholds
        clock: Source of last_calculated_at timestamps
    """

    def __init__(
        self,
        uow_factory: Callable[[], IComplianceUnitOfWork],
        policy: Optional[ScoringPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._uow_factory = uow_factory
        self._policy = policy or DEFAULT_POLICY
        self._clock = clock or _utcnow

    async def recompute_for_client(self, client_id: int, tenant_id: int) -> ComplianceScore:
        """
        Recompute and persist the compliance snapshot for one client.

        Count read and snapshot write happen in one transaction. On any
        storage failure the transaction is rolled back and the previous
        snapshot stays authoritative.

        Raises:
            ClientNotFound: If the client is not in the tenant.
            ScoreRecomputeFailed: If counts could not be read or the
                snapshot could not be written.
        """
        try:
            async with self._uow_factory() as uow:
                counts = await uow.counts.get_counts(client_id, tenant_id)
                if counts is None:
                    raise ClientNotFound(client_id, tenant_id)

                result = compute_score(
                    counts.missing_count,
                    counts.expiring_count,
                    counts.overdue_filings_count,
                    self._policy,
                )
                snapshot = ComplianceScore(
                    client_id=client_id,
                    tenant_id=tenant_id,
                    score_value=result.score_value,
                    level=result.level,
                    missing_count=counts.missing_count,
                    expiring_count=counts.expiring_count,
                    overdue_filings_count=counts.overdue_filings_count,
                    last_calculated_at=self._clock(),
                    breakdown=counts.breakdown.to_dict() if counts.breakdown else None,
                )
                stored = await uow.scores.add(snapshot)
                await uow.commit()
        except ComplianceCoreError:
            raise
        except Exception as exc:
            logger.error(
                f"Compliance recompute failed for client {client_id}: {exc}",
                extra={"client_id": client_id, "tenant_id": tenant_id},
                exc_info=True,
            )
            raise ScoreRecomputeFailed(client_id, tenant_id, reason=str(exc)) from exc

        logger.info(
            f"Compliance recomputed for client {client_id}: "
            f"{stored.score_value} ({stored.level.value})",
            extra={
                "client_id": client_id,
                "tenant_id": tenant_id,
                "score_value": stored.score_value,
                "level": stored.level.value,
            },
        )
        return stored

    async def refresh_tenant_compliance(self, tenant_id: int) -> int:
        """
        Recompute every client in a tenant.

        Each client gets its own transaction; the first failure propagates
        and clients already refreshed keep their new snapshot.

        Returns:
            Number of clients updated
        """
        client_ids = await self._list_client_ids(tenant_id)

        updated = 0
        for client_id in client_ids:
            await self.recompute_for_client(client_id, tenant_id)
            updated += 1

        logger.info(
            f"Refreshed compliance for {updated} clients in tenant {tenant_id}",
            extra={"tenant_id": tenant_id, "updated": updated},
        )
        return updated

    async def list_tenant_ids(self) -> List[int]:
        """Tenants that own at least one client."""
        async with self._uow_factory() as uow:
            return await uow.counts.list_tenant_ids()

    async def get_latest_score(self, client_id: int, tenant_id: int) -> Optional[ComplianceScore]:
        async with self._uow_factory() as uow:
            return await uow.scores.latest_for_client(client_id, tenant_id)

    async def get_compliance_summary(self, tenant_id: int) -> ComplianceSummary:
        """Dashboard totals over the latest snapshot of each client."""
        async with self._uow_factory() as uow:
            scores = await uow.scores.latest_for_tenant(tenant_id)
        return ComplianceSummary.from_scores(scores)

    async def get_clients_with_issues(self, tenant_id: int) -> List[ComplianceScore]:
        """Latest amber and red snapshots, lowest score first."""
        async with self._uow_factory() as uow:
            scores = await uow.scores.latest_for_tenant(tenant_id)
        flagged = [s for s in scores if s.level in ISSUE_LEVELS]
        return sorted(flagged, key=lambda s: (s.score_value, s.client_id))

    async def _list_client_ids(self, tenant_id: int) -> List[int]:
        try:
            async with self._uow_factory() as uow:
                return await uow.counts.list_client_ids(tenant_id)
        except Exception as exc:
            logger.error(
                f"Could not list clients for tenant {tenant_id}: {exc}",
                extra={"tenant_id": tenant_id},
            )
            raise
