"""
Repository Interfaces for Compliance Scoring.

The scoring service depends only on these contracts. The SQLAlchemy
implementations live in database.repositories.compliance_repository;
tests use in-memory fakes.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .models import ComplianceCounts, ComplianceScore


class IComplianceCountsProvider(ABC):
    """Source of the raw compliance signals for clients."""

    @abstractmethod
    async def get_counts(self, client_id: int, tenant_id: int) -> Optional[ComplianceCounts]:
        """
        Evaluate a client's records into counts.

        Args:
            client_id: Client to evaluate
            tenant_id: Tenant the client must belong to

        Returns:
            The counts, or None if no such client exists in the tenant
        """
        pass

    @abstractmethod
    async def list_client_ids(self, tenant_id: int) -> List[int]:
        """All client IDs belonging to a tenant."""
        pass

    @abstractmethod
    async def list_tenant_ids(self) -> List[int]:
        """All tenants that own at least one client."""
        pass


class IComplianceScoreStore(ABC):
    """Append-only store of compliance snapshots."""

    @abstractmethod
    async def add(self, score: ComplianceScore) -> ComplianceScore:
        """
        Persist a new snapshot.

        Returns:
            The stored snapshot, with its id assigned
        """
        pass

    @abstractmethod
    async def latest_for_client(self, client_id: int, tenant_id: int) -> Optional[ComplianceScore]:
        """Most recent snapshot for a client, scoped to its tenant."""
        pass

    @abstractmethod
    async def latest_for_tenant(self, tenant_id: int) -> List[ComplianceScore]:
        """Most recent snapshot of every scored client in a tenant."""
        pass


class IComplianceUnitOfWork(ABC):
    """
    Transaction boundary for one scoring operation.

    Used as an async context manager: commit on clean exit of the
    operation, rollback when it raises.
    """

    counts: IComplianceCountsProvider
    scores: IComplianceScoreStore

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    async def __aenter__(self) -> "IComplianceUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            await self.rollback()
