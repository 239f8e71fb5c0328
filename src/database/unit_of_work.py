"""Unit of Work for compliance scoring.

Scopes the counts read and the snapshot write of one recompute to a
single database transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from compliance.repositories import IComplianceUnitOfWork
from config.settings import ComplianceSettings, get_compliance_settings
from database.async_engine import get_async_session_factory
from database.repositories.compliance_repository import (
    ComplianceCountsRepository,
    ComplianceScoreRepository,
)

logger = logging.getLogger(__name__)


class ComplianceUnitOfWork(IComplianceUnitOfWork):
    """
    Unit of Work implementation using SQLAlchemy async sessions.

    Usage:
        async with ComplianceUnitOfWork() as uow:
            counts = await uow.counts.get_counts(client_id, tenant_id)
            await uow.scores.add(snapshot)
            await uow.commit()

    The context manager:
    - Opens a session from the global factory unless one is given
    - Commits on clean exit if not already committed
    - Rolls back on exception
    - Closes the session if it owns it
    """

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        settings: Optional[ComplianceSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._session: Optional[AsyncSession] = session
        self._session_factory = session_factory
        self._owns_session: bool = session is None
        self._committed: bool = False
        self._settings = settings or get_compliance_settings()
        self._clock = clock

        # Lazy-initialized repositories
        self._counts: Optional[ComplianceCountsRepository] = None
        self._scores: Optional[ComplianceScoreRepository] = None

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("UnitOfWork not initialized. Use 'async with' context.")
        return self._session

    @property
    def counts(self) -> ComplianceCountsRepository:
        if self._counts is None:
            self._counts = ComplianceCountsRepository(
                self.session,
                expiring_lookahead_days=self._settings.expiring_lookahead_days,
                upcoming_filing_days=self._settings.upcoming_filing_days,
                clock=self._clock,
            )
        return self._counts

    @property
    def scores(self) -> ComplianceScoreRepository:
        if self._scores is None:
            self._scores = ComplianceScoreRepository(self.session)
        return self._scores

    async def commit(self) -> None:
        if self._session is None:
            raise RuntimeError("UnitOfWork not initialized")

        if self._committed:
            return

        await self._session.commit()
        self._committed = True
        logger.debug("UnitOfWork committed")

    async def rollback(self) -> None:
        if self._session is None:
            return

        await self._session.rollback()
        logger.debug("UnitOfWork rolled back")

    async def __aenter__(self) -> "ComplianceUnitOfWork":
        if self._session is None:
            factory = self._session_factory or get_async_session_factory()
            self._session = factory()
            self._owns_session = True

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            if exc_type is not None:
                await self.rollback()
                logger.debug(f"UnitOfWork rolled back due to: {exc_type.__name__}")
            elif not self._committed:
                await self.commit()
        finally:
            if self._owns_session and self._session is not None:
                await self._session.close()
                self._session = None
                self._counts = None
                self._scores = None


class ComplianceUnitOfWorkFactory:
    """
    Zero-argument callable producing fresh units of work.

    Handed to ComplianceScoringService so that every operation gets its
    own transaction.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        settings: Optional[ComplianceSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._session_factory = session_factory
        self._settings = settings
        self._clock = clock

    def __call__(self) -> ComplianceUnitOfWork:
        return ComplianceUnitOfWork(
            session_factory=self._session_factory,
            settings=self._settings,
            clock=self._clock,
        )
