"""
Compliance service wiring.

Builds a ComplianceScoringService backed by the database unit of work and
the COMPLIANCE_* scoring policy. Used by the HTTP layer and the Celery tasks.
"""

from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from compliance.scoring import ScoringPolicy
from compliance.service import ComplianceScoringService
from config.settings import ComplianceSettings, get_compliance_settings
from database.unit_of_work import ComplianceUnitOfWorkFactory


def build_scoring_service(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    settings: Optional[ComplianceSettings] = None,
) -> ComplianceScoringService:
    """Create a service; session_factory defaults to the global one."""
    settings = settings or get_compliance_settings()
    return ComplianceScoringService(
        uow_factory=ComplianceUnitOfWorkFactory(session_factory=session_factory, settings=settings),
        policy=ScoringPolicy.from_settings(settings),
    )


@lru_cache
def get_scoring_service() -> ComplianceScoringService:
    """Process-wide service instance (FastAPI dependency)."""
    return build_scoring_service()
