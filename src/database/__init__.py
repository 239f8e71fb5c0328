"""
Database Layer for the Compliance Core.

This module provides:
- SQLAlchemy ORM models (clients, rules, documents, filings, snapshots)
- Async database engine and session factory
- Unit of Work scoping one recompute to one transaction
"""

from .models import (
    Base,
    ClientRecord,
    ComplianceRuleRecord,
    DocumentRecord,
    FilingRecord,
    ComplianceScoreRecord,
)
from .async_engine import (
    create_engine,
    get_session_factory,
    get_async_engine,
    get_async_session_factory,
    init_database,
    check_database_connection,
    close_database,
)
from .unit_of_work import ComplianceUnitOfWork, ComplianceUnitOfWorkFactory

__all__ = [
    # Models
    "Base",
    "ClientRecord",
    "ComplianceRuleRecord",
    "DocumentRecord",
    "FilingRecord",
    "ComplianceScoreRecord",

    # Engine
    "create_engine",
    "get_session_factory",
    "get_async_engine",
    "get_async_session_factory",
    "init_database",
    "check_database_connection",
    "close_database",

    # Unit of Work
    "ComplianceUnitOfWork",
    "ComplianceUnitOfWorkFactory",
]
