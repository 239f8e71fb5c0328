"""Pytest configuration and fixtures for test suite."""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Set test environment BEFORE any other imports
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from config.database import DatabaseSettings, get_database_settings
from config.settings import get_compliance_settings, get_settings
from rbac.context import UserPermissionContext
from rbac.permissions import get_role_table
from rbac.roles import Role

# Fixed evaluation time for anything date-dependent
NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _reset_cached_globals():
    """Reset cached settings and database module globals."""
    get_settings.cache_clear()
    get_compliance_settings.cache_clear()
    get_database_settings.cache_clear()
    get_role_table.cache_clear()

    import database.async_engine as module
    module._async_engine = None
    module._async_session_factory = None

    from services.compliance_service import get_scoring_service
    get_scoring_service.cache_clear()


@pytest.fixture(autouse=True)
def reset_cached_globals():
    """Reset cached globals before and after each test."""
    _reset_cached_globals()
    yield
    _reset_cached_globals()


@pytest.fixture
def make_context():
    """Factory for permission contexts."""

    def _make(role=Role.VIEWER, tenant_id=1, user_id=100):
        return UserPermissionContext(role=role, tenant_id=tenant_id, user_id=user_id)

    return _make


@pytest.fixture
def fixed_clock():
    return lambda: NOW


@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory SQLite database with all tables created."""
    from database.async_engine import create_engine
    from database.models import Base

    engine = create_engine(DatabaseSettings(url="sqlite+aiosqlite:///:memory:"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    from database.async_engine import get_session_factory
    return get_session_factory(db_engine)
