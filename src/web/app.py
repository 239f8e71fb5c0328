"""
FastAPI application for the Compliance Core.

Routes:
- GET  /health                                     : liveness and database check
- GET  /api/clients/{client_id}/compliance         : latest snapshot
- POST /api/clients/{client_id}/compliance/recompute : recompute now (or queue)
- GET  /api/compliance/summary                     : tenant dashboard totals
- GET  /api/compliance/issues                      : amber/red clients, worst first
- GET  /api/me/permissions                         : caller's permission flags

Authentication is handled upstream: whatever middleware the deployment
mounts must put the session mapping on request.state.session.

Run:
    uvicorn web.app:create_app --factory
    python run_web.py
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from config.database import get_database_settings
from config.settings import get_settings
from database.async_engine import check_database_connection, close_database, init_database
from rbac.permissions import get_role_table
from services.logging_config import configure_logging
from web.api_errors import RequestIDMiddleware, register_exception_handlers
from web.compliance_api import router as compliance_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fail fast on a malformed role table
    get_role_table()
    if get_database_settings().is_sqlite:
        await init_database()
    logger.info("Compliance Core started")
    try:
        yield
    finally:
        await close_database()
        logger.info("Compliance Core stopped")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title=settings.name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)
    app.include_router(compliance_router)

    @app.get("/health", tags=["Health"])
    async def health():
        database_ok = await check_database_connection()
        return {
            "status": "healthy" if database_ok else "degraded",
            "service": settings.name,
            "version": settings.version,
            "environment": settings.environment,
            "database": "ok" if database_ok else "unavailable",
        }

    return app
