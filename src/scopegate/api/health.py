"""Health check endpoints."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from scopegate.api.deps import SessionDep
from scopegate.config import settings
from scopegate.services.directory import get_admin_emails
from scopegate.services.errors import InfrastructureError
from scopegate.services.scopes import AdminScope
from scopegate.services.store import store_call

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def health_check():
    """Basic health check - just confirms the service is running."""
    return {"status": "ok"}


@router.get("/db")
async def health_check_db(session: SessionDep):
    """Health check with database connectivity."""
    try:
        async with store_call("health_check_db"):
            await session.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected"}
    except InfrastructureError as e:
        logger.error(f"Database health check failed: {e.detail}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "database": "disconnected"},
        )


@router.get("/ready")
async def readiness_check(session: SessionDep):
    """Readiness check - database reachable and sign-in configured.

    Returns 503 only when the database is unreachable; missing operator
    configuration is reported as ``degraded``.
    """
    try:
        admins = await get_admin_emails(session, AdminScope.ANY)
    except InfrastructureError as e:
        logger.error(f"Readiness check failed: {e.detail}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "database": "disconnected"},
        )

    directory_ok = bool(admins)
    password_ok = bool(settings.admin_password_hash)
    return {
        "status": "ok" if directory_ok else "degraded",
        "database": "connected",
        "directory_configured": directory_ok,
        "password_configured": password_ok,
    }
