"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and the
database answers. Redis is reported but never makes the app unhealthy;
without it only rate limiting is off.
"""

import structlog
from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from eventease import __version__

logger = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with request.app.state.session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except (SQLAlchemyError, OSError) as e:
        logger.warning("health.database_unreachable", error=str(e))
        checks["database"] = "error"

    checks["redis"] = "ok" if request.app.state.redis is not None else "disabled"
    checks["google_oauth"] = (
        "enabled" if request.app.state.google is not None else "disabled"
    )

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
