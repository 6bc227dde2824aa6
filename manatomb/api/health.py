"""
Health check endpoints.

/health answers as long as the process serves requests. /ready also opens a
store session, so a load balancer stops routing here when the database is gone.
"""

import logging

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from manatomb.api.dependencies import SessionFactory
from manatomb.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    service: str = settings.app_name
    database: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness check. Touches nothing but the process."""
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(response: Response, session_factory: SessionFactory) -> HealthResponse:
    """Readiness check. Returns 503 when the store cannot run a trivial query."""
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        # asyncpg surfaces a refused connection as a bare OSError
        logger.warning("Readiness check failed: %s", e)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not ready", database="disconnected")

    return HealthResponse(status="ready", database="connected")
