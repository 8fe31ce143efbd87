"""Health check endpoints."""

import logging

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from core.exceptions import UnavailableError
from database.engine import ping_db

logger = logging.getLogger(__name__)

router = APIRouter()

API_VERSION = "1.0.0"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness check. Does not touch the database."""
    return HealthResponse(status="healthy", version=API_VERSION)


@router.get("/ready")
async def readiness_check():
    """Readiness check for load balancers. Answers 503 while the database is unreachable."""
    try:
        await ping_db()
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Readiness check failed: {type(e).__name__}")
        raise UnavailableError("Database unreachable") from e
    return {"status": "ready", "database": "ok"}
