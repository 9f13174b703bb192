"""Health check endpoint."""

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from ...db.connection import DatabaseConnection
from ..dependencies import get_database

router = APIRouter()


class HealthStatus(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "degraded"] = Field(description="Overall health status")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Current server timestamp (UTC)",
    )
    version: str = Field(description="Service version")
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual component health checks",
    )


@router.get(
    "/health",
    response_model=HealthStatus,
    summary="Health Check",
    description="Check if the service is running and the database is reachable",
)
async def health_check(
    request: Request,
    db: DatabaseConnection = Depends(get_database),
) -> HealthStatus:
    version = getattr(request.app, "version", "0.1.0")
    checks = {"api": True}

    try:
        async with db.engine.connect() as conn:
            await conn.exec_driver_sql("SELECT 1")
        checks["database"] = True
    except (SQLAlchemyError, OSError):
        checks["database"] = False

    overall = "healthy" if all(checks.values()) else "degraded"
    return HealthStatus(status=overall, version=version, checks=checks)
