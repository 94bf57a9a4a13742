"""Health, readiness and liveness endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from sales_ledger.api.dependencies import AppSettings, DbSession
from sales_ledger.api.schemas import HealthResponse, ReadinessResponse
from sales_ledger.models import PayLedger

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession, settings: AppSettings) -> HealthResponse:
    """Report database reachability and the configured order source."""
    try:
        await db.execute(text("SELECT 1"))
        database = "healthy"
    except SQLAlchemyError:
        logger.exception("Database health probe failed")
        database = "unhealthy"

    return HealthResponse(
        status="healthy" if database == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=database,
        order_source=settings.order_source_mode,
        engine_version=settings.engine_version,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(db: DbSession, response: Response) -> ReadinessResponse:
    """Ready once the ledger tables exist; run ``init-db`` otherwise."""
    try:
        await db.execute(select(PayLedger.ledger_id).limit(1))
    except SQLAlchemyError:
        logger.warning("Ledger schema not reachable, reporting not ready")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="not_ready", reason="ledger schema unavailable")
    return ReadinessResponse(status="ready")


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
