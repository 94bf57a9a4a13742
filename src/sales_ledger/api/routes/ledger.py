"""Ledger API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from sales_ledger.api.dependencies import ActorId, DbSession, OrderSource
from sales_ledger.api.schemas import (
    ApprovedDriftResponse,
    AuditLogResponse,
    CancelledOrderResponse,
    ErrorResponse,
    GenerateResponse,
    LedgerEntryResponse,
    LedgerListResponse,
    LedgerReviewRequest,
    LedgerRowResponse,
    PeriodRequest,
)
from sales_ledger.services.audit_service import AuditAction, AuditService
from sales_ledger.services.ledger_generator import LedgerGenerator
from sales_ledger.services.ledger_service import LedgerService
from sales_ledger.sources.direct import DirectOrderSource

router = APIRouter(tags=["ledger"])

MonthQuery = Annotated[int, Query(ge=1, le=12)]
YearQuery = Annotated[int, Query(ge=2000)]


# ============================================================================
# Ledger
# ============================================================================


@router.get("/ledger", response_model=LedgerListResponse)
async def get_ledger(
    db: DbSession,
    month: MonthQuery,
    year: YearQuery,
) -> LedgerListResponse:
    """Ledger entries for a month with representative and plan data."""
    rows = await LedgerService(db).get_ledger_for_month(month, year)
    return LedgerListResponse(
        month=month,
        year=year,
        items=[LedgerRowResponse.model_validate(row) for row in rows],
        total=len(rows),
    )


@router.post(
    "/ledger/generate",
    response_model=GenerateResponse,
    responses={
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def generate_ledger(
    db: DbSession,
    actor_id: ActorId,
    order_source: OrderSource,
    payload: PeriodRequest,
) -> GenerateResponse:
    """Generate or refresh the ledger for a month.

    Reviewer-owned fields on existing entries are preserved. Fails as a
    whole, without writes, if order statistics cannot be loaded.
    """
    generator = LedgerGenerator(db, order_source)
    result = await generator.generate(payload.month, payload.year, actor_id)

    description = f"Generated ledger for {payload.month}/{payload.year}: {result.entry_count} entries"
    if result.approved_drift:
        description += f", {len(result.approved_drift)} approved entries changed"
    await AuditService(db).record(
        actor_id,
        AuditAction.LEDGER_GENERATED,
        description,
        result.audit_details(),
    )
    await db.commit()

    return GenerateResponse(
        month=result.month,
        year=result.year,
        entry_count=result.entry_count,
        created=result.created_count,
        updated=result.updated_count,
        unmatched_names=result.unmatched_names,
        approved_drift=[ApprovedDriftResponse.model_validate(d) for d in result.approved_drift],
        entries=[LedgerEntryResponse.model_validate(e) for e in result.entries],
    )


@router.patch(
    "/ledger/{ledger_id}",
    response_model=LedgerEntryResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def review_ledger_entry(
    db: DbSession,
    actor_id: ActorId,
    ledger_id: Annotated[UUID, Path()],
    payload: LedgerReviewRequest,
) -> LedgerEntryResponse:
    """Edit reviewer-owned fields or change review status."""
    outcome = await LedgerService(db).review_entry(
        ledger_id,
        actor_user_id=actor_id,
        adjustment=payload.adjustment,
        adjustment_note=payload.adjustment_note,
        cancellation_deduction=payload.cancellation_deduction,
        notes=payload.notes,
        status=payload.status,
        expected_version=payload.version,
    )

    if outcome.changed:
        entry = outcome.entry
        await AuditService(db).record(
            actor_id,
            AuditAction.LEDGER_ADJUSTED,
            f"Updated ledger entry {entry.ledger_id} ({entry.month}/{entry.year}): "
            + ", ".join(sorted(outcome.changes)),
            {
                "ledger_id": entry.ledger_id,
                "sales_rep_id": entry.sales_rep_id,
                "changes": outcome.changes,
            },
        )
    await db.commit()
    return LedgerEntryResponse.model_validate(outcome.entry)


# ============================================================================
# Cancelled orders
# ============================================================================


@router.get("/cancelled-orders", response_model=list[CancelledOrderResponse])
async def list_cancelled_orders(
    db: DbSession,
    month: MonthQuery,
    year: YearQuery,
    sales_rep_id: UUID | None = None,
) -> list[CancelledOrderResponse]:
    """Orders cancelled during the month, newest first.

    Read from the local order store regardless of order source mode.
    """
    orders = await DirectOrderSource(db).list_cancelled_orders(month, year, sales_rep_id)
    return [CancelledOrderResponse(**order) for order in orders]


# ============================================================================
# Audit log
# ============================================================================


@router.get("/audit-log", response_model=list[AuditLogResponse])
async def list_audit_log(
    db: DbSession,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> list[AuditLogResponse]:
    """Most recent audit entries first."""
    entries = await AuditService(db).list_recent(limit)
    return [AuditLogResponse.model_validate(e) for e in entries]
