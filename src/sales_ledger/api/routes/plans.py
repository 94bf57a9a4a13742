"""Pay plan and office tier plan endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query

from sales_ledger.api.dependencies import ActorId, DbSession, OrderSource
from sales_ledger.api.schemas import (
    ErrorResponse,
    OfficePlanListResponse,
    OfficePlanResponse,
    OfficePlanUpsertRequest,
    PayPlanResponse,
    PayPlanUpsertRequest,
    PlansOverviewResponse,
    RepPlanResponse,
    SalesRepSummary,
)
from sales_ledger.calculators.types import BonusType, Tier, TierType
from sales_ledger.services.audit_service import AuditAction, AuditService
from sales_ledger.services.plan_service import PlanService

router = APIRouter(tags=["plans"])

MonthQuery = Annotated[int, Query(ge=1, le=12)]
YearQuery = Annotated[int, Query(ge=2000)]


# ============================================================================
# Pay plans
# ============================================================================


@router.get("/plans", response_model=PlansOverviewResponse)
async def get_plans(
    db: DbSession,
    order_source: OrderSource,
    month: MonthQuery,
    year: YearQuery,
) -> PlansOverviewResponse:
    """Every active representative with plan, salary and order stats."""
    overview = await PlanService(db).get_pay_plans_for_month(month, year, order_source)
    return PlansOverviewResponse(
        month=month,
        year=year,
        items=[
            RepPlanResponse(
                sales_rep=SalesRepSummary.model_validate(row.sales_rep),
                pay_plan=(
                    PayPlanResponse.model_validate(row.pay_plan)
                    if row.pay_plan is not None
                    else None
                ),
                salary=row.salary,
                buildings_sold=row.order_stats.buildings_sold,
                total_order_amount=row.order_stats.total_order_amount,
            )
            for row in overview
        ],
    )


@router.put(
    "/plans",
    response_model=PayPlanResponse,
    responses={404: {"model": ErrorResponse}},
)
async def upsert_plan(
    db: DbSession,
    actor_id: ActorId,
    payload: PayPlanUpsertRequest,
) -> PayPlanResponse:
    """Set a representative's salary and/or replace the plan's line items."""
    line_items = (
        [(item.name, item.amount) for item in payload.line_items]
        if payload.line_items is not None
        else None
    )
    plan = await PlanService(db).upsert_pay_plan(
        payload.sales_rep_id,
        payload.month,
        payload.year,
        actor_user_id=actor_id,
        salary=payload.salary,
        line_items=line_items,
    )

    audit = AuditService(db)
    period = f"{payload.month}/{payload.year}"
    if payload.salary is not None:
        await audit.record(
            actor_id,
            AuditAction.SALARY_UPDATED,
            f"Set salary for rep {payload.sales_rep_id} ({period}) to {plan.salary}",
            {"sales_rep_id": payload.sales_rep_id, "month": payload.month,
             "year": payload.year, "salary": plan.salary},
        )
    if line_items is not None:
        await audit.record(
            actor_id,
            AuditAction.LINE_ITEMS_UPDATED,
            f"Replaced line items for rep {payload.sales_rep_id} ({period})",
            {"sales_rep_id": payload.sales_rep_id, "month": payload.month,
             "year": payload.year,
             "line_items": [{"name": n, "amount": a} for n, a in line_items]},
        )
    await db.commit()
    return PayPlanResponse.model_validate(plan)


# ============================================================================
# Office tier plans
# ============================================================================


@router.get("/office-plans", response_model=OfficePlanListResponse)
async def get_office_plans(
    db: DbSession,
    month: MonthQuery,
    year: YearQuery,
) -> OfficePlanListResponse:
    """Tier plans of every office configured for the month."""
    plans = await PlanService(db).get_office_plans(month, year)
    return OfficePlanListResponse(
        month=month,
        year=year,
        items=[OfficePlanResponse.model_validate(p) for p in plans.values()],
    )


@router.put(
    "/office-plans",
    response_model=OfficePlanResponse,
    responses={400: {"model": ErrorResponse}},
)
async def upsert_office_plan(
    db: DbSession,
    actor_id: ActorId,
    payload: OfficePlanUpsertRequest,
) -> OfficePlanResponse:
    """Replace an office's tiers. Overlapping or unordered tiers are rejected."""
    tiers = [
        Tier(
            tier_type=TierType(t.tier_type),
            min_value=t.min_value,
            max_value=t.max_value,
            bonus_amount=t.bonus_amount,
            bonus_type=BonusType(t.bonus_type),
        )
        for t in payload.tiers
    ]
    plan = await PlanService(db).upsert_office_plan(
        payload.office, payload.month, payload.year, tiers
    )
    await AuditService(db).record(
        actor_id,
        AuditAction.OFFICE_TIERS_UPDATED,
        f"Replaced {len(tiers)} tier(s) for {payload.office} ({payload.month}/{payload.year})",
        {"office": payload.office, "month": payload.month, "year": payload.year,
         "tiers": [t.model_dump() for t in payload.tiers]},
    )
    await db.commit()
    return OfficePlanResponse.model_validate(plan)
