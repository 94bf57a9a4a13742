"""Pay plan and office tier plan lookups and maintenance.

Readers never fail on missing configuration: a missing pay plan means a
salary of zero with no line items, and a missing office plan means an
empty tier schedule (all bonuses zero).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sales_ledger.calculators.tier_matcher import TierSchedule
from sales_ledger.calculators.types import (
    ZERO,
    BonusType,
    OrderStatsSnapshot,
    Tier,
    TierType,
)
from sales_ledger.models import (
    OfficePayPlan,
    OfficePayPlanTier,
    PayPlan,
    PayPlanLineItem,
    SalesRep,
)
from sales_ledger.services.roster_service import RosterService

if TYPE_CHECKING:
    from sales_ledger.sources.base import OrderStatsSource


def tier_from_row(row: OfficePayPlanTier) -> Tier:
    """Convert a stored tier row to the calculator's value type."""
    return Tier(
        tier_type=TierType(row.tier_type),
        min_value=row.min_value,
        max_value=row.max_value,
        bonus_amount=row.bonus_amount,
        bonus_type=BonusType(row.bonus_type),
    )


@dataclass
class RepPlanOverview:
    """One active representative with plan, salary and month-to-date stats."""

    sales_rep: SalesRep
    pay_plan: PayPlan | None
    salary: Decimal
    order_stats: OrderStatsSnapshot


class PlanService:
    """Keyed lookups by (month, year) and by representative or office."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # === Pay plans ===

    async def get_pay_plan(
        self, sales_rep_id: UUID, month: int, year: int
    ) -> PayPlan | None:
        result = await self.session.execute(
            select(PayPlan)
            .where(
                PayPlan.sales_rep_id == sales_rep_id,
                PayPlan.month == month,
                PayPlan.year == year,
            )
            .options(selectinload(PayPlan.line_items))
        )
        return result.scalar_one_or_none()

    async def get_pay_plans(self, month: int, year: int) -> dict[UUID, PayPlan]:
        """All pay plans for the period in one query, keyed by representative."""
        result = await self.session.execute(
            select(PayPlan)
            .where(PayPlan.month == month, PayPlan.year == year)
            .options(selectinload(PayPlan.line_items))
        )
        return {plan.sales_rep_id: plan for plan in result.scalars().all()}

    async def upsert_pay_plan(
        self,
        sales_rep_id: UUID,
        month: int,
        year: int,
        actor_user_id: UUID | None = None,
        salary: Decimal | None = None,
        line_items: list[tuple[str, Decimal]] | None = None,
    ) -> PayPlan:
        """Create or update a plan; given line items replace the existing ones."""
        await RosterService(self.session).get(sales_rep_id)

        plan = await self.get_pay_plan(sales_rep_id, month, year)
        if plan is None:
            plan = PayPlan(
                sales_rep_id=sales_rep_id,
                month=month,
                year=year,
                salary=salary if salary is not None else ZERO,
                created_by_id=actor_user_id,
                line_items=[],
            )
            self.session.add(plan)
        else:
            plan.created_by_id = actor_user_id
            if salary is not None:
                plan.salary = salary

        if line_items is not None:
            plan.line_items.clear()
            for index, (name, amount) in enumerate(line_items):
                plan.line_items.append(
                    PayPlanLineItem(name=name, amount=amount, sort_order=index)
                )

        await self.session.flush()
        return plan

    # === Office tier plans ===

    async def get_office_plans(self, month: int, year: int) -> dict[str, OfficePayPlan]:
        result = await self.session.execute(
            select(OfficePayPlan)
            .where(OfficePayPlan.month == month, OfficePayPlan.year == year)
            .options(selectinload(OfficePayPlan.tiers))
            .order_by(OfficePayPlan.office)
        )
        return {plan.office: plan for plan in result.scalars().all()}

    async def get_office_schedules(self, month: int, year: int) -> dict[str, TierSchedule]:
        """Tier schedules for every office with a plan this period."""
        plans = await self.get_office_plans(month, year)
        return {
            office: TierSchedule.from_stored(
                (tier_from_row(t) for t in plan.tiers),
                context=f"for {office} {month}/{year}",
            )
            for office, plan in plans.items()
        }

    async def get_office_tiers(self, office: str, month: int, year: int) -> TierSchedule:
        result = await self.session.execute(
            select(OfficePayPlan)
            .where(
                OfficePayPlan.office == office,
                OfficePayPlan.month == month,
                OfficePayPlan.year == year,
            )
            .options(selectinload(OfficePayPlan.tiers))
        )
        plan = result.scalar_one_or_none()
        if plan is None:
            return TierSchedule()
        return TierSchedule.from_stored(
            (tier_from_row(t) for t in plan.tiers),
            context=f"for {office} {month}/{year}",
        )

    async def upsert_office_plan(
        self,
        office: str,
        month: int,
        year: int,
        tiers: list[Tier],
    ) -> OfficePayPlan:
        """Replace an office's tiers for the period.

        Raises:
            TierConfigurationError: tiers overlap, are out of order, or are malformed.
        """
        TierSchedule.validated(tiers)

        plans = await self.get_office_plans(month, year)
        plan = plans.get(office)
        if plan is None:
            plan = OfficePayPlan(office=office, month=month, year=year, tiers=[])
            self.session.add(plan)

        plan.tiers.clear()
        for index, tier in enumerate(tiers):
            plan.tiers.append(
                OfficePayPlanTier(
                    tier_type=tier.tier_type.value,
                    min_value=tier.min_value,
                    max_value=tier.max_value,
                    bonus_amount=tier.bonus_amount,
                    bonus_type=tier.bonus_type.value,
                    sort_order=index,
                )
            )

        await self.session.flush()
        return plan

    # === Overview ===

    async def get_pay_plans_for_month(
        self,
        month: int,
        year: int,
        order_source: OrderStatsSource,
    ) -> list[RepPlanOverview]:
        """Every active rep with plan (or none), salary and order stats."""
        reps = await RosterService(self.session).list_active()
        plans = await self.get_pay_plans(month, year)
        aggregation = await order_source.aggregate(month, year)

        overview = []
        for rep in reps:
            plan = plans.get(rep.sales_rep_id)
            overview.append(
                RepPlanOverview(
                    sales_rep=rep,
                    pay_plan=plan,
                    salary=plan.salary if plan is not None else ZERO,
                    order_stats=aggregation.for_rep(rep.sales_rep_id),
                )
            )
        return overview
