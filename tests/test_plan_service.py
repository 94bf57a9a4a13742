"""Tests for pay plan and office tier plan readers and maintenance."""

from decimal import Decimal
from uuid import uuid4

import pytest

from sales_ledger.calculators.formula import compute_formula
from sales_ledger.calculators.tier_matcher import TierConfigurationError
from sales_ledger.calculators.types import BonusType, Tier, TierType
from sales_ledger.services.plan_service import PlanService
from sales_ledger.services.roster_service import RosterService, SalesRepNotFoundError
from sales_ledger.sources.direct import DirectOrderSource

MONTH = 3
YEAR = 2025


class TestPayPlans:
    """Test pay plan lookups and upserts."""

    async def test_missing_plan_is_none(self, session, reps):
        plans = PlanService(session)

        assert await plans.get_pay_plan(reps["bob"].sales_rep_id, MONTH, YEAR) is None
        assert await plans.get_pay_plans(MONTH, YEAR) == {}

    async def test_create_with_line_items(self, session, reps):
        actor = uuid4()
        plans = PlanService(session)

        await plans.upsert_pay_plan(
            reps["alice"].sales_rep_id,
            MONTH,
            YEAR,
            actor_user_id=actor,
            salary=Decimal("60000"),
            line_items=[("Car allowance", Decimal("400")), ("Phone", Decimal("50"))],
        )
        await session.commit()

        plan = await plans.get_pay_plan(reps["alice"].sales_rep_id, MONTH, YEAR)
        assert plan.salary == Decimal("60000")
        assert plan.created_by_id == actor
        assert [(i.name, i.amount, i.sort_order) for i in plan.line_items] == [
            ("Car allowance", Decimal("400"), 0),
            ("Phone", Decimal("50"), 1),
        ]

    async def test_update_replaces_line_items_and_keeps_salary(self, session, reps):
        plans = PlanService(session)
        rep_id = reps["alice"].sales_rep_id
        await plans.upsert_pay_plan(
            rep_id, MONTH, YEAR, salary=Decimal("60000"), line_items=[("Old", Decimal("1"))]
        )
        await session.commit()

        await plans.upsert_pay_plan(rep_id, MONTH, YEAR, line_items=[("New", Decimal("2"))])
        await session.commit()

        by_rep = await plans.get_pay_plans(MONTH, YEAR)
        assert list(by_rep) == [rep_id]
        assert by_rep[rep_id].salary == Decimal("60000")
        assert [i.name for i in by_rep[rep_id].line_items] == ["New"]

    async def test_plans_are_per_month(self, session, reps):
        plans = PlanService(session)
        await plans.upsert_pay_plan(reps["alice"].sales_rep_id, MONTH, YEAR, salary=Decimal("1"))
        await session.commit()

        assert await plans.get_pay_plans(4, YEAR) == {}

    async def test_unknown_rep_rejected(self, session, reps):
        with pytest.raises(SalesRepNotFoundError):
            await PlanService(session).upsert_pay_plan(uuid4(), MONTH, YEAR, salary=Decimal("1"))


class TestOfficePlans:
    """Test office tier plan lookups and upserts."""

    async def test_missing_office_plan_gives_empty_schedule(self, session):
        schedule = await PlanService(session).get_office_tiers("Nowhere", MONTH, YEAR)
        assert len(schedule) == 0

    async def test_round_trip_keeps_order(self, session, office_tiers):
        plans = PlanService(session)
        await plans.upsert_office_plan("Denver", MONTH, YEAR, office_tiers)
        await session.commit()

        schedule = await plans.get_office_tiers("Denver", MONTH, YEAR)

        assert schedule.all_tiers() == office_tiers
        assert (await plans.get_office_schedules(MONTH, YEAR))["Denver"].all_tiers() == office_tiers

    async def test_upsert_replaces_tiers(self, session, office_tiers):
        plans = PlanService(session)
        await plans.upsert_office_plan("Denver", MONTH, YEAR, office_tiers)
        await session.commit()

        replacement = [Tier(TierType.BUILDINGS_SOLD, Decimal("0"), None, Decimal("75"))]
        await plans.upsert_office_plan("Denver", MONTH, YEAR, replacement)
        await session.commit()

        office_plans = await plans.get_office_plans(MONTH, YEAR)
        assert len(office_plans["Denver"].tiers) == 1
        assert (await plans.get_office_tiers("Denver", MONTH, YEAR)).all_tiers() == replacement

    async def test_overlapping_tiers_rejected_on_write(self, session):
        overlapping = [
            Tier(TierType.ORDER_TOTAL, Decimal("0"), Decimal("50000"), Decimal("2"), BonusType.PERCENTAGE),
            Tier(TierType.ORDER_TOTAL, Decimal("40000"), None, Decimal("4"), BonusType.PERCENTAGE),
        ]

        with pytest.raises(TierConfigurationError):
            await PlanService(session).upsert_office_plan("Denver", MONTH, YEAR, overlapping)

        assert await PlanService(session).get_office_plans(MONTH, YEAR) == {}


    async def test_fractional_rates_and_bounds_stored_exactly(self, session, session_factory):
        tiers = [
            Tier(TierType.ORDER_TOTAL, Decimal("0"), Decimal("4.0065"), Decimal("1.5"), BonusType.PERCENTAGE),
            Tier(TierType.ORDER_TOTAL, Decimal("4.0066"), None, Decimal("2.125"), BonusType.PERCENTAGE),
        ]
        await PlanService(session).upsert_office_plan("Denver", MONTH, YEAR, tiers)
        await session.commit()

        async with session_factory() as fresh:
            schedule = await PlanService(fresh).get_office_tiers("Denver", MONTH, YEAR)

        assert schedule.all_tiers() == tiers
        assert schedule.problems() == []
        result = compute_formula(0, Decimal("100000"), Decimal("0"), schedule)
        assert result.commission_amount == Decimal("2125.00")

    async def test_tiers_finer_than_storage_rejected(self, session):
        tiers = [
            Tier(TierType.ORDER_TOTAL, Decimal("0"), None, Decimal("2.12345"), BonusType.PERCENTAGE),
        ]

        with pytest.raises(TierConfigurationError, match="decimal places"):
            await PlanService(session).upsert_office_plan("Denver", MONTH, YEAR, tiers)

        assert await PlanService(session).get_office_plans(MONTH, YEAR) == {}


class TestPlansOverview:
    """Test the per-month overview of active reps."""

    async def test_every_active_rep_listed_with_defaults(self, session, march_setup):
        reps = march_setup

        overview = await PlanService(session).get_pay_plans_for_month(
            MONTH, YEAR, DirectOrderSource(session)
        )

        assert [row.sales_rep.first_name for row in overview] == ["Alice", "Bob", "Carol"]
        alice, bob, carol = overview
        assert alice.salary == Decimal("60000")
        assert alice.order_stats.buildings_sold == 3
        assert alice.order_stats.total_order_amount == Decimal("120000.00")
        assert bob.pay_plan is None
        assert bob.salary == Decimal("0")
        assert bob.order_stats.buildings_sold == 0
        assert carol.pay_plan.sales_rep_id == reps["carol"].sales_rep_id


class TestRoster:
    async def test_active_reps_sorted_by_name(self, session, reps):
        active = await RosterService(session).list_active()
        assert [r.display_name for r in active] == ["Alice Smith", "Bob Jones", "Carol White"]

    async def test_get_unknown_rep(self, session):
        with pytest.raises(SalesRepNotFoundError):
            await RosterService(session).get(uuid4())
