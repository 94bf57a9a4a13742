"""Pytest fixtures for sales ledger tests."""

from __future__ import annotations

import itertools
from datetime import datetime
from decimal import Decimal
from typing import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from sales_ledger.calculators.types import BonusType, Tier, TierType
from sales_ledger.config import Settings
from sales_ledger.database import make_session_factory
from sales_ledger.models import Base, OrderStatus, SalesOrder, SalesRep
from sales_ledger.services.plan_service import PlanService

MONTH = 3
YEAR = 2025


def make_settings(database_url: str, **overrides) -> Settings:
    """Settings for tests, independent of the environment."""
    values = dict(
        database_url=database_url,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="WARNING",
        order_source_mode="direct",
        order_process_url=None,
        order_process_api_key=None,
        order_process_timeout=5.0,
        order_process_page_size=1000,
    )
    values.update(overrides)
    return Settings(**values)


def denver_tiers() -> list[Tier]:
    """150/building for 1-4 buildings, 200 from 5; 3% below 100k, 5% from 100k."""
    return [
        Tier(TierType.BUILDINGS_SOLD, Decimal("1"), Decimal("4"), Decimal("150")),
        Tier(TierType.BUILDINGS_SOLD, Decimal("5"), None, Decimal("200")),
        Tier(
            TierType.ORDER_TOTAL,
            Decimal("0"),
            Decimal("99999.99"),
            Decimal("3"),
            BonusType.PERCENTAGE,
        ),
        Tier(
            TierType.ORDER_TOTAL,
            Decimal("100000"),
            None,
            Decimal("5"),
            BonusType.PERCENTAGE,
        ),
    ]


# Use a file-backed SQLite database per test so that separate sessions
# (concurrent generation runs, racing reviewers) see each other's commits.


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"


@pytest_asyncio.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine."""
    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def reps(session: AsyncSession) -> dict[str, SalesRep]:
    """Three active reps in two offices plus one inactive rep."""
    roster = {
        "alice": SalesRep(first_name="Alice", last_name="Smith", office="Denver"),
        "bob": SalesRep(first_name="Bob", last_name="Jones", office="Denver"),
        "carol": SalesRep(first_name="Carol", last_name="White", office="Austin"),
        "dave": SalesRep(
            first_name="Dave", last_name="Gray", office="Denver", is_active=False
        ),
    }
    session.add_all(roster.values())
    await session.commit()
    return roster


@pytest.fixture
def add_order(session: AsyncSession) -> Callable[..., Awaitable[SalesOrder]]:
    """Factory adding a committed order to the local order store."""
    numbers = itertools.count(1)

    async def _add(
        rep: SalesRep | None,
        total: str,
        date_sold: datetime | None = datetime(YEAR, MONTH, 10),
        status: str = OrderStatus.COMPLETED.value,
        created_at: datetime | None = None,
        cancelled_at: datetime | None = None,
    ) -> SalesOrder:
        order = SalesOrder(
            order_number=f"ORD-{next(numbers):04d}",
            customer_name="Customer",
            sales_rep_id=rep.sales_rep_id if rep is not None else None,
            status=status,
            total_price=Decimal(total),
            date_sold=date_sold,
            cancelled_at=cancelled_at,
        )
        if created_at is not None:
            order.created_at = created_at
        session.add(order)
        await session.commit()
        return order

    return _add


@pytest_asyncio.fixture
async def march_setup(
    session: AsyncSession,
    reps: dict[str, SalesRep],
    add_order,
) -> dict[str, SalesRep]:
    """March 2025 data behind the worked example.

    Alice: 60000 salary, 3 buildings totalling 120000 -> plan total 11450.00.
    Bob: no plan, no orders -> zero.
    Carol: 36000 salary, 1 order of 10000, office without tiers -> 3000.00.
    Dave: inactive, has an order, gets no entry.
    """
    plans = PlanService(session)
    await plans.upsert_pay_plan(reps["alice"].sales_rep_id, MONTH, YEAR, salary=Decimal("60000"))
    await plans.upsert_pay_plan(reps["carol"].sales_rep_id, MONTH, YEAR, salary=Decimal("36000"))
    await plans.upsert_office_plan("Denver", MONTH, YEAR, denver_tiers())
    await session.commit()

    for _ in range(3):
        await add_order(reps["alice"], "40000")
    await add_order(reps["carol"], "10000")
    await add_order(reps["dave"], "50000")
    return reps


@pytest.fixture
def settings(database_url: str) -> Settings:
    return make_settings(database_url)


@pytest.fixture
def office_tiers() -> list[Tier]:
    return denver_tiers()
