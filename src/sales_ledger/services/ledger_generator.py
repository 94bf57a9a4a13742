"""Ledger generator - monthly compensation orchestration.

One run for (month, year):
1. Load the active roster
2. Aggregate order statistics (fails the whole run on error)
3. Load pay plans for the period
4. Load office tier schedules for the period
5. Batch-load existing ledger rows in a single query
6. Compute, merge with reviewer-owned fields, and upsert every rep's row

The whole run executes under the period lock in one transaction, so two
runs for the same period are serialized and a failure leaves no writes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from sales_ledger.calculators.formula import compute_formula
from sales_ledger.calculators.ledger_merge import merge_entry, protected_fields_of
from sales_ledger.calculators.tier_matcher import TierSchedule
from sales_ledger.calculators.types import ZERO, LedgerValues
from sales_ledger.models import PayLedger, SalesRep
from sales_ledger.services.ledger_service import LedgerConflictError
from sales_ledger.services.locking_service import PeriodLockService
from sales_ledger.services.plan_service import PlanService
from sales_ledger.services.roster_service import RosterService
from sales_ledger.sources.base import AggregationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from sales_ledger.sources.base import OrderStatsSource
    from sales_ledger.sources.external import RosterProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApprovedDrift:
    """An approved entry whose final amount moved after approval."""

    ledger_id: UUID
    sales_rep_id: UUID
    approved_final_amount: Decimal
    final_amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "ledger_id": str(self.ledger_id),
            "sales_rep_id": str(self.sales_rep_id),
            "approved_final_amount": str(self.approved_final_amount),
            "final_amount": str(self.final_amount),
        }


@dataclass
class GenerationResult:
    """Outcome of one generation run."""

    month: int
    year: int
    generated_by: UUID | None
    entries: list[PayLedger] = field(default_factory=list)
    unmatched_names: list[str] = field(default_factory=list)
    approved_drift: list[ApprovedDrift] = field(default_factory=list)
    created_count: int = 0
    updated_count: int = 0

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    def audit_details(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "year": self.year,
            "entry_count": self.entry_count,
            "created": self.created_count,
            "updated": self.updated_count,
            "unmatched_names": list(self.unmatched_names),
            "approved_drift": [d.to_dict() for d in self.approved_drift],
        }


class LedgerGenerator:
    """Produces one ledger row per active representative for a period.

    Computed columns are refreshed on every run. Adjustment,
    cancellation deduction, notes and review status are carried forward
    untouched. A computed column is only written when its value actually
    changed, so rerunning over unchanged inputs leaves rows (including
    version and updated_at) exactly as they were.
    """

    def __init__(
        self,
        session: AsyncSession,
        order_source: OrderStatsSource,
        roster: RosterProvider | None = None,
        plans: PlanService | None = None,
        locking: PeriodLockService | None = None,
    ):
        self.session = session
        self.order_source = order_source
        self.roster = roster or RosterService(session)
        self.plans = plans or PlanService(session)
        self.locking = locking or PeriodLockService(session)

    async def generate(
        self,
        month: int,
        year: int,
        reviewer_id: UUID | None = None,
    ) -> GenerationResult:
        """Generate (or regenerate) the ledger for a period and commit it.

        Raises:
            AggregationError: Order statistics could not be loaded; nothing written.
            LedgerConflictError: A row changed concurrently; nothing written.
        """
        logger.info(
            "Generating ledger for %02d/%d (source=%s)",
            month,
            year,
            self.order_source.source_name,
        )
        async with self.locking.hold(month, year):
            try:
                result = await self._run(month, year, reviewer_id)
                await self.session.commit()
            except (StaleDataError, IntegrityError) as e:
                await self.session.rollback()
                raise LedgerConflictError(
                    reason=f"ledger for {month}/{year} changed during generation"
                ) from e
            except Exception:
                await self.session.rollback()
                raise

        logger.info(
            "Ledger for %02d/%d generated: %d entries (%d new, %d updated)",
            month,
            year,
            result.entry_count,
            result.created_count,
            result.updated_count,
        )
        return result

    async def _run(self, month: int, year: int, reviewer_id: UUID | None) -> GenerationResult:
        result = GenerationResult(month=month, year=year, generated_by=reviewer_id)

        reps = await self.roster.list_active()

        try:
            aggregation = await self.order_source.aggregate(month, year)
        except AggregationError as e:
            logger.error("Ledger generation for %02d/%d aborted: %s", month, year, e.reason)
            raise

        result.unmatched_names = list(aggregation.unmatched)
        if aggregation.unmatched:
            logger.warning(
                "%d sales person name(s) for %02d/%d matched no active rep: %s",
                len(aggregation.unmatched),
                month,
                year,
                ", ".join(repr(name) for name in aggregation.unmatched),
            )

        pay_plans = await self.plans.get_pay_plans(month, year)
        schedules = await self.plans.get_office_schedules(month, year)
        existing = await self._load_existing(month, year)

        empty_schedule = TierSchedule()
        for rep in reps:
            stats = aggregation.for_rep(rep.sales_rep_id)
            plan = pay_plans.get(rep.sales_rep_id)
            schedule = schedules.get(rep.office, empty_schedule) if rep.office else empty_schedule

            formula = compute_formula(
                stats.buildings_sold,
                stats.total_order_amount,
                plan.salary if plan is not None else ZERO,
                schedule,
            )
            entry = existing.get(rep.sales_rep_id)
            values = merge_entry(stats, formula, protected_fields_of(entry))
            entry = self._upsert(result, entry, rep, month, year, values)

            if values.has_drift:
                drift = ApprovedDrift(
                    ledger_id=entry.ledger_id,
                    sales_rep_id=rep.sales_rep_id,
                    approved_final_amount=values.approved_final_amount,
                    final_amount=values.final_amount,
                )
                result.approved_drift.append(drift)
                logger.warning(
                    "Approved ledger entry for %s (%02d/%d) now totals %s, approved at %s",
                    rep.display_name,
                    month,
                    year,
                    drift.final_amount,
                    drift.approved_final_amount,
                )
            result.entries.append(entry)

        await self.session.flush()
        return result

    async def _load_existing(self, month: int, year: int) -> dict[UUID, PayLedger]:
        result = await self.session.execute(
            select(PayLedger)
            .where(PayLedger.month == month, PayLedger.year == year)
            .execution_options(populate_existing=True)
        )
        return {entry.sales_rep_id: entry for entry in result.scalars().all()}

    def _upsert(
        self,
        result: GenerationResult,
        entry: PayLedger | None,
        rep: SalesRep,
        month: int,
        year: int,
        values: LedgerValues,
    ) -> PayLedger:
        computed = values.computed_columns()

        if entry is None:
            entry = PayLedger(
                sales_rep_id=rep.sales_rep_id,
                month=month,
                year=year,
                adjustment=values.adjustment,
                cancellation_deduction=values.cancellation_deduction,
                status=values.status.value,
                **computed,
            )
            self.session.add(entry)
            result.created_count += 1
            return entry

        changed = False
        for column, value in computed.items():
            if getattr(entry, column) != value:
                setattr(entry, column, value)
                changed = True
        if changed:
            result.updated_count += 1
        return entry
