"""Ledger read view and reviewer edits."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from sales_ledger.calculators.formula import round_to_cents
from sales_ledger.calculators.ledger_merge import compute_final_amount
from sales_ledger.calculators.types import LedgerStatus
from sales_ledger.models import PayLedger, PayPlan, SalesRep, utcnow
from sales_ledger.services.state_machine import LedgerStatusMachine


class LedgerEntryNotFoundError(Exception):
    """Raised when a ledger entry does not exist."""

    def __init__(self, ledger_id: UUID):
        self.ledger_id = ledger_id
        super().__init__(f"Ledger entry {ledger_id} not found")


class LedgerConflictError(Exception):
    """Raised when a ledger row changed underneath the writer."""

    def __init__(
        self,
        ledger_id: UUID | None = None,
        expected_version: int | None = None,
        actual_version: int | None = None,
        reason: str | None = None,
    ):
        self.ledger_id = ledger_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        self.reason = reason
        if ledger_id is not None and expected_version is not None:
            msg = (
                f"Ledger entry {ledger_id} is at version {actual_version}, "
                f"expected {expected_version}"
            )
        else:
            msg = "Ledger entry was modified concurrently"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


@dataclass
class LedgerRow:
    """A ledger entry joined with the display data the review UI needs."""

    entry: PayLedger
    sales_rep: SalesRep
    pay_plan: PayPlan | None

    @property
    def has_drift(self) -> bool:
        return self.entry.has_drift


@dataclass
class ReviewOutcome:
    entry: PayLedger
    changes: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.changes)


class LedgerService:
    """Reviewer-facing operations on ledger entries.

    Reviewers own adjustment, adjustment_note, cancellation_deduction,
    notes and status. Every money edit recomputes final_amount from the
    stored plan_total.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_ledger_for_month(self, month: int, year: int) -> list[LedgerRow]:
        """Entries for active reps, sorted by rep first then last name."""
        result = await self.session.execute(
            select(PayLedger, SalesRep, PayPlan)
            .join(SalesRep, SalesRep.sales_rep_id == PayLedger.sales_rep_id)
            .outerjoin(
                PayPlan,
                and_(
                    PayPlan.sales_rep_id == PayLedger.sales_rep_id,
                    PayPlan.month == PayLedger.month,
                    PayPlan.year == PayLedger.year,
                ),
            )
            .where(
                PayLedger.month == month,
                PayLedger.year == year,
                SalesRep.is_active.is_(True),
            )
            .options(selectinload(PayPlan.line_items))
            .order_by(SalesRep.first_name, SalesRep.last_name)
        )
        return [
            LedgerRow(entry=entry, sales_rep=rep, pay_plan=plan)
            for entry, rep, plan in result.all()
        ]

    async def get_entry(self, ledger_id: UUID) -> PayLedger:
        entry = await self.session.get(PayLedger, ledger_id)
        if entry is None:
            raise LedgerEntryNotFoundError(ledger_id)
        return entry

    async def review_entry(
        self,
        ledger_id: UUID,
        actor_user_id: UUID | None = None,
        adjustment: Decimal | None = None,
        adjustment_note: str | None = None,
        cancellation_deduction: Decimal | None = None,
        notes: str | None = None,
        status: str | None = None,
        expected_version: int | None = None,
    ) -> ReviewOutcome:
        """Apply a reviewer edit. Only the fields given are touched.

        Raises:
            LedgerEntryNotFoundError: No such entry.
            LedgerConflictError: expected_version is stale, or the row
                changed before this edit was flushed.
            InvalidStatusTransitionError: The status change is not allowed.
            ValueError: cancellation_deduction is negative.
        """
        entry = await self.get_entry(ledger_id)
        if expected_version is not None and expected_version != entry.version:
            raise LedgerConflictError(ledger_id, expected_version, entry.version)

        outcome = ReviewOutcome(entry=entry)

        if adjustment is not None:
            self._set(outcome, "adjustment", round_to_cents(adjustment))
        if adjustment_note is not None:
            self._set(outcome, "adjustment_note", adjustment_note)
        if cancellation_deduction is not None:
            if cancellation_deduction < 0:
                raise ValueError("cancellation_deduction must not be negative")
            self._set(outcome, "cancellation_deduction", round_to_cents(cancellation_deduction))
        if notes is not None:
            self._set(outcome, "notes", notes)

        self._set(
            outcome,
            "final_amount",
            compute_final_amount(
                entry.plan_total, entry.cancellation_deduction, entry.adjustment
            ),
        )

        if status is not None and status != entry.status:
            self._transition(outcome, LedgerStatus(status).value, actor_user_id)
        elif entry.status == LedgerStatus.APPROVED and "final_amount" in outcome.changes:
            # Edited while approved: the reviewer has seen the new amount
            entry.approved_final_amount = entry.final_amount

        if outcome.changed:
            try:
                await self.session.flush()
            except StaleDataError as e:
                raise LedgerConflictError(ledger_id, expected_version, reason=str(e)) from e
        return outcome

    def _transition(self, outcome: ReviewOutcome, to_status: str, actor_user_id: UUID | None) -> None:
        entry = outcome.entry
        LedgerStatusMachine.validate_transition(entry.status, to_status)
        self._set(outcome, "status", to_status)

        if LedgerStatusMachine.stamps_reviewer(to_status):
            entry.reviewed_by_id = actor_user_id
            entry.reviewed_at = utcnow()
        else:
            entry.reviewed_by_id = None
            entry.reviewed_at = None

        if to_status == LedgerStatus.APPROVED:
            entry.approved_final_amount = entry.final_amount
        else:
            entry.approved_final_amount = None

    @staticmethod
    def _set(outcome: ReviewOutcome, column: str, value: Any) -> None:
        old = getattr(outcome.entry, column)
        if old != value:
            setattr(outcome.entry, column, value)
            outcome.changes[column] = {"from": old, "to": value}
