"""Merge freshly computed compensation with reviewer-owned ledger fields."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sales_ledger.calculators.formula import round_to_cents
from sales_ledger.calculators.types import (
    FormulaResult,
    LedgerStatus,
    LedgerValues,
    OrderStatsSnapshot,
    ProtectedFields,
)

if TYPE_CHECKING:
    from sales_ledger.models import PayLedger


def compute_final_amount(
    plan_total: Decimal, cancellation_deduction: Decimal, adjustment: Decimal
) -> Decimal:
    """final = plan_total - cancellation_deduction + adjustment."""
    return round_to_cents(plan_total - cancellation_deduction + adjustment)


def protected_fields_of(entry: PayLedger | None) -> ProtectedFields:
    """Read reviewer-owned values from an existing row (defaults if absent)."""
    if entry is None:
        return ProtectedFields()
    return ProtectedFields(
        adjustment=entry.adjustment,
        cancellation_deduction=entry.cancellation_deduction,
        status=LedgerStatus(entry.status),
        approved_final_amount=entry.approved_final_amount,
    )


def merge_entry(
    stats: OrderStatsSnapshot,
    formula: FormulaResult,
    protected: ProtectedFields,
) -> LedgerValues:
    """Combine computed values with protected ones. Total and side-effect free.

    Protected fields pass through unchanged; only computed fields and
    final_amount depend on the fresh inputs.
    """
    return LedgerValues(
        buildings_sold=stats.buildings_sold,
        total_order_amount=stats.total_order_amount,
        tier_bonus_amount=formula.tier_bonus_amount,
        monthly_salary=formula.monthly_salary,
        commission_amount=formula.commission_amount,
        plan_total=formula.plan_total,
        adjustment=protected.adjustment,
        cancellation_deduction=protected.cancellation_deduction,
        status=protected.status,
        final_amount=compute_final_amount(
            formula.plan_total, protected.cancellation_deduction, protected.adjustment
        ),
        approved_final_amount=protected.approved_final_amount,
    )
