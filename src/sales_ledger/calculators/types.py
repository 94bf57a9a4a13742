"""Type definitions for the compensation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import UUID

ZERO = Decimal("0")
# Decimal places kept for tier bounds and bonus rates
TIER_DECIMAL_PLACES = 4


class TierType(str, Enum):
    """Metric a tier is matched against."""

    BUILDINGS_SOLD = "BUILDINGS_SOLD"
    ORDER_TOTAL = "ORDER_TOTAL"


class BonusType(str, Enum):
    """How a tier's bonus amount is applied."""

    FLAT = "FLAT"
    PERCENTAGE = "PERCENTAGE"


class LedgerStatus(str, Enum):
    """Ledger entry review status values."""

    PENDING = "PENDING"
    REVIEWED = "REVIEWED"
    APPROVED = "APPROVED"


@dataclass(frozen=True)
class Tier:
    """A configured range of a metric mapped to a bonus."""

    tier_type: TierType
    min_value: Decimal
    max_value: Decimal | None  # None = no upper limit
    bonus_amount: Decimal
    bonus_type: BonusType = BonusType.FLAT

    def contains(self, value: Decimal) -> bool:
        """Inclusive on both ends."""
        if value < self.min_value:
            return False
        return self.max_value is None or value <= self.max_value


@dataclass(frozen=True)
class OrderStatsSnapshot:
    """Completed-order totals for one representative in one month."""

    sales_rep_id: UUID
    buildings_sold: int = 0
    total_order_amount: Decimal = ZERO


@dataclass
class AggregationResult:
    """Order statistics keyed by representative, plus unattributable names.

    ``unmatched`` is only populated in external mode, where orders name
    their representative by free text.
    """

    stats: dict[UUID, OrderStatsSnapshot] = field(default_factory=dict)
    unmatched: list[str] = field(default_factory=list)

    def for_rep(self, sales_rep_id: UUID) -> OrderStatsSnapshot:
        return self.stats.get(sales_rep_id) or OrderStatsSnapshot(sales_rep_id)


@dataclass(frozen=True)
class FormulaResult:
    """Output of the compensation formula."""

    tier_bonus_amount: Decimal
    monthly_salary: Decimal
    commission_amount: Decimal
    plan_total: Decimal


@dataclass(frozen=True)
class ProtectedFields:
    """Reviewer-owned values carried forward across regeneration."""

    adjustment: Decimal = ZERO
    cancellation_deduction: Decimal = ZERO
    status: LedgerStatus = LedgerStatus.PENDING
    approved_final_amount: Decimal | None = None


@dataclass(frozen=True)
class LedgerValues:
    """Fully merged values for one ledger row."""

    buildings_sold: int
    total_order_amount: Decimal
    tier_bonus_amount: Decimal
    monthly_salary: Decimal
    commission_amount: Decimal
    plan_total: Decimal
    adjustment: Decimal
    cancellation_deduction: Decimal
    status: LedgerStatus
    final_amount: Decimal
    approved_final_amount: Decimal | None = None

    @property
    def has_drift(self) -> bool:
        """Approved entry whose final amount no longer matches what was approved."""
        return (
            self.status == LedgerStatus.APPROVED
            and self.approved_final_amount is not None
            and self.approved_final_amount != self.final_amount
        )

    def computed_columns(self) -> dict[str, object]:
        """Columns a regeneration run is allowed to write."""
        return {
            "buildings_sold": self.buildings_sold,
            "total_order_amount": self.total_order_amount,
            "tier_bonus_amount": self.tier_bonus_amount,
            "monthly_salary": self.monthly_salary,
            "commission_amount": self.commission_amount,
            "plan_total": self.plan_total,
            "final_amount": self.final_amount,
        }
