"""Tests for the compensation formula and ledger merge."""

from decimal import Decimal
from uuid import uuid4

import pytest

from sales_ledger.calculators.formula import (
    commission,
    compute_formula,
    monthly_salary,
    round_to_cents,
)
from sales_ledger.calculators.ledger_merge import (
    compute_final_amount,
    merge_entry,
    protected_fields_of,
)
from sales_ledger.calculators.tier_matcher import TierSchedule
from sales_ledger.calculators.types import (
    BonusType,
    FormulaResult,
    LedgerStatus,
    OrderStatsSnapshot,
    ProtectedFields,
    Tier,
    TierType,
)
from sales_ledger.models import PayLedger


class TestRounding:
    """Test cent rounding."""

    def test_half_up(self):
        assert round_to_cents(Decimal("0.125")) == Decimal("0.13")
        assert round_to_cents(Decimal("0.135")) == Decimal("0.14")
        assert round_to_cents(Decimal("-0.125")) == Decimal("-0.13")

    def test_monthly_salary(self):
        assert monthly_salary(Decimal("60000")) == Decimal("5000.00")
        # 50000 / 12 = 4166.666...
        assert monthly_salary(Decimal("50000")) == Decimal("4166.67")
        # 100 / 12 = 8.3333...
        assert monthly_salary(Decimal("100")) == Decimal("8.33")

    def test_non_positive_salary_pays_nothing(self):
        assert monthly_salary(Decimal("0")) == Decimal("0.00")
        assert monthly_salary(Decimal("-1200")) == Decimal("0.00")


class TestComputeFormula:
    """Test plan total computation."""

    def test_worked_example(self, office_tiers):
        """salary 60000, 3 buildings at 150, 120000 at 5% -> 11450.00."""
        result = compute_formula(
            buildings_sold=3,
            total_order_amount=Decimal("120000"),
            salary=Decimal("60000"),
            tiers=office_tiers,
        )

        assert result.tier_bonus_amount == Decimal("450.00")
        assert result.monthly_salary == Decimal("5000.00")
        assert result.commission_amount == Decimal("6000.00")
        assert result.plan_total == Decimal("11450.00")
        assert str(result.plan_total) == "11450.00"

    def test_no_building_tier_match(self):
        tiers = [Tier(TierType.BUILDINGS_SOLD, Decimal("5"), None, Decimal("200"))]

        result = compute_formula(2, Decimal("0"), Decimal("0"), tiers)

        assert result.tier_bonus_amount == Decimal("0")
        assert result.plan_total == Decimal("0")

    def test_no_tiers_at_all(self):
        result = compute_formula(7, Decimal("250000"), Decimal("48000"), [])

        assert result.tier_bonus_amount == Decimal("0")
        assert result.commission_amount == Decimal("0")
        assert result.plan_total == Decimal("4000.00")

    def test_flat_commission_pays_bonus_exactly(self):
        tiers = [
            Tier(
                TierType.ORDER_TOTAL,
                Decimal("50000"),
                None,
                Decimal("750.50"),
                BonusType.FLAT,
            )
        ]

        assert commission(Decimal("80000"), TierSchedule(tiers)) == Decimal("750.50")
        assert commission(Decimal("49999.99"), TierSchedule(tiers)) == Decimal("0")

    def test_percentage_commission_rounds(self):
        tiers = [
            Tier(
                TierType.ORDER_TOTAL,
                Decimal("0"),
                None,
                Decimal("2.5"),
                BonusType.PERCENTAGE,
            )
        ]
        # 333.33 * 2.5% = 8.33325
        assert commission(Decimal("333.33"), TierSchedule(tiers)) == Decimal("8.33")
        # 333.34 * 2.5% = 8.3335
        assert commission(Decimal("333.34"), TierSchedule(tiers)) == Decimal("8.33")
        # 333.40 * 2.5% = 8.335
        assert commission(Decimal("333.40"), TierSchedule(tiers)) == Decimal("8.34")

    def test_tier_lists_are_split_by_type(self, office_tiers):
        """Building counts never match order-total tiers and vice versa."""
        result = compute_formula(5, Decimal("3"), Decimal("0"), office_tiers)

        # 5 buildings at 200; order total 3 at 3%
        assert result.tier_bonus_amount == Decimal("1000.00")
        assert result.commission_amount == Decimal("0.09")

    def test_deterministic(self, office_tiers):
        first = compute_formula(3, Decimal("120000"), Decimal("60000"), office_tiers)
        second = compute_formula(3, Decimal("120000"), Decimal("60000"), office_tiers)
        assert first == second


class TestLedgerMerge:
    """Test merging computed values with reviewer-owned fields."""

    @pytest.fixture
    def formula(self) -> FormulaResult:
        return FormulaResult(
            tier_bonus_amount=Decimal("450.00"),
            monthly_salary=Decimal("5000.00"),
            commission_amount=Decimal("6000.00"),
            plan_total=Decimal("11450.00"),
        )

    @pytest.fixture
    def stats(self) -> OrderStatsSnapshot:
        return OrderStatsSnapshot(uuid4(), 3, Decimal("120000.00"))

    def test_final_amount_composition(self):
        final = compute_final_amount(Decimal("11450.00"), Decimal("1000"), Decimal("-200"))
        assert final == Decimal("10250.00")

    def test_defaults_for_new_entry(self, stats, formula):
        values = merge_entry(stats, formula, protected_fields_of(None))

        assert values.adjustment == Decimal("0")
        assert values.cancellation_deduction == Decimal("0")
        assert values.status == LedgerStatus.PENDING
        assert values.final_amount == Decimal("11450.00")
        assert values.buildings_sold == 3
        assert values.has_drift is False

    def test_protected_fields_pass_through(self, stats, formula):
        protected = ProtectedFields(
            adjustment=Decimal("-200"),
            cancellation_deduction=Decimal("1000"),
            status=LedgerStatus.APPROVED,
            approved_final_amount=Decimal("10250.00"),
        )

        values = merge_entry(stats, formula, protected)

        assert values.adjustment == Decimal("-200")
        assert values.cancellation_deduction == Decimal("1000")
        assert values.status == LedgerStatus.APPROVED
        assert values.final_amount == Decimal("10250.00")
        assert values.has_drift is False

    def test_drift_detected_when_approved_amount_moves(self, stats, formula):
        protected = ProtectedFields(
            status=LedgerStatus.APPROVED,
            approved_final_amount=Decimal("9000.00"),
        )

        values = merge_entry(stats, formula, protected)

        assert values.status == LedgerStatus.APPROVED
        assert values.has_drift is True

    def test_reads_protected_fields_from_row(self):
        entry = PayLedger(
            adjustment=Decimal("50"),
            cancellation_deduction=Decimal("10"),
            status="REVIEWED",
        )

        protected = protected_fields_of(entry)

        assert protected.adjustment == Decimal("50")
        assert protected.cancellation_deduction == Decimal("10")
        assert protected.status == LedgerStatus.REVIEWED
        assert protected.approved_final_amount is None

    def test_computed_columns_exclude_protected(self, stats, formula):
        values = merge_entry(stats, formula, ProtectedFields(adjustment=Decimal("5")))
        columns = values.computed_columns()

        assert "adjustment" not in columns
        assert "cancellation_deduction" not in columns
        assert "status" not in columns
        assert columns["final_amount"] == Decimal("11455.00")
