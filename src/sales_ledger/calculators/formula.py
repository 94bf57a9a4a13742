"""Compensation formula.

    plan_total = (buildings_sold * building tier bonus)
               + (salary / 12)
               + commission on order total (tier percentage or flat amount)

All money is Decimal. Rounding is ROUND_HALF_UP to cents wherever a
division or percentage produces sub-cent precision, so repeated
regeneration over the same inputs always yields the same numbers.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from sales_ledger.calculators.tier_matcher import TierSchedule, match_tier
from sales_ledger.calculators.types import ZERO, BonusType, FormulaResult, Tier

CENTS = Decimal("0.01")
MONTHS_PER_YEAR = Decimal("12")
HUNDRED = Decimal("100")


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def monthly_salary(salary: Decimal) -> Decimal:
    """Annual salary spread over twelve months; non-positive salary pays nothing."""
    if salary <= 0:
        return round_to_cents(ZERO)
    return round_to_cents(salary / MONTHS_PER_YEAR)


def tier_bonus(buildings_sold: int, schedule: TierSchedule) -> Decimal:
    """Per-building bonus from the matched BUILDINGS_SOLD tier."""
    tier = match_tier(buildings_sold, schedule.buildings_sold)
    if tier is None:
        return round_to_cents(ZERO)
    return round_to_cents(Decimal(buildings_sold) * tier.bonus_amount)


def commission(total_order_amount: Decimal, schedule: TierSchedule) -> Decimal:
    """Commission from the matched ORDER_TOTAL tier.

    PERCENTAGE pays that percent of the order total; FLAT pays the bonus
    amount as configured.
    """
    tier = match_tier(total_order_amount, schedule.order_total)
    if tier is None:
        return round_to_cents(ZERO)
    if tier.bonus_type == BonusType.PERCENTAGE:
        return round_to_cents(total_order_amount * tier.bonus_amount / HUNDRED)
    return tier.bonus_amount


def compute_formula(
    buildings_sold: int,
    total_order_amount: Decimal,
    salary: Decimal,
    tiers: TierSchedule | Iterable[Tier],
) -> FormulaResult:
    """Compute plan total for one representative. Pure, no I/O."""
    schedule = tiers if isinstance(tiers, TierSchedule) else TierSchedule(tiers)

    tier_bonus_amount = tier_bonus(buildings_sold, schedule)
    salary_portion = monthly_salary(salary)
    commission_amount = commission(total_order_amount, schedule)

    return FormulaResult(
        tier_bonus_amount=tier_bonus_amount,
        monthly_salary=salary_portion,
        commission_amount=commission_amount,
        plan_total=tier_bonus_amount + salary_portion + commission_amount,
    )
