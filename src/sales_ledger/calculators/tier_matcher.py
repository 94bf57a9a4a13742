"""Tier matching and tier schedule validation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal

from sales_ledger.calculators.types import TIER_DECIMAL_PLACES, BonusType, Tier, TierType

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class TierConfigurationError(Exception):
    """Raised when a tier list is not a valid ascending, non-overlapping schedule."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Invalid tier configuration: " + "; ".join(problems))


def match_tier(value: Decimal | int, tiers: Sequence[Tier]) -> Tier | None:
    """Return the first tier (in list order) whose range contains ``value``.

    Callers supply tiers of one type, sorted ascending by min_value; the list
    is not re-sorted here. No match returns None (zero bonus).
    """
    amount = Decimal(value)
    for tier in tiers:
        if tier.contains(amount):
            return tier
    return None


def _decimal_places(value: Decimal) -> int:
    exponent = Decimal(value).normalize().as_tuple().exponent
    return max(0, -exponent)


def find_tier_problems(tiers: Sequence[Tier]) -> list[str]:
    """Check a single-type tier list for ordering and overlap problems.

    Returns list of error messages (empty if valid).
    """
    problems: list[str] = []

    for i, tier in enumerate(tiers):
        label = f"{tier.tier_type.value} tier {i}"
        for name in ("min_value", "max_value", "bonus_amount"):
            value = getattr(tier, name)
            if value is not None and _decimal_places(value) > TIER_DECIMAL_PLACES:
                problems.append(
                    f"{label} {name} {value} has more than {TIER_DECIMAL_PLACES} decimal places"
                )
        if tier.min_value < 0:
            problems.append(f"{label} has negative min_value {tier.min_value}")
        if tier.bonus_amount < 0:
            problems.append(f"{label} has negative bonus_amount {tier.bonus_amount}")
        if tier.max_value is not None and tier.max_value < tier.min_value:
            problems.append(
                f"{label} has max_value {tier.max_value} below min_value {tier.min_value}"
            )
        if tier.bonus_type == BonusType.PERCENTAGE and tier.bonus_amount > HUNDRED:
            problems.append(f"{label} has percentage bonus above 100")

    for i, (prev, curr) in enumerate(zip(tiers, tiers[1:]), start=1):
        label = f"{curr.tier_type.value} tier {i}"
        if curr.min_value <= prev.min_value:
            problems.append(f"{label} is not in ascending min_value order")
        elif prev.max_value is None:
            problems.append(f"{label} follows an unbounded tier")
        elif curr.min_value <= prev.max_value:
            problems.append(
                f"{label} overlaps previous tier ({curr.min_value} <= {prev.max_value})"
            )

    return problems


class TierSchedule:
    """Immutable tier configuration for one office and month, split by type.

    ``validated`` rejects ambiguous configuration at write time. ``from_stored``
    is used when reading: it never fails, keeps stored order, and logs any
    problems so first-match-wins stays predictable for legacy rows.
    """

    __slots__ = ("_by_type",)

    def __init__(self, tiers: Iterable[Tier] = ()):
        by_type: dict[TierType, list[Tier]] = {t: [] for t in TierType}
        for tier in tiers:
            by_type[tier.tier_type].append(tier)
        self._by_type: dict[TierType, tuple[Tier, ...]] = {
            t: tuple(items) for t, items in by_type.items()
        }

    @classmethod
    def validated(cls, tiers: Iterable[Tier]) -> TierSchedule:
        """Build a schedule, raising TierConfigurationError if it is ambiguous."""
        schedule = cls(tiers)
        problems = schedule.problems()
        if problems:
            raise TierConfigurationError(problems)
        return schedule

    @classmethod
    def from_stored(cls, tiers: Iterable[Tier], context: str = "") -> TierSchedule:
        schedule = cls(tiers)
        problems = schedule.problems()
        if problems:
            logger.warning(
                "Stored tier configuration %s is ambiguous, first match wins: %s",
                context,
                "; ".join(problems),
            )
        return schedule

    def problems(self) -> list[str]:
        problems: list[str] = []
        for tier_type in TierType:
            problems.extend(find_tier_problems(self._by_type[tier_type]))
        return problems

    @property
    def buildings_sold(self) -> tuple[Tier, ...]:
        return self._by_type[TierType.BUILDINGS_SOLD]

    @property
    def order_total(self) -> tuple[Tier, ...]:
        return self._by_type[TierType.ORDER_TOTAL]

    def all_tiers(self) -> list[Tier]:
        return [tier for tier_type in TierType for tier in self._by_type[tier_type]]

    def __len__(self) -> int:
        return sum(len(items) for items in self._by_type.values())

    def __bool__(self) -> bool:
        return len(self) > 0
