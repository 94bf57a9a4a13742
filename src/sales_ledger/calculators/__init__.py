"""Compensation calculation: tier matching, formula, and ledger merge."""

from sales_ledger.calculators.formula import compute_formula, round_to_cents
from sales_ledger.calculators.ledger_merge import (
    compute_final_amount,
    merge_entry,
    protected_fields_of,
)
from sales_ledger.calculators.tier_matcher import (
    TierConfigurationError,
    TierSchedule,
    match_tier,
)

__all__ = [
    "compute_formula",
    "round_to_cents",
    "compute_final_amount",
    "merge_entry",
    "protected_fields_of",
    "TierConfigurationError",
    "TierSchedule",
    "match_tier",
]
