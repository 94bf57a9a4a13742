"""Base protocol and helpers for order statistics sources.

Two systems of record can hold order data; each has an adapter implementing
OrderStatsSource. The ledger generator uses them without knowing which.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from sales_ledger.calculators.types import AggregationResult


class AggregationError(Exception):
    """Raised when order statistics cannot be produced for a month.

    Fatal to a generation run: no ledger rows may be written from partial data.
    """

    def __init__(self, month: int, year: int, reason: str):
        self.month = month
        self.year = year
        self.reason = reason
        super().__init__(f"Order aggregation failed for {month}/{year}: {reason}")


def month_window(month: int, year: int) -> tuple[datetime, datetime]:
    """Return [month start, next month start) as naive UTC datetimes."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1-12, got {month}")
    start = datetime(year, month, 1)
    end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
    return start, end


class OrderStatsSource(Protocol):
    """Protocol for order statistics adapters."""

    source_name: str

    async def aggregate(self, month: int, year: int) -> AggregationResult:
        """Completed-order count and total per representative for a month.

        Cancelled orders contribute nothing. An order belongs to the month of
        its sold date, or of its creation time when no sold date is recorded.

        Raises:
            AggregationError: the source is unreachable or returned bad data.
        """
        ...
