"""Order statistics sources (direct and external systems of record)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sales_ledger.sources.base import AggregationError, OrderStatsSource, month_window
from sales_ledger.sources.direct import DirectOrderSource
from sales_ledger.sources.external import (
    ExternalOrderSource,
    build_order_process_client,
    reconcile_by_name,
)

if TYPE_CHECKING:
    import httpx
    from sqlalchemy.ext.asyncio import AsyncSession

    from sales_ledger.config import Settings
    from sales_ledger.sources.external import RosterProvider


def build_order_source(
    settings: Settings,
    session: AsyncSession,
    roster: RosterProvider,
    client: httpx.AsyncClient | None = None,
) -> OrderStatsSource:
    """Pick the adapter for the deployment's configured system of record."""
    if settings.is_external_mode:
        if client is None:
            raise ValueError("external order source requires an HTTP client")
        return ExternalOrderSource(
            client, roster, page_size=settings.order_process_page_size
        )
    return DirectOrderSource(session)


__all__ = [
    "AggregationError",
    "OrderStatsSource",
    "month_window",
    "DirectOrderSource",
    "ExternalOrderSource",
    "build_order_process_client",
    "reconcile_by_name",
    "build_order_source",
]
