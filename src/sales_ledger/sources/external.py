"""Order statistics from the external order-processing store.

That store records the representative only as a free-text ``sales_person``
display name, with no identifier shared with the local roster. Orders are
grouped by that name and joined to active representatives on an exact
"First Last" match. Names that match nobody are reported as unmatched and
left out of every representative's stats; they never block a run.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

import httpx

from sales_ledger.calculators.formula import round_to_cents
from sales_ledger.calculators.types import ZERO, AggregationResult, OrderStatsSnapshot
from sales_ledger.sources.base import AggregationError, month_window

if TYPE_CHECKING:
    from sales_ledger.models import SalesRep

logger = logging.getLogger(__name__)

ORDERS_PATH = "/rest/v1/orders"
SELECT_COLUMNS = "id,sales_person,status,created_at,cancelled_at,pricing"
CANCELLED = "cancelled"


class RosterProvider(Protocol):
    """Source of the active representative roster."""

    async def list_active(self) -> list[SalesRep]:
        ...


@dataclass(frozen=True)
class ExternalOrder:
    """The parts of an external order row the ledger needs."""

    sales_person: str
    amount: Decimal
    created_at: datetime


def _parse_timestamp(value: Any) -> datetime:
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_order_row(row: dict[str, Any]) -> ExternalOrder | None:
    """Convert a raw row; returns None for rows that must not count.

    Raises:
        ValueError: the row is malformed.
    """
    if not isinstance(row, dict):
        raise ValueError(f"expected an object, got {type(row).__name__}")
    if row.get("status") == CANCELLED or row.get("cancelled_at"):
        return None

    sales_person = row.get("sales_person") or ""
    if not isinstance(sales_person, str):
        raise ValueError(f"order {row.get('id')} has non-text sales_person")

    pricing = row.get("pricing") or {}
    if not isinstance(pricing, dict):
        raise ValueError(f"order {row.get('id')} has malformed pricing")
    raw_amount = pricing.get("subtotalBeforeTax")
    try:
        amount = ZERO if raw_amount is None else Decimal(str(raw_amount))
    except InvalidOperation as e:
        raise ValueError(f"order {row.get('id')} has non-numeric subtotal") from e
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"order {row.get('id')} has invalid subtotal {raw_amount}")

    if "created_at" not in row:
        raise ValueError(f"order {row.get('id')} has no created_at")
    return ExternalOrder(
        sales_person=sales_person,
        amount=amount,
        created_at=_parse_timestamp(row["created_at"]),
    )


def build_name_lookup(reps: Iterable[SalesRep]) -> tuple[dict[str, UUID], set[str]]:
    """Map "First Last" to rep ID. Names shared by two active reps are ambiguous."""
    lookup: dict[str, UUID] = {}
    ambiguous: set[str] = set()
    for rep in reps:
        name = rep.display_name
        if name in lookup and lookup[name] != rep.sales_rep_id:
            ambiguous.add(name)
        lookup[name] = rep.sales_rep_id
    for name in ambiguous:
        del lookup[name]
    return lookup, ambiguous


def reconcile_by_name(
    orders: Sequence[ExternalOrder],
    reps: Iterable[SalesRep],
) -> AggregationResult:
    """Group orders by free-text name and attribute groups to representatives.

    Exact match only. Unmatched (or ambiguous) names are returned sorted in
    ``unmatched`` rather than raised.
    """
    lookup, ambiguous = build_name_lookup(reps)
    if ambiguous:
        logger.warning(
            "Display names shared by several active reps, orders left unattributed: %s",
            ", ".join(sorted(ambiguous)),
        )

    counts: dict[str, int] = {}
    totals: dict[str, Decimal] = {}
    for order in orders:
        counts[order.sales_person] = counts.get(order.sales_person, 0) + 1
        totals[order.sales_person] = totals.get(order.sales_person, ZERO) + order.amount

    result = AggregationResult()
    for name, count in counts.items():
        sales_rep_id = lookup.get(name)
        if sales_rep_id is None:
            result.unmatched.append(name)
            continue
        result.stats[sales_rep_id] = OrderStatsSnapshot(
            sales_rep_id=sales_rep_id,
            buildings_sold=count,
            total_order_amount=round_to_cents(totals[name]),
        )
    result.unmatched.sort()
    return result


class ExternalOrderSource:
    """PostgREST client for the order-processing ``orders`` table."""

    source_name = "external"

    def __init__(
        self,
        client: httpx.AsyncClient,
        roster: RosterProvider,
        page_size: int = 1000,
    ):
        self.client = client
        self.roster = roster
        self.page_size = page_size

    async def aggregate(self, month: int, year: int) -> AggregationResult:
        orders = await self.list_completed_orders(month, year)
        reps = await self.roster.list_active()
        return reconcile_by_name(orders, reps)

    async def list_completed_orders(self, month: int, year: int) -> list[ExternalOrder]:
        """Fetch every non-cancelled order created in the month, page by page."""
        start, end = month_window(month, year)
        orders: list[ExternalOrder] = []
        offset = 0

        while True:
            rows = await self._fetch_page(month, year, start, end, offset)
            for row in rows:
                try:
                    order = parse_order_row(row)
                except ValueError as e:
                    raise AggregationError(month, year, f"malformed order row: {e}") from e
                if order is not None and start <= order.created_at < end:
                    orders.append(order)
            if len(rows) < self.page_size:
                break
            offset += self.page_size

        logger.debug("Fetched %d external orders for %d/%d", len(orders), month, year)
        return orders

    async def _fetch_page(
        self,
        month: int,
        year: int,
        start: datetime,
        end: datetime,
        offset: int,
    ) -> list[dict[str, Any]]:
        params = [
            ("select", SELECT_COLUMNS),
            ("status", f"neq.{CANCELLED}"),
            ("created_at", f"gte.{start.isoformat()}"),
            ("created_at", f"lt.{end.isoformat()}"),
            ("order", "id.asc"),
            ("limit", str(self.page_size)),
            ("offset", str(offset)),
        ]
        try:
            response = await self.client.get(ORDERS_PATH, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise AggregationError(month, year, f"order store request failed: {e}") from e

        try:
            payload = json.loads(response.text, parse_float=Decimal)
        except ValueError as e:
            raise AggregationError(month, year, "order store returned invalid JSON") from e
        if not isinstance(payload, list):
            raise AggregationError(month, year, "order store returned a non-list payload")
        return payload


def build_order_process_client(
    base_url: str,
    api_key: str | None = None,
    timeout: float = 30.0,
) -> httpx.AsyncClient:
    """HTTP client configured for the order-processing store."""
    headers = {"Accept": "application/json"}
    if api_key:
        headers["apikey"] = api_key
        headers["Authorization"] = f"Bearer {api_key}"
    return httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)
