"""Order statistics from the local order store (orders carry the rep's ID)."""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sales_ledger.calculators.formula import round_to_cents
from sales_ledger.calculators.types import AggregationResult, OrderStatsSnapshot
from sales_ledger.models import OrderStatus, SalesOrder
from sales_ledger.sources.base import AggregationError, month_window


class DirectOrderSource:
    """Group-by-and-sum over the local ``sales_order`` table."""

    source_name = "direct"

    def __init__(self, session: AsyncSession):
        self.session = session

    async def aggregate(self, month: int, year: int) -> AggregationResult:
        """Sum non-cancelled orders per representative for the month."""
        start, end = month_window(month, year)

        query = (
            select(
                SalesOrder.sales_rep_id,
                func.count(SalesOrder.order_id),
                func.sum(SalesOrder.total_price),
            )
            .where(
                SalesOrder.sales_rep_id.is_not(None),
                SalesOrder.status != OrderStatus.CANCELLED.value,
                SalesOrder.cancelled_at.is_(None),
                or_(
                    and_(SalesOrder.date_sold >= start, SalesOrder.date_sold < end),
                    and_(
                        SalesOrder.date_sold.is_(None),
                        SalesOrder.created_at >= start,
                        SalesOrder.created_at < end,
                    ),
                ),
            )
            .group_by(SalesOrder.sales_rep_id)
        )

        try:
            result = await self.session.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            raise AggregationError(month, year, str(e)) from e

        stats: dict[UUID, OrderStatsSnapshot] = {}
        for sales_rep_id, count, total in rows:
            stats[sales_rep_id] = OrderStatsSnapshot(
                sales_rep_id=sales_rep_id,
                buildings_sold=int(count),
                total_order_amount=round_to_cents(Decimal(str(total or 0))),
            )

        return AggregationResult(stats=stats)

    async def list_cancelled_orders(
        self,
        month: int,
        year: int,
        sales_rep_id: UUID | None = None,
    ) -> list[dict[str, Any]]:
        """Cancelled orders whose cancellation falls in the month, newest first."""
        start, end = month_window(month, year)

        query = (
            select(SalesOrder)
            .where(
                SalesOrder.cancelled_at >= start,
                SalesOrder.cancelled_at < end,
            )
            .options(selectinload(SalesOrder.sales_rep))
            .order_by(SalesOrder.cancelled_at.desc())
        )
        if sales_rep_id is not None:
            query = query.where(SalesOrder.sales_rep_id == sales_rep_id)

        result = await self.session.execute(query)
        return [
            {
                "order_id": order.order_id,
                "order_number": order.order_number,
                "customer_name": order.customer_name,
                "total_price": order.total_price,
                "cancelled_at": order.cancelled_at,
                "cancel_reason": order.cancel_reason,
                "sales_rep_id": order.sales_rep_id,
                "sales_rep_name": order.sales_rep.display_name if order.sales_rep else None,
            }
            for order in result.scalars().all()
        ]
