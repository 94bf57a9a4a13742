"""Read access to the sales representative roster."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sales_ledger.models import SalesRep


class SalesRepNotFoundError(Exception):
    """Raised when a representative does not exist."""

    def __init__(self, sales_rep_id: UUID):
        self.sales_rep_id = sales_rep_id
        super().__init__(f"Sales rep {sales_rep_id} not found")


class RosterService:
    """Active representatives, as owned by the identity system."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_active(self) -> list[SalesRep]:
        """Active representatives ordered by first then last name."""
        result = await self.session.execute(
            select(SalesRep)
            .where(SalesRep.is_active.is_(True))
            .order_by(SalesRep.first_name, SalesRep.last_name)
        )
        return list(result.scalars().all())

    async def get(self, sales_rep_id: UUID) -> SalesRep:
        rep = await self.session.get(SalesRep, sales_rep_id)
        if rep is None:
            raise SalesRepNotFoundError(sales_rep_id)
        return rep
