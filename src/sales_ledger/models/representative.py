"""Sales representative (roster) model."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sales_ledger.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from sales_ledger.models.order import SalesOrder


class SalesRep(Base, TimestampMixin):
    """Sales representative whose monthly pay the ledger computes.

    Owned by the identity/roster system; the ledger engine only reads it.
    """

    __tablename__ = "sales_rep"

    sales_rep_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    office: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)

    # Relationships
    orders: Mapped[list[SalesOrder]] = relationship(back_populates="sales_rep")

    @property
    def display_name(self) -> str:
        """Name as other systems record it ("First Last")."""
        return f"{self.first_name} {self.last_name}"
