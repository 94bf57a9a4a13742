"""Local order store model (direct aggregation mode)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sales_ledger.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from sales_ledger.models.representative import SalesRep


class OrderStatus(str, Enum):
    """Order status values."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SalesOrder(Base, TimestampMixin):
    """Building order attributed to a sales representative."""

    __tablename__ = "sales_order"

    order_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    order_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    customer_name: Mapped[str | None] = mapped_column(String, nullable=True)
    sales_rep_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("sales_rep.sales_rep_id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=OrderStatus.ACTIVE.value
    )
    total_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    date_sold: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('ACTIVE', 'COMPLETED', 'CANCELLED')",
            name="sales_order_status_check",
        ),
        CheckConstraint("total_price >= 0", name="sales_order_total_price_check"),
        Index("ix_sales_order_rep_sold", "sales_rep_id", "date_sold"),
    )

    # Relationships
    sales_rep: Mapped[SalesRep | None] = relationship(back_populates="orders")
