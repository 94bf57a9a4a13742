"""Pay plan, office tier plan, ledger, and audit models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sales_ledger.calculators.types import TIER_DECIMAL_PLACES
from sales_ledger.models.base import Base, TimestampMixin, utcnow

if TYPE_CHECKING:
    from sales_ledger.models.representative import SalesRep


ZERO = Decimal("0")
# Tier bounds and percentage rates carry more precision than money columns
TIER_NUMERIC = Numeric(14, TIER_DECIMAL_PLACES)


# ===== Pay Plans =====


class PayPlan(Base, TimestampMixin):
    """Per-representative, per-month base salary and free-form line items."""

    __tablename__ = "pay_plan"

    pay_plan_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    sales_rep_id: Mapped[UUID] = mapped_column(
        ForeignKey("sales_rep.sales_rep_id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    salary: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    created_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("sales_rep_id", "month", "year", name="pay_plan_rep_period_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="pay_plan_month_check"),
        CheckConstraint("salary >= 0", name="pay_plan_salary_check"),
    )

    # Relationships
    sales_rep: Mapped[SalesRep] = relationship()
    line_items: Mapped[list[PayPlanLineItem]] = relationship(
        back_populates="pay_plan",
        order_by="PayPlanLineItem.sort_order",
        cascade="all, delete-orphan",
    )


class PayPlanLineItem(Base):
    """Free-form labelled amount on a pay plan."""

    __tablename__ = "pay_plan_line_item"

    line_item_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_plan_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_plan.pay_plan_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    pay_plan: Mapped[PayPlan] = relationship(back_populates="line_items")


# ===== Office Tier Plans =====


class OfficePayPlan(Base, TimestampMixin):
    """Per-office, per-month tier configuration."""

    __tablename__ = "office_pay_plan"

    office_pay_plan_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    office: Mapped[str] = mapped_column(String, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("office", "month", "year", name="office_pay_plan_period_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="office_pay_plan_month_check"),
    )

    tiers: Mapped[list[OfficePayPlanTier]] = relationship(
        back_populates="office_pay_plan",
        order_by="OfficePayPlanTier.sort_order",
        cascade="all, delete-orphan",
    )


class OfficePayPlanTier(Base):
    """One range-to-bonus rule within an office plan."""

    __tablename__ = "office_pay_plan_tier"

    tier_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    office_pay_plan_id: Mapped[UUID] = mapped_column(
        ForeignKey("office_pay_plan.office_pay_plan_id", ondelete="CASCADE"),
        nullable=False,
    )
    tier_type: Mapped[str] = mapped_column(String, nullable=False)
    min_value: Mapped[Decimal] = mapped_column(TIER_NUMERIC, nullable=False)
    max_value: Mapped[Decimal | None] = mapped_column(TIER_NUMERIC, nullable=True)  # None = unbounded
    bonus_amount: Mapped[Decimal] = mapped_column(TIER_NUMERIC, nullable=False)
    bonus_type: Mapped[str] = mapped_column(String, nullable=False, default="FLAT")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint(
            "tier_type IN ('BUILDINGS_SOLD', 'ORDER_TOTAL')",
            name="office_tier_type_check",
        ),
        CheckConstraint(
            "bonus_type IN ('FLAT', 'PERCENTAGE')",
            name="office_tier_bonus_type_check",
        ),
    )

    office_pay_plan: Mapped[OfficePayPlan] = relationship(back_populates="tiers")


# ===== Ledger =====


class PayLedger(Base, TimestampMixin):
    """Computed monthly compensation for one representative, subject to review.

    Computed fields are refreshed by every generation run; adjustment,
    cancellation deduction, notes and review state belong to reviewers.
    """

    __tablename__ = "pay_ledger"

    ledger_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    sales_rep_id: Mapped[UUID] = mapped_column(
        ForeignKey("sales_rep.sales_rep_id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Computed
    buildings_sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_order_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    tier_bonus_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    monthly_salary: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    commission_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    plan_total: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    # Protected
    adjustment: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    adjustment_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_deduction: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")
    reviewed_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_final_amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    # Derived
    final_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    updated_at: Mapped[datetime] = mapped_column(
        nullable=False, default=utcnow, onupdate=utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("sales_rep_id", "month", "year", name="pay_ledger_rep_period_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="pay_ledger_month_check"),
        CheckConstraint(
            "status IN ('PENDING', 'REVIEWED', 'APPROVED')",
            name="pay_ledger_status_check",
        ),
        CheckConstraint(
            "cancellation_deduction >= 0",
            name="pay_ledger_cancellation_deduction_check",
        ),
    )
    __mapper_args__ = {"version_id_col": version}

    sales_rep: Mapped[SalesRep] = relationship()

    @property
    def has_drift(self) -> bool:
        """True when an approved entry's final amount moved after approval."""
        return (
            self.status == "APPROVED"
            and self.approved_final_amount is not None
            and self.approved_final_amount != self.final_amount
        )


# ===== Audit =====


class PayAuditLog(Base, TimestampMixin):
    """Append-only record of who ran or changed what."""

    __tablename__ = "pay_audit_log"

    audit_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID | None] = mapped_column(nullable=True)
    action: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
