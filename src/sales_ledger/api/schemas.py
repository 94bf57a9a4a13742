"""Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Shared
# ============================================================================


class PeriodRequest(BaseModel):
    """A ledger period."""

    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000)


class SalesRepSummary(BaseModel):
    """Representative display data."""

    model_config = ConfigDict(from_attributes=True)

    sales_rep_id: UUID
    first_name: str
    last_name: str
    display_name: str
    office: str | None = None


# ============================================================================
# Pay plan schemas
# ============================================================================


class LineItemSchema(BaseModel):
    """Free-form labelled amount on a pay plan."""

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(min_length=1)
    amount: Decimal


class PayPlanResponse(BaseModel):
    """Schema for pay plan response."""

    model_config = ConfigDict(from_attributes=True)

    pay_plan_id: UUID
    sales_rep_id: UUID
    month: int
    year: int
    salary: Decimal
    line_items: list[LineItemSchema]
    created_by_id: UUID | None = None
    updated_at: datetime


class PayPlanUpsertRequest(PeriodRequest):
    """Create or update a representative's pay plan.

    Omitted fields keep their stored values; given line items replace the
    existing ones wholesale.
    """

    sales_rep_id: UUID
    salary: Decimal | None = Field(default=None, ge=0)
    line_items: list[LineItemSchema] | None = None


class RepPlanResponse(BaseModel):
    """An active representative's plan and month-to-date order stats."""

    sales_rep: SalesRepSummary
    pay_plan: PayPlanResponse | None
    salary: Decimal
    buildings_sold: int
    total_order_amount: Decimal


class PlansOverviewResponse(BaseModel):
    month: int
    year: int
    items: list[RepPlanResponse]


# ============================================================================
# Office tier plan schemas
# ============================================================================


class TierSchema(BaseModel):
    """One range-to-bonus rule."""

    model_config = ConfigDict(from_attributes=True)

    tier_type: Literal["BUILDINGS_SOLD", "ORDER_TOTAL"]
    min_value: Decimal
    max_value: Decimal | None = None
    bonus_amount: Decimal
    bonus_type: Literal["FLAT", "PERCENTAGE"] = "FLAT"


class OfficePlanResponse(BaseModel):
    """Schema for office tier plan response."""

    model_config = ConfigDict(from_attributes=True)

    office_pay_plan_id: UUID
    office: str
    month: int
    year: int
    tiers: list[TierSchema]


class OfficePlanUpsertRequest(PeriodRequest):
    """Replace an office's tiers for a period."""

    office: str = Field(min_length=1)
    tiers: list[TierSchema]


class OfficePlanListResponse(BaseModel):
    month: int
    year: int
    items: list[OfficePlanResponse]


# ============================================================================
# Ledger schemas
# ============================================================================


class LedgerEntryResponse(BaseModel):
    """Schema for ledger entry response."""

    model_config = ConfigDict(from_attributes=True)

    ledger_id: UUID
    sales_rep_id: UUID
    month: int
    year: int
    buildings_sold: int
    total_order_amount: Decimal
    tier_bonus_amount: Decimal
    monthly_salary: Decimal
    commission_amount: Decimal
    plan_total: Decimal
    adjustment: Decimal
    adjustment_note: str | None = None
    cancellation_deduction: Decimal
    notes: str | None = None
    status: str
    reviewed_by_id: UUID | None = None
    reviewed_at: datetime | None = None
    approved_final_amount: Decimal | None = None
    final_amount: Decimal
    has_drift: bool
    version: int
    created_at: datetime
    updated_at: datetime


class LedgerRowResponse(BaseModel):
    """Ledger entry joined with representative and pay plan display data."""

    model_config = ConfigDict(from_attributes=True)

    entry: LedgerEntryResponse
    sales_rep: SalesRepSummary
    pay_plan: PayPlanResponse | None = None


class LedgerListResponse(BaseModel):
    month: int
    year: int
    items: list[LedgerRowResponse]
    total: int


class ApprovedDriftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ledger_id: UUID
    sales_rep_id: UUID
    approved_final_amount: Decimal
    final_amount: Decimal


class GenerateResponse(BaseModel):
    """Result of a generation run."""

    month: int
    year: int
    entry_count: int
    created: int
    updated: int
    unmatched_names: list[str]
    approved_drift: list[ApprovedDriftResponse]
    entries: list[LedgerEntryResponse]


class LedgerReviewRequest(BaseModel):
    """Reviewer edit of a ledger entry. Only given fields change."""

    adjustment: Decimal | None = None
    adjustment_note: str | None = None
    cancellation_deduction: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None
    status: Literal["PENDING", "REVIEWED", "APPROVED"] | None = None
    version: int | None = Field(default=None, description="Expected row version")


# ============================================================================
# Orders and audit
# ============================================================================


class CancelledOrderResponse(BaseModel):
    order_id: UUID
    order_number: str
    customer_name: str | None = None
    total_price: Decimal
    cancelled_at: datetime
    cancel_reason: str | None = None
    sales_rep_id: UUID | None = None
    sales_rep_name: str | None = None


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    audit_id: UUID
    user_id: UUID | None = None
    action: str
    description: str
    details: dict[str, Any] | None = None
    created_at: datetime


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str | None = None
    errors: list[str] | None = None


# ============================================================================
# Health schemas
# ============================================================================


class HealthResponse(BaseModel):
    """Service status with the database probe and order source in use."""

    status: Literal["healthy", "degraded"]
    timestamp: datetime
    database: Literal["healthy", "unhealthy"]
    order_source: str
    engine_version: str


class ReadinessResponse(BaseModel):
    status: Literal["ready", "not_ready"]
    reason: str | None = None
