"""ORM models for the sales compensation ledger."""

from sales_ledger.models.base import Base, TimestampMixin, utcnow
from sales_ledger.models.order import OrderStatus, SalesOrder
from sales_ledger.models.pay import (
    OfficePayPlan,
    OfficePayPlanTier,
    PayAuditLog,
    PayLedger,
    PayPlan,
    PayPlanLineItem,
)
from sales_ledger.models.representative import SalesRep

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "OrderStatus",
    "SalesOrder",
    "OfficePayPlan",
    "OfficePayPlanTier",
    "PayAuditLog",
    "PayLedger",
    "PayPlan",
    "PayPlanLineItem",
    "SalesRep",
]
