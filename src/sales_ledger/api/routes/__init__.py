"""API routes."""

from sales_ledger.api.routes.health import router as health_router
from sales_ledger.api.routes.ledger import router as ledger_router
from sales_ledger.api.routes.plans import router as plans_router

__all__ = ["health_router", "ledger_router", "plans_router"]
