"""Sales ledger services."""

from sales_ledger.services.audit_service import AuditAction, AuditService
from sales_ledger.services.ledger_generator import (
    ApprovedDrift,
    GenerationResult,
    LedgerGenerator,
)
from sales_ledger.services.ledger_service import (
    LedgerConflictError,
    LedgerEntryNotFoundError,
    LedgerRow,
    LedgerService,
    ReviewOutcome,
)
from sales_ledger.services.locking_service import PeriodLockService
from sales_ledger.services.plan_service import PlanService, RepPlanOverview, tier_from_row
from sales_ledger.services.roster_service import RosterService, SalesRepNotFoundError
from sales_ledger.services.state_machine import (
    InvalidStatusTransitionError,
    LedgerStatusMachine,
)

__all__ = [
    "AuditAction",
    "AuditService",
    "ApprovedDrift",
    "GenerationResult",
    "LedgerGenerator",
    "LedgerConflictError",
    "LedgerEntryNotFoundError",
    "LedgerRow",
    "LedgerService",
    "ReviewOutcome",
    "PeriodLockService",
    "PlanService",
    "RepPlanOverview",
    "tier_from_row",
    "RosterService",
    "SalesRepNotFoundError",
    "InvalidStatusTransitionError",
    "LedgerStatusMachine",
]
