"""Append-only audit log of ledger and plan actions."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sales_ledger.models import PayAuditLog


class AuditAction(str, Enum):
    """Actions recorded by callers of the ledger engine."""

    LEDGER_GENERATED = "LEDGER_GENERATED"
    LEDGER_ADJUSTED = "LEDGER_ADJUSTED"
    SALARY_UPDATED = "SALARY_UPDATED"
    LINE_ITEMS_UPDATED = "LINE_ITEMS_UPDATED"
    OFFICE_TIERS_UPDATED = "OFFICE_TIERS_UPDATED"


def _json_safe(details: dict[str, Any] | None) -> dict[str, Any] | None:
    # Decimals, UUIDs and datetimes are stored as their string forms
    if details is None:
        return None
    return json.loads(json.dumps(details, default=str))


class AuditService:
    """Writes and reads audit entries. Never updates or deletes them."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        user_id: UUID | None,
        action: AuditAction | str,
        description: str,
        details: dict[str, Any] | None = None,
    ) -> PayAuditLog:
        entry = PayAuditLog(
            user_id=user_id,
            action=AuditAction(action).value,
            description=description,
            details=_json_safe(details),
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_recent(self, limit: int = 50) -> list[PayAuditLog]:
        """Most recent entries first."""
        result = await self.session.execute(
            select(PayAuditLog)
            .order_by(PayAuditLog.created_at.desc(), PayAuditLog.audit_id)
            .limit(limit)
        )
        return list(result.scalars().all())
