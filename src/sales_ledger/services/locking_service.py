"""Serialization of ledger generation per (month, year)."""

from __future__ import annotations

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from sales_ledger.database import acquire_period_xact_lock


class PeriodLockService:
    """Holds the generation lock for one ledger period.

    Two generation runs for the same period must never interleave, or one
    could overwrite protected fields the other just read. Within a process
    an asyncio.Lock per period queues callers; on PostgreSQL a
    transaction-scoped advisory lock extends this across processes. The
    caller must commit or roll back before leaving the context.
    """

    _locks: weakref.WeakKeyDictionary[
        asyncio.AbstractEventLoop, dict[str, asyncio.Lock]
    ] = weakref.WeakKeyDictionary()

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def period_key(month: int, year: int) -> str:
        return f"pay_ledger:{year:04d}-{month:02d}"

    @classmethod
    def _lock_for(cls, key: str) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        per_loop = cls._locks.setdefault(loop, {})
        if key not in per_loop:
            per_loop[key] = asyncio.Lock()
        return per_loop[key]

    @asynccontextmanager
    async def hold(self, month: int, year: int) -> AsyncGenerator[None, None]:
        """Hold the period lock for the duration of the block."""
        key = self.period_key(month, year)
        async with self._lock_for(key):
            if self.session.get_bind().dialect.name == "postgresql":
                await acquire_period_xact_lock(self.session, key)
            yield
