"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from sales_ledger.config import Settings, get_settings
from sales_ledger.database import init_db
from sales_ledger.services.roster_service import RosterService
from sales_ledger.sources import OrderStatsSource, build_order_source


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        yield session


def get_app_settings() -> Settings:
    return get_settings()


async def get_actor_id(
    x_user_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract the calling user's ID from header."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-ID header is required",
        )
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-User-ID format",
        )


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
ActorId = Annotated[UUID, Depends(get_actor_id)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]


async def get_order_source(
    request: Request,
    db: DbSession,
    settings: AppSettings,
) -> OrderStatsSource:
    """Order statistics adapter for the configured system of record."""
    client = getattr(request.app.state, "order_process_client", None)
    return build_order_source(settings, db, RosterService(db), client=client)


OrderSource = Annotated[OrderStatsSource, Depends(get_order_source)]
