"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sales_ledger import __version__
from sales_ledger.api.routes import health_router, ledger_router, plans_router
from sales_ledger.calculators.tier_matcher import TierConfigurationError
from sales_ledger.config import configure_logging, get_settings
from sales_ledger.database import dispose_db, init_db
from sales_ledger.services.ledger_service import LedgerConflictError, LedgerEntryNotFoundError
from sales_ledger.services.roster_service import SalesRepNotFoundError
from sales_ledger.services.state_machine import InvalidStatusTransitionError
from sales_ledger.sources import AggregationError, build_order_process_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level)
    init_db()
    if settings.is_external_mode:
        app.state.order_process_client = build_order_process_client(
            settings.order_process_url,
            settings.order_process_api_key,
            settings.order_process_timeout,
        )
    logger.info("Sales ledger API started (order source: %s)", settings.order_source_mode)
    yield
    # Shutdown
    client = getattr(app.state, "order_process_client", None)
    if client is not None:
        await client.aclose()
    await dispose_db()


def _error(status_code: int, detail: str, code: str, errors: list[str] | None = None) -> JSONResponse:
    content: dict = {"detail": detail, "code": code}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Sales Ledger API",
        description="Monthly sales compensation ledger",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(TierConfigurationError)
    async def tier_configuration_handler(
        request: Request, exc: TierConfigurationError
    ) -> JSONResponse:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            "Invalid tier configuration",
            "INVALID_TIERS",
            exc.problems,
        )

    @app.exception_handler(InvalidStatusTransitionError)
    async def invalid_transition_handler(
        request: Request, exc: InvalidStatusTransitionError
    ) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc), "INVALID_TRANSITION")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc), "INVALID_VALUE")

    @app.exception_handler(LedgerEntryNotFoundError)
    @app.exception_handler(SalesRepNotFoundError)
    async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc), "NOT_FOUND")

    @app.exception_handler(LedgerConflictError)
    async def conflict_handler(request: Request, exc: LedgerConflictError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc), "CONFLICT")

    @app.exception_handler(AggregationError)
    async def aggregation_handler(request: Request, exc: AggregationError) -> JSONResponse:
        return _error(status.HTTP_502_BAD_GATEWAY, str(exc), "AGGREGATION_FAILED")

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            "INTERNAL_ERROR",
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(ledger_router, prefix="/api/v1/pay")
    app.include_router(plans_router, prefix="/api/v1/pay")

    return app


# Default app instance for uvicorn
app = create_app()
