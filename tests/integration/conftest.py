"""API test fixtures: the FastAPI app wired to the per-test SQLite database."""

from collections.abc import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from sales_ledger.api.app import create_app
from sales_ledger.api.dependencies import get_app_settings, get_db_session


@pytest.fixture
def app(session_factory, settings) -> FastAPI:
    """Application with database and settings dependencies overridden."""
    app = create_app()

    async def override_db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_app_settings] = lambda: settings
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def actor_id():
    return uuid4()


@pytest.fixture
def headers(actor_id) -> dict[str, str]:
    return {"X-User-ID": str(actor_id)}
