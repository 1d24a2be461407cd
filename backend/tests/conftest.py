"""
User Directory API: Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: Mock async session (service unit tests, no DB)
    ├── user_payload: A valid create/edit body
    ├── test_settings: Settings pointing at a temporary SQLite file
    ├── test_app: App built from test_settings with the schema created
    └── test_client: HTTPX AsyncClient bound to test_app
"""

import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_users.db"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from userapi.config import Settings
from userapi.main import create_app


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_user(mock_db_session):
            mock_db_session.execute.return_value.scalar_one_or_none.return_value = user
            result = await service.get_user(mock_db_session, user_id)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def user_payload():
    """A complete, valid body for POST /user and PUT /user/{id}."""
    return {
        "name": "Peter Parker",
        "dob": "10 Aug 2001",
        "address": "20 Ingram Street, Queens",
        "description": "Photographer",
    }


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings isolated to a per-test SQLite file."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'users.db'}",
        log_level="WARNING",
        db_operation_timeout=5.0,
    )


@pytest_asyncio.fixture
async def test_app(test_settings) -> AsyncGenerator[FastAPI, None]:
    """
    A fresh application with an empty users table.

    ASGITransport does not run the lifespan, so the schema is created and
    the engine disposed here.
    """
    app = create_app(test_settings)
    await app.state.database.create_tables()
    yield app
    await app.state.database.dispose()


@pytest_asyncio.fixture
async def test_client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient routed straight to the app (no server).

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
