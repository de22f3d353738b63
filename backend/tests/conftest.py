"""Shared pytest fixtures for backend tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from cricket_fantasy.main import app


@pytest.fixture
async def async_client():
    """Async HTTP client for testing the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def make_mock_pool(conn: MagicMock) -> MagicMock:
    """Pool whose acquire() hands out ``conn`` as an async context manager."""
    mock_acquire = MagicMock()
    mock_acquire.__aenter__ = AsyncMock(return_value=conn)
    mock_acquire.__aexit__ = AsyncMock(return_value=None)

    pool = MagicMock()
    pool.acquire.return_value = mock_acquire
    pool.close = AsyncMock()
    return pool


@pytest.fixture
def mock_conn():
    """asyncpg connection double with async query methods."""
    conn = MagicMock()
    conn.execute = AsyncMock(return_value="INSERT 0 1")
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetchval = AsyncMock(return_value=None)
    return conn


@pytest.fixture
def mock_pool(mock_conn):
    """Pool double wrapping ``mock_conn``."""
    return make_mock_pool(mock_conn)
