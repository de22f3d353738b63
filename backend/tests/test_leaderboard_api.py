"""Tests for leaderboard API endpoint."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient

from cricket_fantasy.services.leaderboard import LeaderboardEntry


@pytest.fixture
def mock_db_available():
    """Make require_db pass without a real pool."""
    with patch("cricket_fantasy.dependencies.get_pool") as mock_get_pool:
        mock_get_pool.return_value = MagicMock()
        yield mock_get_pool


@pytest.fixture
def mock_service(mock_db_available):
    """Mock LeaderboardService used by the route."""
    with patch("cricket_fantasy.api.leaderboard.LeaderboardService") as service_cls:
        instance = MagicMock()
        instance.get_leaderboard = AsyncMock(
            return_value=[
                LeaderboardEntry(rank=1, team_id=3, team_name="Mumbai Mavericks", total_points=412),
                LeaderboardEntry(rank=2, team_id=1, team_name="Delhi Dashers", total_points=390),
                LeaderboardEntry(rank=3, team_id=2, team_name="Mumbai Blasters", total_points=190),
            ]
        )
        service_cls.return_value = instance
        yield instance


class TestLeaderboardEndpoint:
    """Tests for GET /api/v1/leaderboard."""

    async def test_returns_503_without_db(self, async_client: AsyncClient):
        """Should return 503 when database unavailable."""
        response = await async_client.get("/api/v1/leaderboard")

        assert response.status_code == 503
        assert "Database not available" in response.json()["detail"]

    async def test_returns_ranked_entries(self, async_client: AsyncClient, mock_service):
        response = await async_client.get("/api/v1/leaderboard")

        assert response.status_code == 200
        data = response.json()
        assert data["league_id"] is None
        assert data["group"] is None
        assert data["groups"] == ["Mumbai", "Delhi"]
        assert [e["rank"] for e in data["entries"]] == [1, 2, 3]
        mock_service.get_leaderboard.assert_awaited_once_with(None)

    async def test_league_scope_passed_through(self, async_client: AsyncClient, mock_service):
        response = await async_client.get("/api/v1/leaderboard?league_id=4")

        assert response.status_code == 200
        assert response.json()["league_id"] == 4
        mock_service.get_leaderboard.assert_awaited_once_with(4)

    async def test_group_filter_keeps_overall_rank(
        self, async_client: AsyncClient, mock_service
    ):
        response = await async_client.get("/api/v1/leaderboard?group=Mumbai")

        data = response.json()
        assert [(e["team_name"], e["rank"]) for e in data["entries"]] == [
            ("Mumbai Mavericks", 1),
            ("Mumbai Blasters", 3),
        ]
        assert data["groups"] == ["Mumbai", "Delhi"]

    async def test_invalid_league_returns_422(
        self, async_client: AsyncClient, mock_db_available
    ):
        response = await async_client.get("/api/v1/leaderboard?league_id=0")

        assert response.status_code == 422


class TestHealth:
    """Tests for the health endpoint."""

    async def test_health(self, async_client: AsyncClient):
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
