"""Service layer for business logic."""

from cricket_fantasy.services.ingestion import IngestionService
from cricket_fantasy.services.leaderboard import LeaderboardService
from cricket_fantasy.services.sportmonks_client import SportmonksClient

__all__ = ["IngestionService", "LeaderboardService", "SportmonksClient"]
