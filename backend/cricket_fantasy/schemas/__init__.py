"""API response schemas."""

from cricket_fantasy.schemas.leaderboard import (
    LeaderboardEntryResponse,
    LeaderboardResponse,
)

__all__ = [
    "LeaderboardEntryResponse",
    "LeaderboardResponse",
]
