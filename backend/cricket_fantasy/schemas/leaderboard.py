"""Leaderboard API response schemas.

Populated from the service dataclasses using
model_validate(obj, from_attributes=True).
"""

from pydantic import BaseModel, ConfigDict


class LeaderboardEntryResponse(BaseModel):
    """One ranked fantasy team."""

    model_config = ConfigDict(from_attributes=True)

    rank: int
    team_id: int
    team_name: str
    total_points: int


class LeaderboardResponse(BaseModel):
    """Ranked standings, optionally narrowed to one team-name group."""

    league_id: int | None
    group: str | None
    groups: list[str]
    entries: list[LeaderboardEntryResponse]
