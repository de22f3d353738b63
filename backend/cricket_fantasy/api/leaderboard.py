"""Leaderboard API routes - Fantasy team standings."""

import logging

from fastapi import APIRouter, Depends, Query

from cricket_fantasy.dependencies import require_db
from cricket_fantasy.schemas import LeaderboardEntryResponse, LeaderboardResponse
from cricket_fantasy.services.leaderboard import (
    LeaderboardService,
    available_groups,
    filter_by_group,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/leaderboard", tags=["leaderboard"])


@router.get("", response_model=LeaderboardResponse)
async def get_leaderboard(
    _: None = Depends(require_db),
    league_id: int | None = Query(default=None, ge=1, description="Limit to one league"),
    group: str | None = Query(
        default=None,
        min_length=1,
        max_length=50,
        description="Team-name group (first word of the team name)",
    ),
) -> LeaderboardResponse:
    """
    Get ranked fantasy teams.

    Ranks are computed over the whole league before the group filter is
    applied, so a filtered view keeps each team's overall position.
    """
    service = LeaderboardService()
    entries = await service.get_leaderboard(league_id)
    logger.info(f"Leaderboard built for league={league_id}: {len(entries)} teams")

    return LeaderboardResponse(
        league_id=league_id,
        group=group,
        groups=available_groups(entries),
        entries=[
            LeaderboardEntryResponse.model_validate(entry, from_attributes=True)
            for entry in filter_by_group(entries, group)
        ],
    )
