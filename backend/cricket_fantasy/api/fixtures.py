"""Fixtures API routes - Stored fixtures and their fantasy scores."""

import logging
from datetime import UTC, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel

from cricket_fantasy.config import get_settings
from cricket_fantasy.db import get_pool
from cricket_fantasy.dependencies import require_db
from cricket_fantasy.services.lifecycle import FixtureState, classify_fixture

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/fixtures", tags=["fixtures"])


# =============================================================================
# Pydantic Response Models
# =============================================================================


class Fixture(BaseModel):
    """A stored fixture with its lifecycle state at request time."""

    id: int
    round: int | None = None
    local_team_id: int | None = None
    visitor_team_id: int | None = None
    starting_at: str | None = None
    state: FixtureState
    has_batting_data: bool = False


class FixturesResponse(BaseModel):
    """Response for the fixture list endpoint."""

    fixtures: list[Fixture]
    total: int


class PlayerScore(BaseModel):
    """Fantasy points earned by one player in one fixture."""

    player_id: int
    player_name: str | None = None
    team_id: int | None = None
    batting_points: int
    bowling_points: int
    fielding_points: int
    total_points: int


class FixtureScoresResponse(BaseModel):
    """Response for a fixture's score sheet."""

    fixture_id: int
    scores: list[PlayerScore]


# =============================================================================
# Endpoints
# =============================================================================


@router.get("", response_model=FixturesResponse)
async def get_fixtures(
    _: None = Depends(require_db),
    state: FixtureState | None = Query(default=None, description="Filter by lifecycle state"),
    limit: int = Query(default=100, ge=1, le=500, description="Max fixtures to return"),
    offset: int = Query(default=0, ge=0, description="Offset for pagination"),
) -> FixturesResponse:
    """List stored fixtures, classified against the current time."""
    settings = get_settings()
    match_duration = timedelta(hours=settings.match_duration_hours)
    now = datetime.now(UTC)

    pool = get_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch(
            """
            SELECT
                f.id, f.round, f.local_team_id, f.visitor_team_id, f.starting_at,
                EXISTS (
                    SELECT 1 FROM batting_performances b WHERE b.fixture_id = f.id
                ) AS has_batting_data
            FROM fixtures f
            ORDER BY f.starting_at ASC NULLS LAST, f.id
            """
        )

    fixtures = []
    for r in rows:
        has_data = bool(r["has_batting_data"])
        fixture_state = classify_fixture(r["starting_at"], now, has_data, match_duration)
        if state is not None and fixture_state != state:
            continue
        fixtures.append(
            Fixture(
                id=r["id"],
                round=r["round"],
                local_team_id=r["local_team_id"],
                visitor_team_id=r["visitor_team_id"],
                starting_at=r["starting_at"].isoformat() if r["starting_at"] else None,
                state=fixture_state,
                has_batting_data=has_data,
            )
        )

    return FixturesResponse(fixtures=fixtures[offset : offset + limit], total=len(fixtures))


@router.get("/{fixture_id}/scores", response_model=FixtureScoresResponse)
async def get_fixture_scores(
    _: None = Depends(require_db),
    fixture_id: int = Path(ge=1, description="Fixture ID"),
) -> FixtureScoresResponse:
    """Get every player's fantasy points for one fixture, best first."""
    pool = get_pool()
    async with pool.acquire() as conn:
        exists = await conn.fetchval("SELECT 1 FROM fixtures WHERE id = $1", fixture_id)
        if not exists:
            raise HTTPException(status_code=404, detail="Fixture not found")

        rows = await conn.fetch(
            """
            SELECT
                s.player_id, p.name AS player_name, p.team_id,
                s.batting_points, s.bowling_points, s.fielding_points, s.total_points
            FROM fantasy_scores s
            LEFT JOIN players p ON p.id = s.player_id
            WHERE s.fixture_id = $1
            ORDER BY s.total_points DESC, s.player_id
            """,
            fixture_id,
        )

    scores = [
        PlayerScore(
            player_id=r["player_id"],
            player_name=r["player_name"],
            team_id=r["team_id"],
            batting_points=r["batting_points"],
            bowling_points=r["bowling_points"],
            fielding_points=r["fielding_points"],
            total_points=r["total_points"],
        )
        for r in rows
    ]
    return FixtureScoresResponse(fixture_id=fixture_id, scores=scores)
