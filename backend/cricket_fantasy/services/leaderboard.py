"""Fantasy team standings from stored player scores.

Team totals apply the captain (x2) and vice-captain (x1.5) multipliers to
each rostered player's season points, sum the exact values, and round once
per team with halves going up (9.5 becomes 10, -7.5 becomes -7). Ranking
is by total descending; equal totals keep the order the teams were
supplied in.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal

from cricket_fantasy.db import get_connection

logger = logging.getLogger(__name__)

CAPTAIN_MULTIPLIER = Decimal("2")
VICE_CAPTAIN_MULTIPLIER = Decimal("1.5")
DEFAULT_MULTIPLIER = Decimal("1")
HALF = Decimal("0.5")


@dataclass
class FantasyTeam:
    """A fantasy roster with its captaincy picks."""

    team_id: int
    name: str
    player_ids: list[int] = field(default_factory=list)
    captain_id: int | None = None
    vice_captain_id: int | None = None
    league_id: int | None = None


@dataclass
class LeaderboardEntry:
    """One ranked row of a leaderboard."""

    rank: int
    team_id: int
    team_name: str
    total_points: int


def team_group(team_name: str) -> str:
    """Group label for a team: the first word of its name."""
    parts = team_name.split()
    return parts[0] if parts else ""


def player_multiplier(team: FantasyTeam, player_id: int) -> Decimal:
    """Multiplier for one rostered player. The captain wins if also vice-captain."""
    if player_id == team.captain_id:
        return CAPTAIN_MULTIPLIER
    if player_id == team.vice_captain_id:
        return VICE_CAPTAIN_MULTIPLIER
    return DEFAULT_MULTIPLIER


def calculate_team_points(team: FantasyTeam, player_points: Mapping[int, int]) -> int:
    """
    Multiplied season points for one team, rounded once at team level (halves up).

    Captain or vice-captain ids that are not on the roster earn nothing
    (there is no rostered player to multiply).
    """
    roster = set(team.player_ids)
    for role, player_id in (("captain", team.captain_id), ("vice-captain", team.vice_captain_id)):
        if player_id is not None and player_id not in roster:
            logger.warning(
                f"Team {team.team_id}: {role} {player_id} is not on the roster, ignoring"
            )

    total = Decimal(0)
    for player_id in dict.fromkeys(team.player_ids):
        points = player_points.get(player_id, 0)
        total += Decimal(points) * player_multiplier(team, player_id)

    return int((total + HALF).to_integral_value(rounding=ROUND_FLOOR))


def build_leaderboard(
    teams: Sequence[FantasyTeam], player_points: Mapping[int, int]
) -> list[LeaderboardEntry]:
    """
    Rank teams by multiplied season points.

    Args:
        teams: Teams in their stable input order (used to break ties)
        player_points: Season total per player id (summed over fixtures)

    Returns:
        Entries ranked 1..N, highest total first
    """
    totals = [(team, calculate_team_points(team, player_points)) for team in teams]
    # sorted() is stable, so tied teams keep their input order
    ranked = sorted(totals, key=lambda item: item[1], reverse=True)
    return [
        LeaderboardEntry(
            rank=index,
            team_id=team.team_id,
            team_name=team.name,
            total_points=total,
        )
        for index, (team, total) in enumerate(ranked, start=1)
    ]


def filter_by_group(
    entries: Sequence[LeaderboardEntry], group: str | None
) -> list[LeaderboardEntry]:
    """Keep entries whose team name starts with ``group``; ranks are unchanged."""
    if not group:
        return list(entries)
    return [entry for entry in entries if team_group(entry.team_name) == group]


def available_groups(entries: Sequence[LeaderboardEntry]) -> list[str]:
    """Distinct team groups in leaderboard order."""
    return list(dict.fromkeys(team_group(entry.team_name) for entry in entries))


class LeaderboardService:
    """Reads teams and scores from the database and builds standings."""

    async def get_teams(self, league_id: int | None = None) -> list[FantasyTeam]:
        """Load fantasy teams with rosters, optionally scoped to one league."""
        async with get_connection() as conn:
            rows = await conn.fetch(
                """
                SELECT
                    t.id,
                    t.name,
                    t.league_id,
                    t.captain_id,
                    t.vice_captain_id,
                    COALESCE(
                        ARRAY_AGG(tp.player_id ORDER BY tp.player_id)
                            FILTER (WHERE tp.player_id IS NOT NULL),
                        '{}'
                    ) AS player_ids
                FROM fantasy_teams t
                LEFT JOIN fantasy_team_players tp ON tp.fantasy_team_id = t.id
                WHERE ($1::int IS NULL OR t.league_id = $1)
                GROUP BY t.id
                ORDER BY t.id
                """,
                league_id,
            )

        return [
            FantasyTeam(
                team_id=row["id"],
                name=row["name"],
                player_ids=list(row["player_ids"] or []),
                captain_id=row["captain_id"],
                vice_captain_id=row["vice_captain_id"],
                league_id=row["league_id"],
            )
            for row in rows
        ]

    async def get_player_points(self, player_ids: Sequence[int]) -> dict[int, int]:
        """Season total per player, summed over every scored fixture."""
        if not player_ids:
            return {}

        async with get_connection() as conn:
            rows = await conn.fetch(
                """
                SELECT player_id, SUM(total_points) AS total_points
                FROM fantasy_scores
                WHERE player_id = ANY($1::int[])
                GROUP BY player_id
                """,
                list(player_ids),
            )

        return {row["player_id"]: int(row["total_points"] or 0) for row in rows}

    async def get_leaderboard(self, league_id: int | None = None) -> list[LeaderboardEntry]:
        """Build the leaderboard, across all teams or for one league."""
        teams = await self.get_teams(league_id)
        if not teams:
            return []

        player_ids = sorted({pid for team in teams for pid in team.player_ids})
        player_points = await self.get_player_points(player_ids)
        return build_leaderboard(teams, player_points)
