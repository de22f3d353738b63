"""Idempotent upserts and read-backs for fixtures, players and performances.

Every write is keyed on its natural key. The ``WHERE ... IS DISTINCT FROM``
guard on each ``ON CONFLICT`` clause makes a same-value re-upsert a true
no-op (``updated_at`` does not move), while a changed value replaces the
row in place. Nothing on the ingestion path deletes rows.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

import asyncpg

from cricket_fantasy.errors import PersistenceError
from cricket_fantasy.services.fielding import FieldingCounters
from cricket_fantasy.services.normalizer import BattingRecord, BowlingRecord
from cricket_fantasy.services.scoring import ScoreBreakdown
from cricket_fantasy.services.sportmonks_client import RawPlayer

logger = logging.getLogger(__name__)

# asyncpg failures that affect a single statement
DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError)


@dataclass(slots=True)
class FixtureRow:
    """A fixture as stored, ready for upsert."""

    id: int
    round: int | None
    local_team_id: int | None
    visitor_team_id: int | None
    starting_at: datetime | None


@dataclass(slots=True)
class ScheduledFixture:
    """A stored fixture plus whether batting data exists for it."""

    fixture_id: int
    starting_at: datetime | None
    has_batting_data: bool


@dataclass(slots=True)
class FixturePerformances:
    """All stored performance rows for one fixture."""

    batting: list[BattingRecord] = field(default_factory=list)
    bowling: list[BowlingRecord] = field(default_factory=list)
    fielding: Mapping[int, FieldingCounters] = field(
        default_factory=lambda: MappingProxyType({})
    )


def _changed(status: str) -> bool:
    """True when an INSERT ... ON CONFLICT status reports a written row."""
    # Status strings look like "INSERT 0 1"; 0 rows means the guard held
    try:
        return int(status.split()[-1]) > 0
    except (AttributeError, IndexError, ValueError):
        return False


async def _upsert(
    conn: asyncpg.Connection, table: str, key: tuple, query: str, *args: object
) -> bool:
    """Run one upsert, wrapping driver errors in PersistenceError."""
    try:
        status = await conn.execute(query, *args)
    except DB_ERRORS as e:
        raise PersistenceError(table, key, e) from e
    return _changed(status)


# =============================================================================
# Writes
# =============================================================================


async def upsert_fixture(conn: asyncpg.Connection, fixture: FixtureRow) -> bool:
    """Insert or update a fixture by provider id. Returns True if a row changed."""
    return await _upsert(
        conn,
        "fixtures",
        (fixture.id,),
        """
        INSERT INTO fixtures (id, round, local_team_id, visitor_team_id, starting_at)
        VALUES ($1, $2, $3, $4, $5)
        ON CONFLICT (id) DO UPDATE SET
            round = EXCLUDED.round,
            local_team_id = EXCLUDED.local_team_id,
            visitor_team_id = EXCLUDED.visitor_team_id,
            starting_at = EXCLUDED.starting_at,
            updated_at = NOW()
        WHERE (fixtures.round, fixtures.local_team_id, fixtures.visitor_team_id,
               fixtures.starting_at)
            IS DISTINCT FROM
              (EXCLUDED.round, EXCLUDED.local_team_id, EXCLUDED.visitor_team_id,
               EXCLUDED.starting_at)
        """,
        fixture.id,
        fixture.round,
        fixture.local_team_id,
        fixture.visitor_team_id,
        fixture.starting_at,
    )


async def upsert_player(conn: asyncpg.Connection, player: RawPlayer) -> bool:
    """Insert or update a player by provider id. Returns True if a row changed."""
    return await _upsert(
        conn,
        "players",
        (player.id,),
        """
        INSERT INTO players (id, name, role, team_id, photo_url)
        VALUES ($1, $2, $3, $4, $5)
        ON CONFLICT (id) DO UPDATE SET
            name = EXCLUDED.name,
            role = EXCLUDED.role,
            team_id = EXCLUDED.team_id,
            photo_url = EXCLUDED.photo_url,
            updated_at = NOW()
        WHERE (players.name, players.role, players.team_id, players.photo_url)
            IS DISTINCT FROM
              (EXCLUDED.name, EXCLUDED.role, EXCLUDED.team_id, EXCLUDED.photo_url)
        """,
        player.id,
        player.name,
        player.role,
        player.team_id,
        player.photo_url,
    )


async def upsert_batting(
    conn: asyncpg.Connection, fixture_id: int, record: BattingRecord
) -> bool:
    """Insert or update one batting row keyed by (fixture, player)."""
    return await _upsert(
        conn,
        "batting_performances",
        (fixture_id, record.player_id),
        """
        INSERT INTO batting_performances (
            fixture_id, player_id, runs_scored, balls_faced, boundaries, sixes, strike_rate
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        ON CONFLICT (fixture_id, player_id) DO UPDATE SET
            runs_scored = EXCLUDED.runs_scored,
            balls_faced = EXCLUDED.balls_faced,
            boundaries = EXCLUDED.boundaries,
            sixes = EXCLUDED.sixes,
            strike_rate = EXCLUDED.strike_rate,
            updated_at = NOW()
        WHERE (batting_performances.runs_scored, batting_performances.balls_faced,
               batting_performances.boundaries, batting_performances.sixes,
               batting_performances.strike_rate)
            IS DISTINCT FROM
              (EXCLUDED.runs_scored, EXCLUDED.balls_faced, EXCLUDED.boundaries,
               EXCLUDED.sixes, EXCLUDED.strike_rate)
        """,
        fixture_id,
        record.player_id,
        record.runs_scored,
        record.balls_faced,
        record.boundaries,
        record.sixes,
        record.strike_rate,
    )


async def upsert_bowling(
    conn: asyncpg.Connection, fixture_id: int, record: BowlingRecord
) -> bool:
    """Insert or update one bowling row keyed by (fixture, player)."""
    return await _upsert(
        conn,
        "bowling_performances",
        (fixture_id, record.player_id),
        """
        INSERT INTO bowling_performances (
            fixture_id, player_id, overs_bowled, runs_conceded, wickets, maiden_overs, economy
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        ON CONFLICT (fixture_id, player_id) DO UPDATE SET
            overs_bowled = EXCLUDED.overs_bowled,
            runs_conceded = EXCLUDED.runs_conceded,
            wickets = EXCLUDED.wickets,
            maiden_overs = EXCLUDED.maiden_overs,
            economy = EXCLUDED.economy,
            updated_at = NOW()
        WHERE (bowling_performances.overs_bowled, bowling_performances.runs_conceded,
               bowling_performances.wickets, bowling_performances.maiden_overs,
               bowling_performances.economy)
            IS DISTINCT FROM
              (EXCLUDED.overs_bowled, EXCLUDED.runs_conceded, EXCLUDED.wickets,
               EXCLUDED.maiden_overs, EXCLUDED.economy)
        """,
        fixture_id,
        record.player_id,
        record.overs_bowled,
        record.runs_conceded,
        record.wickets,
        record.maiden_overs,
        record.economy,
    )


async def upsert_fielding(
    conn: asyncpg.Connection, fixture_id: int, player_id: int, counters: FieldingCounters
) -> bool:
    """Insert or update one derived fielding row keyed by (fixture, player)."""
    return await _upsert(
        conn,
        "fielding_performances",
        (fixture_id, player_id),
        """
        INSERT INTO fielding_performances (
            fixture_id, player_id, catches, stumpings, direct_runouts,
            indirect_runouts, dot_balls, lbw_bowled_wickets
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
        ON CONFLICT (fixture_id, player_id) DO UPDATE SET
            catches = EXCLUDED.catches,
            stumpings = EXCLUDED.stumpings,
            direct_runouts = EXCLUDED.direct_runouts,
            indirect_runouts = EXCLUDED.indirect_runouts,
            dot_balls = EXCLUDED.dot_balls,
            lbw_bowled_wickets = EXCLUDED.lbw_bowled_wickets,
            updated_at = NOW()
        WHERE (fielding_performances.catches, fielding_performances.stumpings,
               fielding_performances.direct_runouts, fielding_performances.indirect_runouts,
               fielding_performances.dot_balls, fielding_performances.lbw_bowled_wickets)
            IS DISTINCT FROM
              (EXCLUDED.catches, EXCLUDED.stumpings, EXCLUDED.direct_runouts,
               EXCLUDED.indirect_runouts, EXCLUDED.dot_balls, EXCLUDED.lbw_bowled_wickets)
        """,
        fixture_id,
        player_id,
        counters.catches,
        counters.stumpings,
        counters.direct_runouts,
        counters.indirect_runouts,
        counters.dot_balls,
        counters.lbw_bowled_wickets,
    )


async def upsert_fantasy_score(
    conn: asyncpg.Connection, fixture_id: int, player_id: int, score: ScoreBreakdown
) -> bool:
    """Overwrite the fantasy score for (fixture, player)."""
    return await _upsert(
        conn,
        "fantasy_scores",
        (fixture_id, player_id),
        """
        INSERT INTO fantasy_scores (
            fixture_id, player_id, batting_points, bowling_points, fielding_points, total_points
        )
        VALUES ($1, $2, $3, $4, $5, $6)
        ON CONFLICT (fixture_id, player_id) DO UPDATE SET
            batting_points = EXCLUDED.batting_points,
            bowling_points = EXCLUDED.bowling_points,
            fielding_points = EXCLUDED.fielding_points,
            total_points = EXCLUDED.total_points,
            updated_at = NOW()
        WHERE (fantasy_scores.batting_points, fantasy_scores.bowling_points,
               fantasy_scores.fielding_points, fantasy_scores.total_points)
            IS DISTINCT FROM
              (EXCLUDED.batting_points, EXCLUDED.bowling_points,
               EXCLUDED.fielding_points, EXCLUDED.total_points)
        """,
        fixture_id,
        player_id,
        score.batting_points,
        score.bowling_points,
        score.fielding_points,
        score.total_points,
    )


# =============================================================================
# Reads
# =============================================================================


async def fetch_fixture_performances(
    conn: asyncpg.Connection, fixture_id: int
) -> FixturePerformances:
    """Read back every stored performance row for a fixture."""
    batting_rows = await conn.fetch(
        """
        SELECT player_id, runs_scored, balls_faced, boundaries, sixes, strike_rate
        FROM batting_performances
        WHERE fixture_id = $1
        ORDER BY player_id
        """,
        fixture_id,
    )
    bowling_rows = await conn.fetch(
        """
        SELECT player_id, overs_bowled, runs_conceded, wickets, maiden_overs, economy
        FROM bowling_performances
        WHERE fixture_id = $1
        ORDER BY player_id
        """,
        fixture_id,
    )
    fielding_rows = await conn.fetch(
        """
        SELECT player_id, catches, stumpings, direct_runouts, indirect_runouts,
               dot_balls, lbw_bowled_wickets
        FROM fielding_performances
        WHERE fixture_id = $1
        ORDER BY player_id
        """,
        fixture_id,
    )

    return FixturePerformances(
        batting=[BattingRecord.from_row(row) for row in batting_rows],
        bowling=[BowlingRecord.from_row(row) for row in bowling_rows],
        fielding=MappingProxyType(
            {row["player_id"]: FieldingCounters.from_row(row) for row in fielding_rows}
        ),
    )


async def list_fixture_schedule(conn: asyncpg.Connection) -> list[ScheduledFixture]:
    """All stored fixtures with a flag for whether batting data exists."""
    rows = await conn.fetch(
        """
        SELECT
            f.id,
            f.starting_at,
            EXISTS (
                SELECT 1 FROM batting_performances b WHERE b.fixture_id = f.id
            ) AS has_batting_data
        FROM fixtures f
        ORDER BY f.starting_at ASC NULLS LAST, f.id
        """
    )
    return [
        ScheduledFixture(
            fixture_id=row["id"],
            starting_at=row["starting_at"],
            has_batting_data=bool(row["has_batting_data"]),
        )
        for row in rows
    ]


async def count_rows(conn: asyncpg.Connection) -> dict[str, int]:
    """Row counts per ingestion table, for status reporting."""
    row = await conn.fetchrow(
        """
        SELECT
            (SELECT COUNT(*) FROM fixtures) AS fixtures,
            (SELECT COUNT(*) FROM players) AS players,
            (SELECT COUNT(*) FROM batting_performances) AS batting_performances,
            (SELECT COUNT(*) FROM bowling_performances) AS bowling_performances,
            (SELECT COUNT(*) FROM fielding_performances) AS fielding_performances,
            (SELECT COUNT(*) FROM fantasy_scores) AS fantasy_scores,
            (SELECT COUNT(DISTINCT fixture_id) FROM fantasy_scores) AS scored_fixtures
        """
    )
    return {key: int(value or 0) for key, value in dict(row).items()} if row else {}
