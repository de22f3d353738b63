"""Tests for the persistence layer with a mocked asyncpg connection."""

from datetime import UTC, datetime

import asyncpg
import pytest

from cricket_fantasy.errors import PersistenceError
from cricket_fantasy.services.fielding import FieldingCounters
from cricket_fantasy.services.normalizer import BattingRecord
from cricket_fantasy.services.persistence import (
    FixtureRow,
    _changed,
    count_rows,
    fetch_fixture_performances,
    list_fixture_schedule,
    upsert_batting,
    upsert_fantasy_score,
    upsert_fielding,
    upsert_fixture,
    upsert_player,
)
from cricket_fantasy.services.scoring import ScoreBreakdown
from cricket_fantasy.services.sportmonks_client import RawPlayer


class TestChanged:
    """Tests for command status parsing."""

    @pytest.mark.parametrize(
        "status,expected",
        [("INSERT 0 1", True), ("INSERT 0 0", False), ("", False), (None, False)],
    )
    def test_changed(self, status, expected):
        assert _changed(status) is expected


class TestUpserts:
    """Tests for the upsert helpers."""

    async def test_upsert_fixture_is_keyed_on_id(self, mock_conn):
        fixture = FixtureRow(
            id=101,
            round=1,
            local_team_id=2,
            visitor_team_id=3,
            starting_at=datetime(2024, 3, 22, 14, 30, tzinfo=UTC),
        )

        changed = await upsert_fixture(mock_conn, fixture)

        assert changed is True
        query, *args = mock_conn.execute.call_args.args
        assert "ON CONFLICT (id) DO UPDATE" in query
        assert "IS DISTINCT FROM" in query
        assert args == [101, 1, 2, 3, fixture.starting_at]

    async def test_same_values_report_unchanged(self, mock_conn):
        """The distinct-from guard yields INSERT 0 0 for identical rows."""
        mock_conn.execute.return_value = "INSERT 0 0"

        changed = await upsert_player(
            mock_conn, RawPlayer(id=55, name="V Kohli", team_id=2, role=None, photo_url=None)
        )

        assert changed is False

    async def test_batting_keyed_on_fixture_and_player(self, mock_conn):
        record = BattingRecord(player_id=7, runs_scored=30, balls_faced=20, strike_rate=150.0)

        await upsert_batting(mock_conn, 500, record)

        query, *args = mock_conn.execute.call_args.args
        assert "ON CONFLICT (fixture_id, player_id)" in query
        assert args[:3] == [500, 7, 30]

    async def test_fielding_writes_every_counter(self, mock_conn):
        counters = FieldingCounters(catches=2, dot_balls=9, lbw_bowled_wickets=1)

        await upsert_fielding(mock_conn, 500, 7, counters)

        _, *args = mock_conn.execute.call_args.args
        assert args == [500, 7, 2, 0, 0, 0, 9, 1]

    async def test_driver_error_wrapped(self, mock_conn):
        """asyncpg errors surface as PersistenceError with table and key."""
        mock_conn.execute.side_effect = asyncpg.ForeignKeyViolationError("missing player")

        with pytest.raises(PersistenceError) as exc_info:
            await upsert_fantasy_score(mock_conn, 500, 7, ScoreBreakdown(1, 2, 3, 10))

        assert exc_info.value.table == "fantasy_scores"
        assert exc_info.value.key == (500, 7)
        assert isinstance(exc_info.value.cause, asyncpg.ForeignKeyViolationError)


class TestReads:
    """Tests for read-backs."""

    async def test_fetch_fixture_performances(self, mock_conn):
        mock_conn.fetch.side_effect = [
            [
                {
                    "player_id": 1,
                    "runs_scored": 40,
                    "balls_faced": 25,
                    "boundaries": 4,
                    "sixes": 1,
                    "strike_rate": 160.0,
                }
            ],
            [
                {
                    "player_id": 2,
                    "overs_bowled": 4.0,
                    "runs_conceded": 30,
                    "wickets": 2,
                    "maiden_overs": 0,
                    "economy": 7.5,
                }
            ],
            [
                {
                    "player_id": 3,
                    "catches": 1,
                    "stumpings": 0,
                    "direct_runouts": 0,
                    "indirect_runouts": 0,
                    "dot_balls": 0,
                    "lbw_bowled_wickets": None,
                }
            ],
        ]

        performances = await fetch_fixture_performances(mock_conn, 500)

        assert performances.batting[0].runs_scored == 40
        assert performances.bowling[0].economy == 7.5
        assert performances.fielding[3] == FieldingCounters(catches=1)
        assert mock_conn.fetch.call_count == 3

    async def test_list_fixture_schedule(self, mock_conn):
        start = datetime(2024, 3, 22, 14, 30, tzinfo=UTC)
        mock_conn.fetch.return_value = [
            {"id": 101, "starting_at": start, "has_batting_data": True},
            {"id": 102, "starting_at": None, "has_batting_data": False},
        ]

        fixtures = await list_fixture_schedule(mock_conn)

        assert [(f.fixture_id, f.has_batting_data) for f in fixtures] == [
            (101, True),
            (102, False),
        ]
        assert fixtures[1].starting_at is None

    async def test_count_rows(self, mock_conn):
        mock_conn.fetchrow.return_value = {"fixtures": 74, "players": 250, "fantasy_scores": None}

        counts = await count_rows(mock_conn)

        assert counts == {"fixtures": 74, "players": 250, "fantasy_scores": 0}
