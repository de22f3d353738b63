"""Tests for provider payload normalization."""

import pytest

from cricket_fantasy.services.normalizer import (
    BattingRecord,
    BowlingRecord,
    calculate_strike_rate,
    normalize_batting,
    normalize_batting_listing,
    normalize_bowling,
    normalize_bowling_listing,
)


class TestStrikeRate:
    """Tests for calculate_strike_rate."""

    @pytest.mark.parametrize(
        "runs,balls,expected",
        [
            (52, 30, 52 * 100 / 30),
            (0, 5, 0.0),
            (10, 0, 0.0),
            (0, 0, 0.0),
        ],
    )
    def test_strike_rate(self, runs, balls, expected):
        assert calculate_strike_rate(runs, balls) == pytest.approx(expected)


class TestNormalizeBatting:
    """Tests for batting record normalization."""

    def test_top_level_provider_names(self):
        """Provider names (score, ball, four_x, six_x) map to canonical fields."""
        record = {"player_id": 11, "score": 52, "ball": 30, "four_x": 5, "six_x": 2}

        result = normalize_batting(record)

        assert result == BattingRecord(
            player_id=11,
            runs_scored=52,
            balls_faced=30,
            boundaries=5,
            sixes=2,
            strike_rate=pytest.approx(173.333, rel=1e-4),
        )

    def test_attribute_fallback_names(self):
        """Alternative names nested under attributes should be used."""
        record = {
            "player_id": 11,
            "attributes": {"runs": 24, "balls": 12, "fours": 3, "sixes": 1},
        }

        result = normalize_batting(record)

        assert result.runs_scored == 24
        assert result.balls_faced == 12
        assert result.boundaries == 3
        assert result.sixes == 1
        assert result.strike_rate == pytest.approx(200.0)

    def test_top_level_wins_over_attributes(self):
        record = {"player_id": 3, "score": 9, "attributes": {"runs": 99}}

        assert normalize_batting(record).runs_scored == 9

    def test_missing_and_malformed_values_default_to_zero(self):
        """None, empty strings and junk should become 0."""
        record = {"player_id": "7", "score": None, "ball": "", "four_x": "n/a", "six_x": "2.0"}

        result = normalize_batting(record)

        assert result.player_id == 7
        assert result.runs_scored == 0
        assert result.balls_faced == 0
        assert result.boundaries == 0
        assert result.sixes == 2
        assert result.strike_rate == 0.0

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), "inf", "1e400", float("nan")])
    def test_non_finite_values_default_to_zero(self, value):
        """Infinite or NaN figures become 0 instead of raising."""
        record = {"player_id": 7, "score": value, "ball": value, "four_x": 1, "six_x": value}

        result = normalize_batting(record)

        assert result.runs_scored == 0
        assert result.balls_faced == 0
        assert result.boundaries == 1
        assert result.sixes == 0
        assert result.strike_rate == 0.0

    def test_missing_player_id_returns_none(self):
        assert normalize_batting({"score": 10}) is None


class TestNormalizeBowling:
    """Tests for bowling record normalization."""

    def test_provider_names(self):
        """medians and rate are the provider's names for maidens and economy."""
        record = {
            "player_id": 21,
            "overs": 4,
            "runs": 18,
            "wickets": 4,
            "medians": 1,
            "rate": 4.5,
        }

        assert normalize_bowling(record) == BowlingRecord(
            player_id=21,
            overs_bowled=4.0,
            runs_conceded=18,
            wickets=4,
            maiden_overs=1,
            economy=4.5,
        )

    def test_alternative_names(self):
        record = {"player_id": 21, "attributes": {"maidens": 2, "economy": "6.25"}}

        result = normalize_bowling(record)

        assert result.maiden_overs == 2
        assert result.economy == 6.25
        assert result.overs_bowled == 0.0

    def test_non_finite_economy_defaults_to_zero(self):
        record = {"player_id": 21, "overs": "inf", "runs": float("inf"), "rate": float("nan")}

        result = normalize_bowling(record)

        assert result.overs_bowled == 0.0
        assert result.runs_conceded == 0
        assert result.economy == 0.0

    def test_missing_player_id_returns_none(self):
        assert normalize_bowling({"player_id": None, "wickets": 3}) is None


class TestListings:
    """Tests for whole-fixture listings."""

    def test_batting_last_record_wins(self):
        """A player listed twice keeps the later figures."""
        records = [
            {"player_id": 1, "score": 10, "ball": 8},
            {"player_id": 2, "score": 4, "ball": 3},
            {"player_id": 1, "score": 35, "ball": 20},
        ]

        result = normalize_batting_listing(records, fixture_id=500)

        assert len(result) == 2
        by_player = {r.player_id: r for r in result}
        assert by_player[1].runs_scored == 35

    def test_records_without_player_are_skipped(self, caplog):
        records = [{"score": 12}, {"player_id": 4, "wickets": 1}]

        result = normalize_bowling_listing(records, fixture_id=500)

        assert [r.player_id for r in result] == [4]
        assert "without player_id" in caplog.text

    def test_empty_listing(self):
        assert normalize_batting_listing([], fixture_id=1) == []
