"""Tests for fixture lifecycle classification."""

from datetime import UTC, datetime, timedelta

import pytest

from cricket_fantasy.services.lifecycle import FixtureState, classify_fixture

START = datetime(2024, 3, 22, 14, 0, tzinfo=UTC)


class TestClassifyFixture:
    """Tests for classify_fixture."""

    def test_before_start_is_scheduled(self):
        now = START - timedelta(minutes=1)

        assert classify_fixture(START, now, has_batting_data=False) == FixtureState.SCHEDULED

    def test_one_hour_in_is_live(self):
        now = START + timedelta(hours=1)

        assert classify_fixture(START, now, has_batting_data=False) == FixtureState.LIVE
        assert classify_fixture(START, now, has_batting_data=True) == FixtureState.LIVE

    @pytest.mark.parametrize("offset", [timedelta(0), timedelta(hours=4)])
    def test_window_edges_are_live(self, offset):
        """Both the start instant and the end instant count as live."""
        assert classify_fixture(START, START + offset, False) == FixtureState.LIVE

    def test_after_window_without_data(self):
        now = START + timedelta(hours=5)

        assert classify_fixture(START, now, False) == FixtureState.COMPLETED_MISSING_DATA

    def test_after_window_with_data(self):
        now = START + timedelta(hours=5)

        assert classify_fixture(START, now, True) == FixtureState.COMPLETED_WITH_DATA

    def test_unknown_start_is_scheduled(self):
        assert classify_fixture(None, START, False) == FixtureState.SCHEDULED

    def test_naive_datetimes_treated_as_utc(self):
        naive_start = START.replace(tzinfo=None)

        assert classify_fixture(naive_start, START + timedelta(hours=1), False) == FixtureState.LIVE

    def test_custom_match_duration(self):
        now = START + timedelta(hours=5)

        state = classify_fixture(START, now, False, match_duration=timedelta(hours=8))

        assert state == FixtureState.LIVE


class TestNeedsFetch:
    """Only live and incomplete fixtures should trigger provider calls."""

    @pytest.mark.parametrize(
        "state,expected",
        [
            (FixtureState.SCHEDULED, False),
            (FixtureState.LIVE, True),
            (FixtureState.COMPLETED_MISSING_DATA, True),
            (FixtureState.COMPLETED_WITH_DATA, False),
        ],
    )
    def test_needs_fetch(self, state, expected):
        assert state.needs_fetch is expected
