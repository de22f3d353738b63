"""Fixture lifecycle classification.

A fixture's state is never stored. It is recomputed on every scan from the
clock and from whether batting rows exist yet, so a live fixture becomes
"completed" simply because a later scan runs after its window has closed.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

DEFAULT_MATCH_DURATION = timedelta(hours=4)


class FixtureState(str, Enum):
    """Where a fixture is in its lifecycle, as seen by one scan."""

    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED_MISSING_DATA = "completed_missing_data"
    COMPLETED_WITH_DATA = "completed_with_data"

    @property
    def needs_fetch(self) -> bool:
        """Whether a scan should (re)fetch provider data in this state."""
        return self in (FixtureState.LIVE, FixtureState.COMPLETED_MISSING_DATA)


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so comparisons never raise."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def classify_fixture(
    start_time: datetime | None,
    now: datetime,
    has_batting_data: bool,
    match_duration: timedelta = DEFAULT_MATCH_DURATION,
) -> FixtureState:
    """
    Classify a fixture for one lifecycle scan.

    Args:
        start_time: Scheduled start. Unknown start times are treated as
            not yet started.
        now: Wall-clock time of the scan
        has_batting_data: Whether any batting row is stored for the fixture
        match_duration: Length of the live window after the start time

    Returns:
        The fixture's current FixtureState
    """
    if start_time is None:
        return FixtureState.SCHEDULED

    start = _as_utc(start_time)
    now = _as_utc(now)
    end = start + match_duration

    if now < start:
        return FixtureState.SCHEDULED
    if now <= end:
        return FixtureState.LIVE
    if has_batting_data:
        return FixtureState.COMPLETED_WITH_DATA
    return FixtureState.COMPLETED_MISSING_DATA
