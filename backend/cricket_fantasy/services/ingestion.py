"""Ingestion orchestration: initial fixture/squad sync and the lifecycle scan.

Two entry points mirror the scheduled job's actions:

- ``sync_initial_data`` (fetch-initial-data): fixtures and squads for the
  configured league season.
- ``check_and_update`` (check-and-update): classify every stored fixture and
  fetch provider data for the ones that are live or finished without data.

Per-fixture work (``process_fixture``) fetches everything from the provider
first, then writes rows one upsert at a time on a single connection, then
reads the stored rows back and scores them. A failing upsert is counted and
skipped; it never aborts the fixture or the run.
"""

import asyncio
import logging
import re
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import asyncpg

from cricket_fantasy.config import Settings, get_settings
from cricket_fantasy.errors import PersistenceError, ProviderError
from cricket_fantasy.services.fielding import attribute_fielding_from_payload
from cricket_fantasy.services.lifecycle import FixtureState, classify_fixture
from cricket_fantasy.services.normalizer import (
    normalize_batting_listing,
    normalize_bowling_listing,
)
from cricket_fantasy.services.persistence import (
    FixtureRow,
    fetch_fixture_performances,
    list_fixture_schedule,
    upsert_batting,
    upsert_bowling,
    upsert_fantasy_score,
    upsert_fielding,
    upsert_fixture,
    upsert_player,
)
from cricket_fantasy.services.scoring import score_fixture
from cricket_fantasy.services.sportmonks_client import RawPlayer, SportmonksClient

logger = logging.getLogger(__name__)

ROUND_NUMBER_PATTERN = re.compile(r"^\s*(\d+)")


# =============================================================================
# Result types
# =============================================================================


@dataclass
class SyncSummary:
    """Outcome of a fetch-initial-data run."""

    fixtures_fetched: int = 0
    players_fetched: int = 0
    fixtures_saved: int = 0
    players_saved: int = 0
    fixture_errors: int = 0
    player_errors: int = 0
    teams_failed: list[int] = field(default_factory=list)

    @property
    def write_failures(self) -> int:
        return self.fixture_errors + self.player_errors

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "write_failures": self.write_failures}


@dataclass
class FixtureResult:
    """Outcome of processing one fixture."""

    fixture_id: int
    batting_rows: int = 0
    bowling_rows: int = 0
    fielding_rows: int = 0
    scores_written: int = 0
    write_failures: int = 0


@dataclass
class UpdateSummary:
    """Outcome of a check-and-update lifecycle scan."""

    total_fixtures: int = 0
    live_updated: int = 0
    backfilled: int = 0
    still_missing: int = 0
    already_complete: int = 0
    scheduled: int = 0
    failed: int = 0
    write_failures: int = 0
    failed_fixture_ids: list[int] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# Provider payload helpers
# =============================================================================


def parse_round(label: Any) -> int | None:
    """Extract the leading number from a round label ("48th Match" -> 48)."""
    if label is None:
        return None
    match = ROUND_NUMBER_PATTERN.match(str(label))
    return int(match.group(1)) if match else None


def parse_start_time(value: Any) -> datetime | None:
    """Parse a provider timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_fixture_row(raw: dict[str, Any]) -> FixtureRow:
    """Map a provider fixture onto the stored fixture shape."""
    return FixtureRow(
        id=int(raw["id"]),
        round=parse_round(raw.get("round")),
        local_team_id=raw.get("localteam_id"),
        visitor_team_id=raw.get("visitorteam_id"),
        starting_at=parse_start_time(raw.get("starting_at")),
    )


# =============================================================================
# Service
# =============================================================================


class IngestionService:
    """Drives provider fetches, normalization, scoring and persistence."""

    def __init__(
        self,
        client: SportmonksClient,
        pool: asyncpg.Pool,
        settings: Settings | None = None,
    ):
        self.client = client
        self.pool = pool
        self.settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # fetch-initial-data
    # -------------------------------------------------------------------------

    async def _fetch_squads(self, summary: SyncSummary) -> list[RawPlayer]:
        """Fetch every configured team's squad, skipping teams that fail."""
        players: list[RawPlayer] = []
        for index, team_id in enumerate(self.settings.team_ids_list):
            if index > 0:
                await asyncio.sleep(self.settings.squad_fetch_delay_seconds)
            try:
                squad = await self.client.get_squad(team_id, self.settings.season_id)
            except ProviderError as e:
                logger.error(f"Failed to fetch squad for team {team_id}, skipping: {e}")
                summary.teams_failed.append(team_id)
                continue
            logger.info(f"Fetched {len(squad)} players for team {team_id}")
            players.extend(squad)
        return players

    async def sync_initial_data(self) -> SyncSummary:
        """
        Fetch fixtures and squads and upsert them.

        Raises:
            ProviderError: The fixture list could not be fetched. Squad
                failures only skip the affected team.
        """
        summary = SyncSummary()
        league_id = self.settings.league_id
        season_id = self.settings.season_id

        logger.info(f"Fetching fixtures for league {league_id}, season {season_id}...")
        fixtures = await self.client.get_fixtures(league_id, season_id)
        summary.fixtures_fetched = len(fixtures)
        logger.info(f"Fetched {len(fixtures)} fixtures from provider")

        players = await self._fetch_squads(summary)
        summary.players_fetched = len(players)
        logger.info(f"Fetched {len(players)} players from provider")

        async with self.pool.acquire() as conn:
            for raw in fixtures:
                try:
                    row = to_fixture_row(raw)
                except (KeyError, TypeError, ValueError) as e:
                    logger.error(f"Skipping malformed fixture payload: {e!r}")
                    summary.fixture_errors += 1
                    continue
                try:
                    await upsert_fixture(conn, row)
                    summary.fixtures_saved += 1
                except PersistenceError as e:
                    logger.error(str(e))
                    summary.fixture_errors += 1

            for player in players:
                try:
                    await upsert_player(conn, player)
                    summary.players_saved += 1
                except PersistenceError as e:
                    logger.error(str(e))
                    summary.player_errors += 1

        logger.info(
            f"Initial data sync complete: "
            f"{summary.fixtures_saved}/{summary.fixtures_fetched} fixtures "
            f"({summary.fixture_errors} errors), "
            f"{summary.players_saved}/{summary.players_fetched} players "
            f"({summary.player_errors} errors), "
            f"{len(summary.teams_failed)} teams skipped"
        )
        return summary

    # -------------------------------------------------------------------------
    # Per-fixture processing
    # -------------------------------------------------------------------------

    async def process_fixture(self, fixture_id: int) -> FixtureResult:
        """
        Fetch, store and score one fixture's performances.

        Raises:
            ProviderError: Any of the three provider fetches failed. Nothing
                has been written in that case.
        """
        batting_raw = await self.client.get_fixture_include(fixture_id, "batting")
        bowling_raw = await self.client.get_fixture_include(fixture_id, "bowling")
        balls_raw = await self.client.get_fixture_include(fixture_id, "balls")

        batting = normalize_batting_listing(batting_raw, fixture_id)
        bowling = normalize_bowling_listing(bowling_raw, fixture_id)
        fielding = attribute_fielding_from_payload(balls_raw)
        logger.debug(
            f"Fixture {fixture_id}: {len(batting)} batting, {len(bowling)} bowling, "
            f"{len(fielding)} fielding records from {len(balls_raw)} balls"
        )

        result = FixtureResult(fixture_id=fixture_id)
        async with self.pool.acquire() as conn:
            for record in batting:
                if await self._write(upsert_batting(conn, fixture_id, record), result):
                    result.batting_rows += 1
            for record in bowling:
                if await self._write(upsert_bowling(conn, fixture_id, record), result):
                    result.bowling_rows += 1
            for player_id, counters in fielding.items():
                if await self._write(
                    upsert_fielding(conn, fixture_id, player_id, counters), result
                ):
                    result.fielding_rows += 1

            # Score from what was actually stored, not from the in-memory records
            stored = await fetch_fixture_performances(conn, fixture_id)
            for player_id, score in score_fixture(stored.batting, stored.bowling, stored.fielding):
                if await self._write(
                    upsert_fantasy_score(conn, fixture_id, player_id, score), result
                ):
                    result.scores_written += 1

        logger.info(
            f"Fixture {fixture_id} processed: {result.scores_written} scores, "
            f"{result.write_failures} write failures"
        )
        return result

    @staticmethod
    async def _write(upsert: Any, result: FixtureResult) -> bool:
        """Await one upsert, counting a PersistenceError instead of raising."""
        try:
            await upsert
        except PersistenceError as e:
            logger.error(str(e))
            result.write_failures += 1
            return False
        return True

    async def _process_with_timeout(
        self, fixture_id: int, semaphore: asyncio.Semaphore
    ) -> FixtureResult | None:
        """
        Process a fixture under the per-fixture timeout. None means skipped.

        Any failure is confined to its fixture so the rest of the scan
        still runs and the summary is still produced.
        """
        async with semaphore:
            try:
                return await asyncio.wait_for(
                    self.process_fixture(fixture_id),
                    timeout=self.settings.fixture_timeout_seconds,
                )
            except TimeoutError:
                logger.error(
                    f"Fixture {fixture_id} timed out after "
                    f"{self.settings.fixture_timeout_seconds}s, skipping until next run"
                )
            except ProviderError as e:
                logger.error(f"Provider error for fixture {fixture_id}, skipping: {e}")
            except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
                logger.error(f"Database error for fixture {fixture_id}, skipping: {e}")
            except Exception as e:
                logger.error(
                    f"Unexpected error for fixture {fixture_id}, skipping: {e}", exc_info=True
                )
            return None

    # -------------------------------------------------------------------------
    # check-and-update
    # -------------------------------------------------------------------------

    async def check_and_update(
        self, now: datetime | None = None, dry_run: bool = False
    ) -> UpdateSummary:
        """
        Run one lifecycle scan over every stored fixture.

        Live fixtures are always refetched; finished fixtures without batting
        data are backfilled; everything else is left alone.

        Args:
            now: Scan time (defaults to the current UTC time)
            dry_run: Classify and report without fetching anything

        Returns:
            Counts per lifecycle bucket
        """
        now = now or datetime.now(UTC)
        match_duration = timedelta(hours=self.settings.match_duration_hours)

        async with self.pool.acquire() as conn:
            schedule = await list_fixture_schedule(conn)

        summary = UpdateSummary(total_fixtures=len(schedule), dry_run=dry_run)
        if not schedule:
            logger.info("No fixtures found in database. Run fetch-initial-data first.")
            return summary

        to_fetch: list[tuple[int, FixtureState]] = []
        for fixture in schedule:
            state = classify_fixture(
                fixture.starting_at, now, fixture.has_batting_data, match_duration
            )
            if state.needs_fetch:
                logger.info(f"Fixture {fixture.fixture_id} is {state.value}")
                to_fetch.append((fixture.fixture_id, state))
            elif state is FixtureState.SCHEDULED:
                summary.scheduled += 1
            else:
                summary.already_complete += 1

        if dry_run:
            for _, state in to_fetch:
                if state is FixtureState.LIVE:
                    summary.live_updated += 1
                else:
                    summary.backfilled += 1
            logger.info(f"[DRY RUN] Would fetch {len(to_fetch)} fixtures")
            return summary

        semaphore = asyncio.Semaphore(self.settings.max_concurrent_fixtures)
        results = await asyncio.gather(
            *(self._process_with_timeout(fixture_id, semaphore) for fixture_id, _ in to_fetch)
        )

        for (fixture_id, state), result in zip(to_fetch, results):
            if result is None:
                summary.failed += 1
                summary.failed_fixture_ids.append(fixture_id)
                continue
            summary.write_failures += result.write_failures
            if state is FixtureState.LIVE:
                summary.live_updated += 1
            elif result.batting_rows > 0:
                summary.backfilled += 1
            else:
                logger.warning(
                    f"Fixture {fixture_id} finished but the provider returned no batting data"
                )
                summary.still_missing += 1

        logger.info(
            f"Update summary: {summary.already_complete} fixtures with data, "
            f"{summary.live_updated} live updated, {summary.backfilled} backfilled, "
            f"{summary.still_missing} still missing data, "
            f"{summary.scheduled} scheduled, {summary.failed} failed"
        )
        return summary
