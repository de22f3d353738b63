#!/usr/bin/env python
"""
Scheduled ingestion job for cricket fantasy data.

Run every 5 minutes via Supercronic (see backend/crontab).

Actions:
1. fetch-initial-data - League fixtures and configured team squads
2. check-and-update   - Classify stored fixtures; fetch and score the ones
                        that are live or finished without batting data

Usage:
    python -m scripts.scheduled_update                               # check-and-update
    python -m scripts.scheduled_update --action fetch-initial-data   # initial sync
    python -m scripts.scheduled_update --dry-run                     # classify only
    python -m scripts.scheduled_update --fixture-id 43210            # one fixture
    python -m scripts.scheduled_update --status                      # stored row counts

Only one run executes at a time: a second invocation while the advisory lock
is held logs a warning and exits without doing anything. A fixture that fails
to backfill stays "completed_missing_data" and is retried on the next run.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any

import asyncpg
from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cricket_fantasy.config import Settings, get_settings
from cricket_fantasy.db import advisory_lock
from cricket_fantasy.errors import ConfigurationError
from cricket_fantasy.services.ingestion import IngestionService
from cricket_fantasy.services.persistence import count_rows
from cricket_fantasy.services.sportmonks_client import SportmonksClient

# Load environment
load_dotenv(".env.local")
load_dotenv(".env")

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

ACTION_FETCH_INITIAL_DATA = "fetch-initial-data"
ACTION_CHECK_AND_UPDATE = "check-and-update"
ACTIONS = (ACTION_FETCH_INITIAL_DATA, ACTION_CHECK_AND_UPDATE)

# Advisory lock key to prevent concurrent scheduled updates
# Using a fixed large number unlikely to collide with other locks
SCHEDULED_UPDATE_LOCK_KEY = 999_999_101


async def create_pool(settings: Settings) -> asyncpg.Pool:
    """Create database pool with settings suited to PgBouncer.

    Key settings:
    - statement_cache_size=0: Required for PgBouncer transaction mode
    - max_size: one connection holds the advisory lock, the rest serve
      concurrent fixtures
    """
    db_url = settings.db_connection_string
    if not db_url:
        raise ConfigurationError(
            "DATABASE_URL is not set; the scheduled update needs a database"
        )

    return await asyncpg.create_pool(
        db_url,
        min_size=1,
        max_size=settings.max_concurrent_fixtures + 2,
        command_timeout=120,
        statement_cache_size=0,  # Required for PgBouncer transaction mode
    )


async def run_action(
    action: str,
    settings: Settings,
    fixture_id: int | None = None,
    dry_run: bool = False,
) -> dict[str, Any]:
    """
    Run one ingestion action under the single-flight lock.

    Args:
        action: One of ACTIONS (ignored when fixture_id is given)
        settings: Application settings
        fixture_id: Process only this fixture
        dry_run: For check-and-update, classify without fetching

    Returns:
        JSON-serializable summary of the run
    """
    # Fail before touching the network or the database
    api_token = settings.require_api_token()

    pool = await create_pool(settings)
    try:
        async with pool.acquire() as lock_conn:
            async with advisory_lock(lock_conn, SCHEDULED_UPDATE_LOCK_KEY) as acquired:
                if not acquired:
                    logger.warning(
                        "Another scheduled update is already running, skipping this run"
                    )
                    return {"action": action, "skipped": True}

                async with SportmonksClient(
                    api_token,
                    base_url=settings.sportmonks_api_base_url,
                    timeout=settings.provider_timeout_seconds,
                ) as client:
                    service = IngestionService(client, pool, settings)

                    if fixture_id is not None:
                        logger.info(f"Processing fixture {fixture_id} on demand")
                        result = await service.process_fixture(fixture_id)
                        return {"action": "process-fixture", **vars(result)}

                    if action == ACTION_FETCH_INITIAL_DATA:
                        summary = await service.sync_initial_data()
                    else:
                        summary = await service.check_and_update(dry_run=dry_run)

                    return {"action": action, **summary.to_dict()}
    except Exception as e:
        logger.error(f"Scheduled update failed: {e}", exc_info=True)
        raise
    finally:
        await pool.close()


async def show_status(settings: Settings) -> dict[str, int]:
    """Print and return stored row counts."""
    pool = await create_pool(settings)
    try:
        async with pool.acquire() as conn:
            counts = await count_rows(conn)
    except asyncpg.PostgresError as e:
        logger.error(f"Database error checking status: {e}")
        raise
    finally:
        await pool.close()

    print("\nIngestion Status")
    print("-" * 40)
    for table, count in counts.items():
        print(f"{table:<24} {count}")
    print("-" * 40)
    return counts


def build_parser() -> argparse.ArgumentParser:
    """Command line interface for the scheduled job."""
    parser = argparse.ArgumentParser(description="Scheduled cricket fantasy ingestion")
    parser.add_argument(
        "--action",
        choices=ACTIONS,
        default=ACTION_CHECK_AND_UPDATE,
        help="Which ingestion action to run (default: check-and-update)",
    )
    parser.add_argument(
        "--fixture-id",
        type=int,
        default=None,
        help="Fetch and score a single fixture regardless of its state",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Classify fixtures without fetching or writing",
    )
    parser.add_argument(
        "--status", action="store_true", help="Show stored row counts"
    )
    return parser


async def main(argv: list[str] | None = None) -> None:
    """Main entry point with argument parsing."""
    args = build_parser().parse_args(argv)
    settings = get_settings()

    if args.status:
        await show_status(settings)
        return

    timeout = settings.scheduled_update_timeout_seconds
    try:
        result = await asyncio.wait_for(
            run_action(
                args.action,
                settings,
                fixture_id=args.fixture_id,
                dry_run=args.dry_run,
            ),
            timeout=timeout,
        )
    except TimeoutError as e:
        logger.error(
            f"Scheduled update timed out after {timeout}s. "
            "Check provider responsiveness and database performance."
        )
        raise RuntimeError(f"Update timed out after {timeout}s") from e

    logger.info(f"Scheduled update finished: {result}")
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    asyncio.run(main())
