#!/usr/bin/env python
"""
Apply the SQL files in backend/migrations in name order.

Usage:
    python -m scripts.migrate             # Apply pending migrations
    python -m scripts.migrate --status    # Show applied / pending
    python -m scripts.migrate --dry-run   # List what would be applied

Each file runs in its own transaction together with its bookkeeping row, so
a failing migration leaves no partial schema and is retried on the next run.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

import asyncpg
from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cricket_fantasy.config import get_settings
from cricket_fantasy.errors import ConfigurationError

# Load local environment
load_dotenv(".env.local")
load_dotenv(".env")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent.parent / "migrations"
MIGRATIONS_TABLE = "schema_migrations"


async def connect() -> asyncpg.Connection:
    """Open a single connection using the configured DATABASE_URL."""
    db_url = get_settings().db_connection_string
    if not db_url:
        raise ConfigurationError("DATABASE_URL is not set; cannot run migrations")
    return await asyncpg.connect(db_url, statement_cache_size=0)


def migration_files(directory: Path = MIGRATIONS_DIR) -> list[Path]:
    """SQL files in apply order."""
    return sorted(directory.glob("*.sql"))


async def applied_migrations(conn: asyncpg.Connection) -> set[str]:
    """Names of migrations already recorded, creating the table on first use."""
    await conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
            name TEXT PRIMARY KEY,
            applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """
    )
    rows = await conn.fetch(f"SELECT name FROM {MIGRATIONS_TABLE}")
    return {row["name"] for row in rows}


async def pending_migrations(conn: asyncpg.Connection) -> list[Path]:
    applied = await applied_migrations(conn)
    return [path for path in migration_files() if path.name not in applied]


async def apply_migration(conn: asyncpg.Connection, path: Path) -> None:
    """Run one migration file and record it atomically."""
    async with conn.transaction():
        await conn.execute(path.read_text())
        await conn.execute(
            f"INSERT INTO {MIGRATIONS_TABLE} (name) VALUES ($1)", path.name
        )


async def migrate(conn: asyncpg.Connection, dry_run: bool = False) -> list[str]:
    """
    Apply every pending migration.

    Returns:
        Names of the migrations applied (or that would be, for a dry run)
    """
    pending = await pending_migrations(conn)
    if not pending:
        logger.info("Schema is up to date")
        return []

    names = [path.name for path in pending]
    if dry_run:
        logger.info(f"[DRY RUN] Would apply: {', '.join(names)}")
        return names

    for path in pending:
        logger.info(f"Applying {path.name}")
        try:
            await apply_migration(conn, path)
        except asyncpg.PostgresError as e:
            logger.error(f"Migration {path.name} failed: {e}")
            raise

    logger.info(f"Applied {len(names)} migration(s)")
    return names


async def show_status(conn: asyncpg.Connection) -> None:
    applied = await applied_migrations(conn)
    files = migration_files()

    print("Migration Status:")
    print("-" * 50)
    for path in files:
        state = "applied" if path.name in applied else "pending"
        print(f"  {state:<8} {path.name}")
    print("-" * 50)
    pending = sum(1 for path in files if path.name not in applied)
    print(f"Applied: {len(files) - pending}, Pending: {pending}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Database migration runner")
    parser.add_argument("--status", action="store_true", help="Show migration status")
    parser.add_argument(
        "--dry-run", action="store_true", help="List pending migrations without applying"
    )
    args = parser.parse_args()

    try:
        conn = await connect()
    except (ConfigurationError, asyncpg.PostgresError, OSError) as e:
        logger.error(f"Failed to connect to database: {e}")
        sys.exit(1)

    try:
        if args.status:
            await show_status(conn)
        else:
            await migrate(conn, dry_run=args.dry_run)
    finally:
        await conn.close()


if __name__ == "__main__":
    asyncio.run(main())
