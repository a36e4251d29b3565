#!/usr/bin/env python3
"""
Initialize the portal database.

This script:
1. Applies Alembic migrations
2. Verifies the database is reachable

Usage:
    python scripts/init_db.py
"""

import asyncio
import subprocess
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from portal.infrastructure.database.session import close_db, init_db
from portal.shared.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

DATABASE_DIR = Path(__file__).parent.parent / "portal" / "infrastructure" / "database"


def run_alembic_migrations() -> bool:
    """Run Alembic database migrations."""
    logger.info("running_alembic_migrations")
    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            cwd=DATABASE_DIR,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        logger.error("alembic_not_found")
        return False
    if result.returncode != 0:
        logger.error("alembic_migration_failed", stderr=result.stderr)
        return False
    logger.info("alembic_migrations_complete")
    return True


async def main() -> int:
    """Main initialization function."""
    configure_logging(level="INFO", json_format=False)

    if not run_alembic_migrations():
        return 1

    try:
        await init_db()
    finally:
        await close_db()

    logger.info("database_initialized")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
