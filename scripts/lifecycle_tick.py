#!/usr/bin/env python3
"""
Run one pass of the challenge lifecycle.

Active challenges whose deadline has passed move to judging (or are
cancelled when nobody entered). Meant to be invoked by cron or any other
external scheduler.

Usage:
    python scripts/lifecycle_tick.py
    python scripts/lifecycle_tick.py --log-level DEBUG
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from portal.challenges.lifecycle import challenge_lifecycle_tick
from portal.challenges.exceptions import ChallengeServiceError
from portal.infrastructure.database.session import close_db, get_db_session, get_session_factory
from portal.notifications.service import NotificationDispatcher
from portal.shared.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


async def main(log_level: str = "INFO") -> int:
    """Run the tick once and report what changed."""
    configure_logging(level=log_level, json_format=False)
    notifier = NotificationDispatcher(get_session_factory())

    try:
        async with get_db_session() as session:
            result = await challenge_lifecycle_tick(session, notifier)
    except ChallengeServiceError as e:
        logger.error("lifecycle_tick_failed", error_type=e.error_type, error=e.message)
        return 1
    finally:
        await close_db()

    logger.info(
        "lifecycle_tick_complete",
        transitioned=len(result["transitioned"]),
        checked_at=result["checked_at"],
    )
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run one challenge lifecycle pass")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    args = parser.parse_args()

    exit_code = asyncio.run(main(log_level=args.log_level))
    sys.exit(exit_code)
