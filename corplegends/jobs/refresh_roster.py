"""
Refresh the roster cache.

Fetches the roster from the configured sources and stores it in the roster
cache, so later sessions start from it when every source is unreachable.
"""

import asyncio
import logging

from corplegends.db.database import init_db
from corplegends.services.roster_provider import get_roster_provider

logger = logging.getLogger(__name__)


async def run_refresh() -> int:
    """Fetch the roster and write the cache. Returns the card count."""
    await init_db()
    logger.info("Refreshing roster...")

    try:
        roster = await get_roster_provider().refresh()
    except Exception as e:
        logger.error("Failed to refresh roster: %s", e)
        raise

    logger.info("Roster ready with %d cards", len(roster))
    return len(roster)


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_refresh())


if __name__ == "__main__":
    main()
