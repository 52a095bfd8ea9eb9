#!/usr/bin/env python3
"""
Seed script for Campus Events Service.
Creates the schema and loads the default venue and resource catalogue.
"""

import argparse
import asyncio
import logging
import sys

from campus_events.db.database import db_manager
from campus_events.db.seed import seed_catalog

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


async def run(database_url: str = None, reset: bool = False) -> int:
    if database_url:
        db_manager.configure(database_url)
    else:
        await db_manager.initialize()

    try:
        if reset:
            logger.warning("Dropping all tables")
            db_manager.drop_tables()
        db_manager.create_tables()

        inserted = seed_catalog(db_manager)
        logger.info(f"Catalogue ready: {inserted}")
        return 0
    except Exception as e:
        logger.error(f"Seeding failed: {e}")
        return 1
    finally:
        db_manager.close()


def main():
    parser = argparse.ArgumentParser(description="Campus Events catalogue seeder")
    parser.add_argument("--database-url", help="Database URL (defaults to service configuration)")
    parser.add_argument("--reset", action="store_true", help="Drop all tables before seeding")
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args.database_url, args.reset)))


if __name__ == "__main__":
    main()
