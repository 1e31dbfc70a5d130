#!/usr/bin/env python3
"""
Migration Runner

Creates or upgrades the user directory schema. Run once before starting
anything that constructs a DirectoryService.

    USERDIR_DATABASE_PATH=./userdir.db python run_migration.py
"""

import asyncio
import logging
import sys

from userdir.core.config import settings
from userdir.core.logging import configure_logging
from userdir.db.database import Database
from userdir.db.migrations import run_migrations
from userdir.errors import DirectoryError

logger = logging.getLogger("userdir.run_migration")


async def main() -> int:
    db = Database(settings.DATABASE_PATH)
    version = await run_migrations(db)
    logger.info(f"{settings.DATABASE_PATH} is at schema version {version}")
    return version


if __name__ == "__main__":
    configure_logging()
    try:
        asyncio.run(main())
    except DirectoryError as e:
        logger.error(f"Migration failed: {e}")
        sys.exit(1)
