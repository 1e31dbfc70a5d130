"""Database migration system"""
import logging
from datetime import datetime, timezone
from typing import List, Tuple

from .database import Database
from .schema import ALL_TABLES, INDEXES, SCHEMA_VERSION_TABLE

logger = logging.getLogger(__name__)


# Migration format: (version, description, up_sql)
MIGRATIONS: List[Tuple[int, str, str]] = [
    (
        1,
        "Initial schema: users, attribute_types, attribute_values",
        ";\n".join(ALL_TABLES + INDEXES),
    ),
    (
        2,
        "Index attribute values for value lookups",
        """CREATE INDEX IF NOT EXISTS idx_attribute_values_type_value ON attribute_values(attribute_type_id, value)""",
    ),
]


async def get_current_version(db: Database) -> int:
    """Get current schema version"""
    await db.execute(SCHEMA_VERSION_TABLE)
    result = await db.fetch_one("SELECT MAX(version) AS version FROM schema_version")
    return result["version"] if result and result["version"] else 0


async def apply_migration(db: Database, version: int, description: str, up_sql: str) -> None:
    """Apply a single migration in one transaction"""
    statements = [stmt.strip() for stmt in up_sql.split(";") if stmt.strip()]
    async with db.transaction() as conn:
        for statement in statements:
            await db.execute(statement, conn=conn)
        await db.execute(
            "INSERT INTO schema_version (version, applied_at, description) VALUES (?, ?, ?)",
            (version, datetime.now(timezone.utc).isoformat(), description),
            conn=conn,
        )
    logger.info(f"Applied migration {version}: {description}")


async def run_migrations(db: Database) -> int:
    """Run all pending migrations and return the resulting schema version"""
    # Readers keep working while a writer holds the lock
    await db.fetch_one("PRAGMA journal_mode = WAL")

    current_version = await get_current_version(db)
    logger.debug(f"Current database version: {current_version}")

    for version, description, up_sql in MIGRATIONS:
        if version > current_version:
            await apply_migration(db, version, description, up_sql)

    final_version = await get_current_version(db)
    if final_version > current_version:
        logger.info(f"Database migrated from version {current_version} to {final_version}")
    else:
        logger.debug(f"Database is up to date at version {final_version}")
    return final_version
