"""
Pytest configuration and fixtures for userdir tests.
"""

from pathlib import Path

import pytest

from userdir.core.config import Settings
from userdir.db.database import Database
from userdir.db.migrations import run_migrations
from userdir.db.repositories import AttributeCatalog, AttributeStore, UserStore
from userdir.services.directory_service import DirectoryService
from userdir.services.password_hasher import PasswordHasher


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway database, with a cheap bcrypt cost."""
    return Settings(
        DATABASE_PATH=str(tmp_path / "userdir.sqlite3"),
        BCRYPT_ROUNDS=4,
        HYDRATION_BATCH_SIZE=2,
    )


@pytest.fixture
async def db(test_settings: Settings) -> Database:
    """Migrated database in tmp_path."""
    database = Database(settings=test_settings)
    await run_migrations(database)
    return database


@pytest.fixture
def catalog(db: Database) -> AttributeCatalog:
    return AttributeCatalog(db)


@pytest.fixture
def user_store(db: Database) -> UserStore:
    return UserStore(db)


@pytest.fixture
def attribute_store(db: Database, catalog: AttributeCatalog) -> AttributeStore:
    return AttributeStore(db, catalog)


@pytest.fixture
def directory(db: Database, test_settings: Settings) -> DirectoryService:
    return DirectoryService(db, hasher=PasswordHasher(rounds=4), settings=test_settings)
