import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import aiosqlite

from ..core.config import Settings, settings as default_settings
from ..errors import TransientStoreError

logger = logging.getLogger(__name__)


class Database:
    """Opens one aiosqlite connection per operation against a SQLite file.

    Connections run in autocommit mode; multi-statement writes go through
    ``transaction()`` which holds the writer lock for their whole duration.
    """

    def __init__(self, db_path: Optional[str] = None, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.db_path = str(db_path or self.settings.DATABASE_PATH)
        self.timeout = self.settings.DATABASE_TIMEOUT

    async def _open(self) -> aiosqlite.Connection:
        try:
            conn = await aiosqlite.connect(
                self.db_path, timeout=self.timeout, isolation_level=None
            )
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA foreign_keys = ON")
        except aiosqlite.OperationalError as e:
            raise TransientStoreError(f"Could not open database {self.db_path}: {e}") from e
        return conn

    @asynccontextmanager
    async def connection(
        self, conn: Optional[aiosqlite.Connection] = None
    ) -> AsyncIterator[aiosqlite.Connection]:
        """Yield ``conn`` untouched if given, otherwise a fresh connection closed on exit"""
        if conn is not None:
            yield conn
            return

        conn = await self._open()
        try:
            yield conn
        finally:
            await conn.close()

    @asynccontextmanager
    async def transaction(self, readonly: bool = False) -> AsyncIterator[aiosqlite.Connection]:
        """Run the block inside BEGIN ... COMMIT, rolling back on any error.

        Write transactions take the writer lock up front (BEGIN IMMEDIATE);
        read-only ones just pin a consistent snapshot.
        """
        async with self.connection() as tx:
            try:
                await tx.execute("BEGIN" if readonly else "BEGIN IMMEDIATE")
            except aiosqlite.OperationalError as e:
                raise TransientStoreError(f"Could not begin transaction: {e}") from e
            try:
                yield tx
            except BaseException:
                logger.warning("Rolling back transaction")
                if tx.in_transaction:
                    await tx.execute("ROLLBACK")
                raise
            else:
                try:
                    await tx.execute("COMMIT")
                except aiosqlite.OperationalError as e:
                    if tx.in_transaction:
                        await tx.execute("ROLLBACK")
                    raise TransientStoreError(f"Could not commit transaction: {e}") from e

    async def execute(
        self,
        query: str,
        params: Sequence[Any] = (),
        conn: Optional[aiosqlite.Connection] = None,
    ) -> int:
        """Execute a statement and return the number of affected rows"""
        async with self.connection(conn) as c:
            try:
                cursor = await c.execute(query, tuple(params))
            except aiosqlite.OperationalError as e:
                raise TransientStoreError(str(e)) from e
            rowcount = cursor.rowcount
            await cursor.close()
            return rowcount

    async def execute_many(
        self,
        query: str,
        params: List[Sequence[Any]],
        conn: Optional[aiosqlite.Connection] = None,
    ) -> None:
        """Execute a statement once per parameter set"""
        async with self.connection(conn) as c:
            try:
                await c.executemany(query, [tuple(p) for p in params])
            except aiosqlite.OperationalError as e:
                raise TransientStoreError(str(e)) from e

    async def fetch_one(
        self,
        query: str,
        params: Sequence[Any] = (),
        conn: Optional[aiosqlite.Connection] = None,
    ) -> Optional[Dict[str, Any]]:
        """Fetch one row"""
        async with self.connection(conn) as c:
            try:
                cursor = await c.execute(query, tuple(params))
                row = await cursor.fetchone()
            except aiosqlite.OperationalError as e:
                raise TransientStoreError(str(e)) from e
            await cursor.close()
            return dict(row) if row else None

    async def fetch_all(
        self,
        query: str,
        params: Sequence[Any] = (),
        conn: Optional[aiosqlite.Connection] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch all rows"""
        async with self.connection(conn) as c:
            try:
                cursor = await c.execute(query, tuple(params))
                rows = await cursor.fetchall()
            except aiosqlite.OperationalError as e:
                raise TransientStoreError(str(e)) from e
            await cursor.close()
            return [dict(row) for row in rows]
