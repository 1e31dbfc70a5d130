import logging
from typing import Dict, Iterable, Optional

import aiosqlite

from userdir.db.database import Database
from userdir.errors import InvalidArgumentError, NotFoundError
from userdir.core.ids import new_id

logger = logging.getLogger(__name__)


class AttributeCatalog:
    """Maps attribute names to stable identifiers, creating them on first use"""

    def __init__(self, db: Database):
        self.db = db

    @staticmethod
    def _clean_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise InvalidArgumentError("Attribute name must not be empty")
        return name

    async def resolve(self, name: str, conn: Optional[aiosqlite.Connection] = None) -> str:
        """Return the identifier for ``name``, creating it if absent.

        Insert-or-ignore followed by a re-read, so concurrent first use of a
        name always ends with the single row that won the insert.
        """
        name = self._clean_name(name)
        row = await self.db.fetch_one(
            "SELECT id FROM attribute_types WHERE name = ?", (name,), conn=conn
        )
        if row:
            return row["id"]

        inserted = await self.db.execute(
            "INSERT OR IGNORE INTO attribute_types (id, name) VALUES (?, ?)",
            (new_id(), name),
            conn=conn,
        )
        if inserted:
            logger.debug(f"Created attribute type: \"{name}\"")

        row = await self.db.fetch_one(
            "SELECT id FROM attribute_types WHERE name = ?", (name,), conn=conn
        )
        if not row:
            raise NotFoundError(f"Attribute type \"{name}\" vanished after insert")
        return row["id"]

    async def resolve_many(
        self, names: Iterable[str], conn: Optional[aiosqlite.Connection] = None
    ) -> Dict[str, str]:
        """Resolve several names, keyed by trimmed name"""
        ids: Dict[str, str] = {}
        for name in names:
            clean = self._clean_name(name)
            if clean not in ids:
                ids[clean] = await self.resolve(clean, conn=conn)
        return ids

    async def lookup(self, name: str, conn: Optional[aiosqlite.Connection] = None) -> Optional[str]:
        """Return the identifier for ``name`` without creating it"""
        name = self._clean_name(name)
        row = await self.db.fetch_one(
            "SELECT id FROM attribute_types WHERE name = ?", (name,), conn=conn
        )
        return row["id"] if row else None

    async def name_of(self, type_id: str) -> str:
        row = await self.db.fetch_one(
            "SELECT name FROM attribute_types WHERE id = ?", (type_id,)
        )
        if not row:
            raise NotFoundError(f"No attribute type with id \"{type_id}\"")
        return row["name"]
