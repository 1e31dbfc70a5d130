import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import aiosqlite

from userdir.db.database import Database
from userdir.db.repositories.attribute_catalog import AttributeCatalog
from userdir.db.repositories.user_store import utc_now
from userdir.errors import NotFoundError
from userdir.models.user import FieldValues, normalize_values

logger = logging.getLogger(__name__)

INSERT_VALUE = "INSERT INTO attribute_values (user_id, attribute_type_id, value) VALUES (?, ?, ?)"

TOUCH_USER = "UPDATE users SET updated_at = ? WHERE id = ?"


def _placeholders(count: int) -> str:
    return ", ".join(["?"] * count)


class AttributeStore:
    """Multi-valued user attributes, keyed by attribute type identifier"""

    def __init__(self, db: Database, catalog: AttributeCatalog):
        self.db = db
        self.catalog = catalog

    async def _rows_for(
        self,
        user_id: str,
        fields: Mapping[str, FieldValues],
        conn: Optional[aiosqlite.Connection] = None,
    ) -> List[Tuple[str, str, str]]:
        type_ids = await self.catalog.resolve_many(fields.keys(), conn=conn)
        rows = []
        for name, values in fields.items():
            type_id = type_ids[name.strip()]
            for value in normalize_values(values):
                rows.append((user_id, type_id, value))
        return rows

    async def _insert_rows(self, rows: List[Tuple[str, str, str]], conn: aiosqlite.Connection) -> None:
        try:
            await self.db.execute_many(INSERT_VALUE, rows, conn=conn)
        except aiosqlite.IntegrityError as e:
            raise NotFoundError(f"Cannot store attributes, user not found: \"{rows[0][0]}\"") from e

    async def add_values(self, user_id: str, name: str, values: FieldValues) -> None:
        """Append values for one attribute"""
        await self.add_fields(user_id, {name: values})

    async def add_fields(
        self,
        user_id: str,
        fields: Mapping[str, FieldValues],
        conn: Optional[aiosqlite.Connection] = None,
    ) -> None:
        """Append values for several attributes; never overwrites existing values"""
        if not fields:
            row = await self.db.fetch_one("SELECT id FROM users WHERE id = ?", (user_id,), conn=conn)
            if not row:
                raise NotFoundError(f"No user found for id: \"{user_id}\"")
            logger.debug(f"No fields specified for user \"{user_id}\"")
            return

        # Names are resolved before the write lock is taken
        rows = await self._rows_for(user_id, fields, conn=conn)
        if conn is not None:
            await self._insert_rows(rows, conn)
            return
        async with self.db.transaction() as tx:
            await self._insert_rows(rows, tx)
            await self.db.execute(TOUCH_USER, (utc_now(), user_id), conn=tx)

    async def replace_all(self, user_id: str, fields: Optional[Mapping[str, FieldValues]]) -> None:
        """Replace every attribute row of a user in one transaction.

        ``None`` or an empty mapping leaves the user without attributes.
        """
        async with self.db.transaction() as conn:
            await self.db.execute(
                "DELETE FROM attribute_values WHERE user_id = ?", (user_id,), conn=conn
            )

            touched = await self.db.execute(TOUCH_USER, (utc_now(), user_id), conn=conn)
            if not touched:
                message = f"Invalid user id: \"{user_id}\", no records found in database of this user"
                logger.warning(message)
                raise NotFoundError(message)

            if not fields:
                return

            rows = await self._rows_for(user_id, fields, conn=conn)
            await self._insert_rows(rows, conn)

    async def remove_attribute(self, user_id: str, name: str) -> None:
        """Delete every value of one attribute; a missing attribute is not an error"""
        async with self.db.transaction() as conn:
            deleted = await self.db.execute(
                """DELETE FROM attribute_values
                   WHERE user_id = ?
                     AND attribute_type_id IN (SELECT id FROM attribute_types WHERE name = ?)""",
                (user_id, (name or "").strip()),
                conn=conn,
            )
            if deleted:
                await self.db.execute(TOUCH_USER, (utc_now(), user_id), conn=conn)

    async def get_values(self, user_id: str, name: str) -> List[str]:
        rows = await self.db.fetch_all(
            """SELECT v.value FROM attribute_values v
               JOIN attribute_types t ON t.id = v.attribute_type_id
               WHERE v.user_id = ? AND t.name = ?
               ORDER BY v.rowid""",
            (user_id, name.strip()),
        )
        return [row["value"] for row in rows]

    async def get_all(self, user_id: str) -> Dict[str, List[str]]:
        fields = await self.values_for_users([user_id])
        return fields.get(user_id, {})

    async def values_for_users(
        self,
        user_ids: Sequence[str],
        names: Optional[Iterable[str]] = None,
        batch_size: int = 500,
    ) -> Dict[str, Dict[str, List[str]]]:
        """Load attributes for many users, one query per batch of user ids.

        When ``names`` is given only those attributes are loaded.
        """
        result: Dict[str, Dict[str, List[str]]] = {}
        name_list = [n.strip() for n in names] if names is not None else None
        if not user_ids or name_list == []:
            return result

        for start in range(0, len(user_ids), batch_size):
            batch = list(user_ids[start:start + batch_size])
            query = (
                "SELECT v.user_id, t.name, v.value FROM attribute_values v"
                " JOIN attribute_types t ON t.id = v.attribute_type_id"
                f" WHERE v.user_id IN ({_placeholders(len(batch))})"
            )
            params: List[str] = batch
            if name_list is not None:
                query += f" AND t.name IN ({_placeholders(len(name_list))})"
                params = batch + name_list
            query += " ORDER BY v.rowid"

            for row in await self.db.fetch_all(query, params):
                result.setdefault(row["user_id"], {}).setdefault(row["name"], []).append(row["value"])
        return result

    async def distinct_values(self, name: str) -> List[str]:
        rows = await self.db.fetch_all(
            """SELECT DISTINCT v.value FROM attribute_values v
               JOIN attribute_types t ON t.id = v.attribute_type_id
               WHERE t.name = ?
               ORDER BY v.value""",
            (name.strip(),),
        )
        return [row["value"] for row in rows]
