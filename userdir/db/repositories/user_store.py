import logging
from datetime import datetime, timezone
from typing import Optional

import aiosqlite

from userdir.db.database import Database
from userdir.errors import ConflictError, NotFoundError
from userdir.models.user import User

logger = logging.getLogger(__name__)

ACTIVE_ONLY = " AND active = 1"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserStore:
    """Repository for the users table"""

    def __init__(self, db: Database):
        self.db = db

    async def create(
        self,
        user_id: str,
        username: str,
        password_hash: str,
        conn: Optional[aiosqlite.Connection] = None,
    ) -> None:
        """Insert a user; raises ConflictError on a taken id or username"""
        now = utc_now()
        try:
            await self.db.execute(
                """INSERT INTO users (id, username, password_hash, active, created_at, updated_at)
                   VALUES (?, ?, ?, 1, ?, ?)""",
                (user_id, username, password_hash, now, now),
                conn=conn,
            )
        except aiosqlite.IntegrityError as e:
            message = f"No user created, duplicate key on id: \"{user_id}\" or username: \"{username}\""
            if "users.username" in str(e):
                message = f"Username is already taken: \"{username}\""
            elif "users.id" in str(e):
                message = f"User id is already taken: \"{user_id}\""
            logger.info(message)
            raise ConflictError(message) from e

    async def find_by_id(
        self,
        user_id: str,
        include_inactive: bool = False,
        conn: Optional[aiosqlite.Connection] = None,
    ) -> User:
        query = "SELECT * FROM users WHERE id = ?"
        if not include_inactive:
            query += ACTIVE_ONLY
        row = await self.db.fetch_one(query, (user_id,), conn=conn)
        if not row:
            raise NotFoundError(f"No user found for id: \"{user_id}\"")
        return User.from_row(row)

    async def find_by_username(self, username: str, include_inactive: bool = False) -> User:
        query = "SELECT * FROM users WHERE username = ?"
        if not include_inactive:
            query += ACTIVE_ONLY
        row = await self.db.fetch_one(query, (username,))
        if not row:
            raise NotFoundError(f"No user found for username: \"{username}\"")
        return User.from_row(row)

    async def exists(self, user_id: str, conn: Optional[aiosqlite.Connection] = None) -> bool:
        row = await self.db.fetch_one("SELECT 1 AS found FROM users WHERE id = ?", (user_id,), conn=conn)
        return row is not None

    async def username_taken(self, username: str, exclude_id: Optional[str] = None) -> bool:
        """Whether any user, active or not, other than ``exclude_id`` owns ``username``"""
        query = "SELECT id FROM users WHERE username = ?"
        params = [username]
        if exclude_id is not None:
            query += " AND id != ?"
            params.append(exclude_id)
        return await self.db.fetch_one(query, params) is not None

    async def _update(self, user_id: str, column: str, value) -> None:
        # column comes from the fixed set used by the setters below
        affected = await self.db.execute(
            f"UPDATE users SET {column} = ?, updated_at = ? WHERE id = ?",
            (value, utc_now(), user_id),
        )
        if affected == 0:
            raise NotFoundError(f"No user found for id: \"{user_id}\"")

    async def set_username(self, user_id: str, username: str) -> None:
        try:
            await self._update(user_id, "username", username)
        except aiosqlite.IntegrityError as e:
            raise ConflictError(f"Username is already taken: \"{username}\"") from e

    async def set_password(self, user_id: str, password_hash: str) -> None:
        await self._update(user_id, "password_hash", password_hash)

    async def set_active(self, user_id: str, active: bool) -> None:
        await self._update(user_id, "active", int(bool(active)))

    async def remove(self, user_id: str) -> None:
        """Delete a user; attribute values go with it through ON DELETE CASCADE"""
        affected = await self.db.execute("DELETE FROM users WHERE id = ?", (user_id,))
        if affected == 0:
            raise NotFoundError(f"No user found for id: \"{user_id}\"")
