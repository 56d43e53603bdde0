"""Data access object translating user operations into SQL."""
from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from .database import Database
from .models import User, current_timestamp

logger = logging.getLogger("usermgmt.dao")

_USER_COLUMNS = "guid, active, user_name, email, first_name, last_name, created_at, updated_at"


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


class UserDao:
    """CRUD access to the ``users`` table.

    ``save`` is a read-check-then-write upsert: concurrent saves of the same
    guid are not serialized and the last write wins.
    """

    def __init__(
        self,
        database: Database,
        *,
        clock: Callable[[], datetime] = current_timestamp,
    ) -> None:
        self._database = database
        self._clock = clock

    def find_by_id(self, guid: uuid.UUID) -> Optional[User]:
        logger.info("Finding user with guid: %s", guid)
        with self._database.connect() as conn:
            return self._find_by_id(conn, guid)

    def find_by_username(self, username: str) -> Optional[User]:
        logger.info("Finding user with userName: %s", username)
        with self._database.connect() as conn:
            row = conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE user_name = ?",
                (username,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def find_by_email(self, email: str) -> Optional[User]:
        logger.info("Finding user with email: %s", email)
        with self._database.connect() as conn:
            row = conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE email = ?",
                (email,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def save(self, user: User) -> User:
        """Insert or update ``user`` and return the row as stored."""

        logger.info("Saving user: %s", user.id)
        with self._database.connect() as conn:
            existing = self._find_by_id(conn, user.id)
            now = self._clock()
            if existing is not None:
                if now <= existing.updated_at:
                    now = existing.updated_at + timedelta(microseconds=1)
                conn.execute(
                    """
                    UPDATE users
                       SET active = ?, user_name = ?, email = ?, first_name = ?,
                           last_name = ?, updated_at = ?
                     WHERE guid = ?
                    """,
                    (
                        int(bool(user.active)),
                        user.username,
                        user.email,
                        user.first_name,
                        user.last_name,
                        _serialize_datetime(now),
                        str(user.id),
                    ),
                )
            else:
                conn.execute(
                    f"""
                    INSERT INTO users ({_USER_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(user.id),
                        int(bool(user.active)),
                        user.username,
                        user.email,
                        user.first_name,
                        user.last_name,
                        _serialize_datetime(now),
                        _serialize_datetime(now),
                    ),
                )
            stored = self._find_by_id(conn, user.id)
        return stored if stored is not None else user

    def delete(self, guid: uuid.UUID) -> bool:
        """Remove the row; ``False`` when no row matched."""

        logger.info("Deleting user with guid: %s", guid)
        with self._database.connect() as conn:
            cursor = conn.execute("DELETE FROM users WHERE guid = ?", (str(guid),))
            return cursor.rowcount > 0

    def find_all(self, limit: int, offset: int) -> List[User]:
        logger.info("Finding all users: limit: %s, offset: %s", limit, offset)
        with self._database.connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {_USER_COLUMNS} FROM users
                 ORDER BY created_at DESC
                 LIMIT ? OFFSET ?
                """,
                (limit, offset),
            ).fetchall()
        return [self._row_to_user(row) for row in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _find_by_id(self, conn: sqlite3.Connection, guid: uuid.UUID) -> Optional[User]:
        row = conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE guid = ?",
            (str(guid),),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=uuid.UUID(str(row["guid"])),
            username=str(row["user_name"]),
            email=str(row["email"]),
            first_name=str(row["first_name"]),
            last_name=str(row["last_name"]),
            active=bool(row["active"]),
            created_at=_parse_datetime(str(row["created_at"])),
            updated_at=_parse_datetime(str(row["updated_at"])),
        )


__all__ = ["UserDao"]
