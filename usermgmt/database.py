"""SQLite connection provider for the user store."""
from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "users.sqlite3").resolve(strict=False)


class Database:
    """Hands out short-lived SQLite connections and owns the schema.

    Callers borrow a connection per logical operation and use it as a context
    manager, which commits on success and rolls back on error.
    """

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self.connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    guid TEXT PRIMARY KEY,
                    active INTEGER NOT NULL DEFAULT 1,
                    user_name TEXT NOT NULL UNIQUE,
                    email TEXT NOT NULL UNIQUE,
                    first_name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_created_at ON users(created_at);
                """
            )

    def ping(self) -> None:
        """Raise ``sqlite3.Error`` if the database cannot answer a trivial query."""

        with self.connect() as conn:
            conn.execute("SELECT 1").fetchone()


__all__ = ["Database", "resolve_database_path"]
