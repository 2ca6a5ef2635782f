"""SQLite-backed storage for users and chirps."""

from __future__ import annotations

import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    email TEXT UNIQUE,
    hashed_password TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS chirps (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    body TEXT NOT NULL,
    user_id TEXT REFERENCES users(id) ON DELETE CASCADE
);
"""

_CHIRP_COLUMNS = "id, created_at, updated_at, body, user_id"
_USER_COLUMNS = "id, created_at, updated_at, email, hashed_password"


class NoRowsError(LookupError):
    """Raised when a query that expects one row finds none."""


@dataclass(frozen=True)
class Chirp:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    body: str
    user_id: uuid.UUID | None

    @classmethod
    def _from_row(cls, row: tuple) -> Chirp:
        chirp_id, created, updated, body, user_id = row
        return cls(
            id=uuid.UUID(chirp_id),
            created_at=datetime.fromisoformat(created),
            updated_at=datetime.fromisoformat(updated),
            body=body,
            user_id=uuid.UUID(user_id) if user_id is not None else None,
        )


@dataclass(frozen=True)
class User:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    email: str | None
    hashed_password: str

    @classmethod
    def _from_row(cls, row: tuple) -> User:
        user_id, created, updated, email, hashed = row
        return cls(
            id=uuid.UUID(user_id),
            created_at=datetime.fromisoformat(created),
            updated_at=datetime.fromisoformat(updated),
            email=email,
            hashed_password=hashed,
        )


def connect(path: str) -> sqlite3.Connection:
    """Open a database connection with foreign keys enforced."""
    conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Queries:
    """The queries the application runs against its database."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._in_transaction = False

    def init_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        self._conn.executescript(_SCHEMA)
        self._finish_write()

    @contextmanager
    def transaction(self) -> Iterator[Queries]:
        """Run the enclosed queries in one transaction, rolled back on error."""
        self._conn.execute("BEGIN")
        tx = Queries(self._conn)
        tx._in_transaction = True
        try:
            yield tx
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        self._conn.execute("COMMIT")

    def _finish_write(self) -> None:
        if not self._in_transaction and self._conn.in_transaction:
            self._conn.commit()

    def add_chirp(self, body: str, user_id: uuid.UUID | None) -> Chirp:
        now = _now()
        row = self._conn.execute(
            f"INSERT INTO chirps ({_CHIRP_COLUMNS}) VALUES (?, ?, ?, ?, ?) "
            f"RETURNING {_CHIRP_COLUMNS}",
            (
                str(uuid.uuid4()),
                now,
                now,
                body,
                str(user_id) if user_id is not None else None,
            ),
        ).fetchone()
        self._finish_write()
        return Chirp._from_row(row)

    def delete_users(self) -> None:
        self._conn.execute("DELETE FROM users")
        self._finish_write()

    def get_all_chirps(self) -> list[Chirp]:
        rows = self._conn.execute(
            f"SELECT {_CHIRP_COLUMNS} FROM chirps ORDER BY created_at ASC, rowid ASC"
        ).fetchall()
        return [Chirp._from_row(row) for row in rows]

    def get_specific_chirp(self, chirp_id: uuid.UUID) -> Chirp:
        row = self._conn.execute(
            f"SELECT {_CHIRP_COLUMNS} FROM chirps WHERE id = ?", (str(chirp_id),)
        ).fetchone()
        if row is None:
            raise NoRowsError(f"no chirp with id {chirp_id}")
        return Chirp._from_row(row)

    def user_and_hash_lookup(self, email: str | None) -> User:
        row = self._conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = ?", (email,)
        ).fetchone()
        if row is None:
            raise NoRowsError(f"no user with email {email!r}")
        return User._from_row(row)

    def create_user(self, email: str | None, hashed_password: str) -> User:
        now = _now()
        row = self._conn.execute(
            f"INSERT INTO users ({_USER_COLUMNS}) VALUES (?, ?, ?, ?, ?) "
            f"RETURNING {_USER_COLUMNS}",
            (str(uuid.uuid4()), now, now, email, hashed_password),
        ).fetchone()
        self._finish_write()
        return User._from_row(row)