"""SQLite-backed user store.

The auth core only talks to ``BaseUserStore``; ``UserStore`` is the SQLite
implementation. Lookups return ``EMPTY_USER`` rather than ``None`` and listing
queries never select the stored secret.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from .errors import InvalidArgument, StoreUnavailable
from .user import EMPTY_USER, User

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = ".latchkey/users.db"

SORT_FIELDS = ("id", "username", "email")

# SQLite INTEGER PRIMARY KEY range for assigned rowids.
MAX_ROW_ID = 2**63 - 1


@dataclass(frozen=True)
class SearchOptions:
    """Paging and ordering for user searches."""

    limit: int = 100
    offset: int = 0
    sort_field: str = "id"
    ascending: bool = True

    def __post_init__(self):
        if self.sort_field not in SORT_FIELDS:
            raise InvalidArgument(
                f"sort_field must be one of {', '.join(SORT_FIELDS)}, got {self.sort_field!r}"
            )
        if self.limit < 0 or self.offset < 0:
            raise InvalidArgument("limit and offset must not be negative")


_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username VARCHAR(256) NOT NULL,
    email VARCHAR(320) NOT NULL,
    password TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_users_username ON users (username);
CREATE INDEX IF NOT EXISTS idx_users_email ON users (email);
"""


class BaseUserStore(ABC):
    """Storage capability consumed by the auth core."""

    @abstractmethod
    def insert(self, username: str, email: str, secret: str) -> int:
        """Persist a new user and return its identifier."""
        pass

    @abstractmethod
    def find_by_id(self, identifier: int) -> User:
        pass

    @abstractmethod
    def find_by_username_or_email(self, text: str) -> User:
        pass

    @abstractmethod
    def delete(self, identifier: int) -> bool:
        """Remove a user. Returns True if a record was deleted."""
        pass

    @abstractmethod
    def search(
        self,
        query: str,
        limit: int,
        offset: int,
        sort_field: str,
        ascending: bool,
    ) -> list[User]:
        """Users whose username or email contains ``query``, without secrets."""
        pass

    @abstractmethod
    def list_users(self) -> list[User]:
        pass

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class UserStore(BaseUserStore):
    """SQLite user store.

    Args:
        db_path: Path to the SQLite database file, or ":memory:". Parent
                 directories are created automatically.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        self._lock = threading.Lock()
        try:
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            if db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise StoreUnavailable(f"Cannot open user store at {db_path}: {e}") from e
        logger.debug(f"UserStore opened: {db_path}")

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
            except sqlite3.IntegrityError:
                raise
            except sqlite3.Error as e:
                logger.error(f"UserStore query failed: {e}")
                raise StoreUnavailable(f"User store query failed: {e}") from e

    def _row_to_user(self, row: sqlite3.Row) -> User:
        keys = row.keys()
        return User(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            secret=row["password"] if "password" in keys else "",
        )

    def insert(self, username: str, email: str, secret: str) -> int:
        if not all(_is_utf8(v) for v in (username, email or "", secret)):
            raise InvalidArgument("User fields must be valid UTF-8 text")
        with self._cursor() as conn:
            cur = conn.execute(
                "INSERT INTO users (username, email, password) VALUES (?, ?, ?)",
                (username, email or "", secret),
            )
            conn.commit()
            return cur.lastrowid

    def find_by_id(self, identifier: int) -> User:
        if not is_row_id(identifier):
            return EMPTY_USER
        with self._cursor() as conn:
            row = conn.execute(
                "SELECT id, username, email, password FROM users WHERE id = ?",
                (identifier,),
            ).fetchone()
        return self._row_to_user(row) if row else EMPTY_USER

    def find_by_username_or_email(self, text: str) -> User:
        if not text or not _is_utf8(text):
            return EMPTY_USER
        with self._cursor() as conn:
            row = conn.execute(
                "SELECT id, username, email, password FROM users "
                "WHERE username = ? OR (email != '' AND email = ?) "
                "ORDER BY id LIMIT 1",
                (text, text),
            ).fetchone()
        return self._row_to_user(row) if row else EMPTY_USER

    def delete(self, identifier: int) -> bool:
        if not is_row_id(identifier):
            return False
        with self._cursor() as conn:
            cur = conn.execute("DELETE FROM users WHERE id = ?", (identifier,))
            conn.commit()
            return cur.rowcount > 0

    def search(
        self,
        query: str,
        limit: int = 100,
        offset: int = 0,
        sort_field: str = "id",
        ascending: bool = True,
    ) -> list[User]:
        if sort_field not in SORT_FIELDS:
            raise InvalidArgument(f"Cannot sort users by {sort_field!r}")
        if limit < 0 or offset < 0:
            raise InvalidArgument("limit and offset must not be negative")

        if not _is_utf8(query or ""):
            raise InvalidArgument("Search query must be valid UTF-8 text")
        pattern = "%" + _escape_like(query or "") + "%"
        direction = "ASC" if ascending else "DESC"
        with self._cursor() as conn:
            rows = conn.execute(
                "SELECT id, username, email FROM users "
                "WHERE username LIKE ? ESCAPE '\\' OR email LIKE ? ESCAPE '\\' "
                f"ORDER BY {sort_field} {direction}, id {direction} "
                "LIMIT ? OFFSET ?",
                (pattern, pattern, limit, offset),
            ).fetchall()
        return [self._row_to_user(r) for r in rows]

    def list_users(self) -> list[User]:
        with self._cursor() as conn:
            rows = conn.execute(
                "SELECT id, username, email FROM users ORDER BY id"
            ).fetchall()
        return [self._row_to_user(r) for r in rows]

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()


def is_row_id(identifier) -> bool:
    """True for ints SQLite could have assigned as a row id."""
    if isinstance(identifier, bool) or not isinstance(identifier, int):
        return False
    return 1 <= identifier <= MAX_ROW_ID


def _is_utf8(text: str) -> bool:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
