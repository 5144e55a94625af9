"""Todo store interface and SQLite implementation."""

from __future__ import annotations

import os
import sqlite3
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from app.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DB_FILE = "app.db"

SCHEMA = """
CREATE TABLE IF NOT EXISTS todos (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    due_date TEXT,
    priority INTEGER DEFAULT 0,
    done INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_todos_title ON todos(title);
CREATE INDEX IF NOT EXISTS idx_todos_done ON todos(done);
"""


@dataclass
class TodoRecord:
    """Todo row as stored."""

    id: int
    title: str
    description: str | None
    due_date: str | None
    priority: int  # 0 normal, 1 high
    done: int  # 0 open, 1 done
    created_at: str
    updated_at: str


class TodoStore(Protocol):
    """Interface for todo persistence."""

    def list(self) -> list[TodoRecord]:
        """Return all todos, newest first."""
        ...

    def find_by_id(self, todo_id: int) -> TodoRecord | None:
        """Return the todo with this id, if any."""
        ...

    def find_by_exact_title(self, title: str) -> list[TodoRecord]:
        """Return every todo whose title equals `title` (case-sensitive)."""
        ...

    def create(
        self,
        title: str,
        description: str | None = None,
        due_date: str | None = None,
        priority: int = 0,
    ) -> TodoRecord:
        """Insert a new open todo and return it."""
        ...

    def delete_by_id(self, todo_id: int) -> bool:
        """Delete a todo.

        Returns:
            True if exactly one row was removed
        """
        ...

    def mark_done_by_id(self, todo_id: int, done: bool) -> TodoRecord | None:
        """Set the done flag, returning the updated todo or None if it doesn't exist."""
        ...


def _now() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SQLiteTodoStore:
    """SQLite-backed todo store.

    A single connection is shared between threads; every statement runs under
    a lock so individual reads and writes are serialized.
    """

    def __init__(self, db_path: str | os.PathLike[str] = ":memory:"):
        """Open (and migrate) the database.

        Args:
            db_path: File path, or ":memory:" for a throwaway database
        """
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._db = sqlite3.connect(self.db_path, check_same_thread=False)
        self._db.row_factory = sqlite3.Row

        if self.db_path != ":memory:":
            self._db.execute("PRAGMA journal_mode = WAL")

        self._migrate()
        logger.info(f"SQLite todo store initialized at {self.db_path}")

    @classmethod
    def from_env(cls) -> SQLiteTodoStore:
        """Create a store at SQLITE_DB_PATH (defaults to app.db in the working directory)."""
        db_path = Path(os.getenv("SQLITE_DB_PATH", DEFAULT_DB_FILE)).resolve()
        return cls(db_path)

    def _migrate(self) -> None:
        with self._lock:
            self._db.executescript(SCHEMA)
            self._db.commit()
        logger.debug("SQLite migrations applied")

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._db.close()

    def list(self) -> list[TodoRecord]:
        with self._lock:
            rows = self._db.execute("SELECT * FROM todos ORDER BY created_at DESC, id DESC").fetchall()
        return [self._to_record(row) for row in rows]

    def find_by_id(self, todo_id: int) -> TodoRecord | None:
        with self._lock:
            return self._find_by_id(todo_id)

    def find_by_exact_title(self, title: str) -> list[TodoRecord]:
        with self._lock:
            rows = self._db.execute("SELECT * FROM todos WHERE title = ? ORDER BY id", (title,)).fetchall()
        return [self._to_record(row) for row in rows]

    def create(
        self,
        title: str,
        description: str | None = None,
        due_date: str | None = None,
        priority: int = 0,
    ) -> TodoRecord:
        now = _now()
        with self._lock:
            cursor = self._db.execute(
                """
                INSERT INTO todos (title, description, due_date, priority, done, created_at, updated_at)
                VALUES (?, ?, ?, ?, 0, ?, ?)
                """,
                (title, description, due_date, priority, now, now),
            )
            self._db.commit()
            record = self._find_by_id(cursor.lastrowid)

        if record is None:
            raise RuntimeError(f"Todo {cursor.lastrowid} vanished after insert")
        return record

    def delete_by_id(self, todo_id: int) -> bool:
        with self._lock:
            cursor = self._db.execute("DELETE FROM todos WHERE id = ?", (todo_id,))
            self._db.commit()
        return cursor.rowcount == 1

    def mark_done_by_id(self, todo_id: int, done: bool) -> TodoRecord | None:
        with self._lock:
            cursor = self._db.execute(
                "UPDATE todos SET done = ?, updated_at = ? WHERE id = ?",
                (1 if done else 0, _now(), todo_id),
            )
            self._db.commit()
            if cursor.rowcount != 1:
                return None
            return self._find_by_id(todo_id)

    def _find_by_id(self, todo_id: int) -> TodoRecord | None:
        row = self._db.execute("SELECT * FROM todos WHERE id = ?", (todo_id,)).fetchone()
        return self._to_record(row) if row else None

    @staticmethod
    def _to_record(row: sqlite3.Row) -> TodoRecord:
        return TodoRecord(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            due_date=row["due_date"],
            priority=row["priority"] or 0,
            done=row["done"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
