import logging
import os
import sqlite3
import subprocess
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from dates import localize
from models import Todo

logger = logging.getLogger(__name__)

DATABASE_PATH = os.getenv("DATABASE_PATH", "todo.db")


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize database by running Alembic migrations."""
    # Alembic runs from the backend directory, so hand it an absolute path
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    db_path = os.path.abspath(DATABASE_PATH)
    logger.info("Running migrations against %s", db_path)
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        env={**os.environ, "DATABASE_PATH": db_path},
        check=True
    )


def _row_to_todo(row) -> Todo:
    """Convert a database row to a Todo model."""
    return Todo(
        id=row["id"],
        user_id=row["user_id"],
        task=row["task"],
        done=bool(row["done"]),
        pin=bool(row["pin"]),
        due=localize(datetime.fromisoformat(row["due"])),
    )


def _to_db(due: datetime) -> str:
    """Dues are stored as UTC ISO text so SQL text order is time order in any zone."""
    return localize(due).astimezone(timezone.utc).isoformat()


def _owner_clause(user_id: Optional[str]) -> tuple[str, tuple]:
    if user_id is None:
        return "", ()
    return " AND user_id = ?", (user_id,)


def list_todos(user_id: str) -> list[Todo]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM todo WHERE user_id = ? ORDER BY id",
            (user_id,)
        ).fetchall()
        return [_row_to_todo(row) for row in rows]


def get_todo(todo_id: int, user_id: Optional[str] = None) -> Optional[Todo]:
    clause, params = _owner_clause(user_id)
    with get_db() as conn:
        row = conn.execute(
            f"SELECT * FROM todo WHERE id = ?{clause}",
            (todo_id, *params)
        ).fetchone()
        if row:
            return _row_to_todo(row)
    return None


def create_todo(user_id: str, task: str, due: datetime) -> Todo:
    """Store a new open, unpinned task. `due` is normalised to the configured timezone."""
    due = localize(due)
    with get_db() as conn:
        cursor = conn.execute(
            "INSERT INTO todo (user_id, task, done, pin, due) VALUES (?, ?, 0, 0, ?)",
            (user_id, task, _to_db(due))
        )
        conn.commit()
        todo_id = cursor.lastrowid

    return Todo(id=todo_id, user_id=user_id, task=task, due=due)


def _update(todo_id: int, user_id: Optional[str], **changes) -> Optional[Todo]:
    """
    Apply column changes to one task.
    Returns the updated task, or None when no row matched (unknown id or other owner).
    """
    clause, params = _owner_clause(user_id)
    set_clause = ", ".join(f"{field} = ?" for field in changes)
    with get_db() as conn:
        cursor = conn.execute(
            f"UPDATE todo SET {set_clause} WHERE id = ?{clause}",
            (*changes.values(), todo_id, *params)
        )
        conn.commit()
        if cursor.rowcount != 1:
            return None
        row = conn.execute("SELECT * FROM todo WHERE id = ?", (todo_id,)).fetchone()
        return _row_to_todo(row)


def set_pin(todo_id: int, pin: bool, user_id: Optional[str] = None) -> Optional[Todo]:
    return _update(todo_id, user_id, pin=int(pin))


def set_done(todo_id: int, done: bool, user_id: Optional[str] = None) -> Optional[Todo]:
    return _update(todo_id, user_id, done=int(done))


def edit_todo(todo_id: int, task: str, due: datetime, user_id: Optional[str] = None) -> Optional[Todo]:
    return _update(todo_id, user_id, task=task, due=_to_db(due))


def delete_todo(todo_id: int, user_id: Optional[str] = None) -> bool:
    clause, params = _owner_clause(user_id)
    with get_db() as conn:
        cursor = conn.execute(
            f"DELETE FROM todo WHERE id = ?{clause}",
            (todo_id, *params)
        )
        conn.commit()
        return cursor.rowcount > 0


def get_todos_by_user() -> dict[str, list[Todo]]:
    """
    All tasks grouped by owner, for the daily reminder.
    Each group is ordered open first, then pinned first, then by due date.
    """
    grouped: dict[str, list[Todo]] = defaultdict(list)
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM todo ORDER BY user_id, done, pin DESC, due"
        ).fetchall()
        for row in rows:
            grouped[row["user_id"]].append(_row_to_todo(row))
    return dict(grouped)
