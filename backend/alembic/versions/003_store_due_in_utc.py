"""Store todo.due as UTC so text ordering matches time ordering

Revision ID: 003
Revises: 002
Create Date: 2018-11-24

"""
import os
from datetime import datetime, timezone
from typing import Sequence, Union
from zoneinfo import ZoneInfo

from alembic import op
from sqlalchemy import text

revision: str = '003'
down_revision: Union[str, None] = '002'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _rewrite_dues(convert) -> None:
    conn = op.get_bind()
    rows = conn.execute(text("SELECT id, due FROM todo")).fetchall()
    for todo_id, due in rows:
        conn.execute(
            text("UPDATE todo SET due = :due WHERE id = :id"),
            {"due": convert(datetime.fromisoformat(due)).isoformat(), "id": todo_id}
        )


def upgrade() -> None:
    _rewrite_dues(lambda due: due.astimezone(timezone.utc))


def downgrade() -> None:
    local = ZoneInfo(os.getenv("TODO_TIMEZONE", "Asia/Bangkok"))
    _rewrite_dues(lambda due: due.astimezone(local))
