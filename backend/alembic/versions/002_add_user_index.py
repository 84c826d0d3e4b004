"""Index todo.user_id for per-user listing and reminders

Revision ID: 002
Revises: 001
Create Date: 2018-11-20

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_todo_user_id ON todo (user_id)"))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP INDEX IF EXISTS ix_todo_user_id"))
