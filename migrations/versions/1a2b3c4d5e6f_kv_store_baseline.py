"""kv_store baseline

Creates the role-scoped key/value table from app/db/schema.sql.

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 09:12:40.118265

"""
from typing import Sequence, Union
from pathlib import Path

from alembic import op
import sqlalchemy as sa


revision: str = "1a2b3c4d5e6f"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Execute schema.sql (CREATE ... IF NOT EXISTS, safe on existing databases)."""
    schema_path = Path(__file__).resolve().parents[2] / "app" / "db" / "schema.sql"
    schema_sql = schema_path.read_text(encoding="utf-8")
    # Execute each statement individually (op.execute doesn't support executescript)
    for statement in schema_sql.split(";"):
        lines = [
            line for line in statement.splitlines()
            if line.strip() and not line.strip().startswith("--")
        ]
        cleaned = "\n".join(lines).strip()
        if cleaned:
            op.execute(sa.text(cleaned))


def downgrade() -> None:
    op.execute(sa.text("DROP INDEX IF EXISTS idx_kv_store_updated_at"))
    op.drop_table("kv_store")
