"""Initial schema: accounts and per-tenant datasets.

Sources:
  - auth.py          (users)
  - tenant_store.py  (tenant_datasets)

Revision ID: 3f2a9c1d7b10
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "3f2a9c1d7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _ts_default():
    """CURRENT_TIMESTAMP default usable on both dialects."""
    return sa.text("CURRENT_TIMESTAMP")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("username", sa.Text, primary_key=True),
        sa.Column("password_hash", sa.Text, nullable=False),
        sa.Column("golf_course", sa.Text, nullable=False, server_default=""),
        sa.Column("is_approved", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_admin", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.TIMESTAMP, server_default=_ts_default()),
        sa.Column("last_login", sa.TIMESTAMP),
    )
    op.create_index("idx_users_approved", "users", ["is_approved"])

    # Whole-collection JSON documents; version guards concurrent writers
    op.create_table(
        "tenant_datasets",
        sa.Column("username", sa.Text, primary_key=True),
        sa.Column("logs", sa.Text, nullable=False, server_default="[]"),
        sa.Column("fertilizers", sa.Text, nullable=False, server_default="[]"),
        sa.Column("settings", sa.Text, nullable=False, server_default="{}"),
        sa.Column("notification_settings", sa.Text, nullable=False, server_default="{}"),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("updated_at", sa.TIMESTAMP, server_default=_ts_default()),
    )


def downgrade() -> None:
    op.drop_table("tenant_datasets")
    op.drop_index("idx_users_approved", table_name="users")
    op.drop_table("users")
