"""Add the local users directory table.

Revision ID: 002_users
Revises: 001_baseline
Create Date: 2026-08-14
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "002_users"
down_revision: str | None = "001_baseline"
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("uid", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("premium", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("premium_until", sa.Text),
        sa.Column("admin", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
    )


def downgrade() -> None:
    op.drop_table("users")
