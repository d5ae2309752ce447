"""Record each lifecycle event's subject domain and user on the WAL.

Revision ID: 003_event_subjects
Revises: 002_users
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "003_event_subjects"
down_revision: str | None = "002_users"
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def upgrade() -> None:
    with op.batch_alter_table("event_wal") as batch:
        batch.add_column(sa.Column("domain_id", sa.Text))
        batch.add_column(sa.Column("uid", sa.Integer))
    op.create_index("ix_event_wal_domain_id", "event_wal", ["domain_id"])


def downgrade() -> None:
    op.drop_index("ix_event_wal_domain_id", table_name="event_wal")
    with op.batch_alter_table("event_wal") as batch:
        batch.drop_column("uid")
        batch.drop_column("domain_id")
