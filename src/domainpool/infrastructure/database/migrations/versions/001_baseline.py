"""Baseline schema: domains, domain_assignments, event_wal.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-06-02
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def upgrade() -> None:
    op.create_table(
        "domains",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("name", sa.Text, nullable=False, unique=True),
        sa.Column("only_premium", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("max_usage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("current_usage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("expires_at", sa.Text, nullable=False),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
        sa.CheckConstraint("max_usage >= 0", name="ck_domains_max_usage"),
        sa.CheckConstraint("current_usage >= 0", name="ck_domains_current_usage"),
    )
    op.create_index("ix_domains_expires_at", "domains", ["expires_at"])

    op.create_table(
        "domain_assignments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("uid", sa.Integer, nullable=False),
        sa.Column("domain_id", sa.Text, sa.ForeignKey("domains.id"), nullable=False),
        sa.Column("assigned_at", sa.Text, nullable=False),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
        sa.UniqueConstraint("uid", "domain_id", name="uq_domain_assignments_uid_domain"),
    )
    op.create_index("ix_domain_assignments_uid", "domain_assignments", ["uid"])
    op.create_index("ix_domain_assignments_domain_id", "domain_assignments", ["domain_id"])

    op.create_table(
        "event_wal",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("hook_name", sa.Text, nullable=False),
        sa.Column("payload", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("error", sa.Text),
        sa.Column("retries", sa.Integer, server_default="0"),
        sa.Column("created", sa.Text, nullable=False),
        sa.Column("completed", sa.Text),
    )
    op.create_index("ix_event_wal_status", "event_wal", ["status"])


def downgrade() -> None:
    op.drop_table("event_wal")
    op.drop_table("domain_assignments")
    op.drop_table("domains")
