"""SQLAlchemy Core table definitions for the domainpool database.

``domains`` is the catalog, ``domain_assignments`` the ledger. The two are
one aggregate: ``domains.current_usage`` caches the ledger row count and is
only ever written in the same transaction as the ledger rows it counts.
Timestamps are TEXT (see :mod:`timestamps`).
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

domains = Table(
    "domains",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False, unique=True),
    Column("only_premium", Boolean, nullable=False, default=False, server_default="0"),
    Column("max_usage", Integer, nullable=False, default=0, server_default="0"),  # 0 = unlimited
    Column("current_usage", Integer, nullable=False, default=0, server_default="0"),
    Column("expires_at", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
    CheckConstraint("max_usage >= 0", name="ck_domains_max_usage"),
    CheckConstraint("current_usage >= 0", name="ck_domains_current_usage"),
)

domain_assignments = Table(
    "domain_assignments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("uid", Integer, nullable=False),
    Column("domain_id", Text, ForeignKey("domains.id"), nullable=False),
    Column("assigned_at", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
    UniqueConstraint("uid", "domain_id", name="uq_domain_assignments_uid_domain"),
)

# Local user directory (premium/admin facts). Optional: embedders may
# inject their own UserDirectory and leave this table empty.
users = Table(
    "users",
    metadata,
    Column("uid", Integer, primary_key=True, autoincrement=False),
    Column("premium", Boolean, nullable=False, default=False, server_default="0"),
    Column("premium_until", Text),  # NULL = no lapse date
    Column("admin", Boolean, nullable=False, default=False, server_default="0"),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

event_wal = Table(
    "event_wal",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("hook_name", Text, nullable=False),
    # Subject of the event; NULL for pool-wide events such as a sweep.
    Column("domain_id", Text),
    Column("uid", Integer),
    Column("payload", Text, nullable=False),  # JSON
    Column("status", Text, nullable=False),
    Column("error", Text),
    Column("retries", Integer, default=0, server_default="0"),
    Column("created", Text, nullable=False),
    Column("completed", Text),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_domains_expires_at", domains.c.expires_at)
Index("ix_domain_assignments_uid", domain_assignments.c.uid)
Index("ix_domain_assignments_domain_id", domain_assignments.c.domain_id)
Index("ix_event_wal_status", event_wal.c.status)
Index("ix_event_wal_domain_id", event_wal.c.domain_id)
