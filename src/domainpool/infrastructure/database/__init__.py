"""Database engine, schema, and catalog/ledger adapters via SQLAlchemy Core."""

from domainpool.infrastructure.database.catalog import Catalog
from domainpool.infrastructure.database.engine import create_db_engine, init_database
from domainpool.infrastructure.database.ledger import Ledger
from domainpool.infrastructure.database.schema import (
    domain_assignments,
    domains,
    event_wal,
    metadata,
    users,
)

__all__ = [
    "Catalog",
    "Ledger",
    "create_db_engine",
    "domain_assignments",
    "domains",
    "event_wal",
    "init_database",
    "metadata",
    "users",
]
