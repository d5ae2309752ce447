"""Domain catalog storage adapter.

Operates on a caller-owned ``Connection`` so every read and write joins
the surrounding transaction (same contract as the ledger). Usage counter
writes are compare-and-swap statements: the capacity predicate lives in
the UPDATE's WHERE clause, so a stale read can never push
``current_usage`` past ``max_usage``.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import case, delete, insert, or_, select, update

from domainpool.domain.models import Domain
from domainpool.infrastructure.database.schema import domains
from domainpool.infrastructure.database.timestamps import from_db, to_db

if TYPE_CHECKING:
    from sqlalchemy import Connection, Row


def row_to_domain(row: Row[Any]) -> Domain:
    return Domain(
        id=row.id,
        name=row.name,
        only_premium=bool(row.only_premium),
        max_usage=row.max_usage,
        current_usage=row.current_usage,
        expires_at=from_db(row.expires_at),
        created_at=from_db(row.created_at),
        updated_at=from_db(row.updated_at),
    )


class Catalog:
    """Reads and writes ``domains`` rows."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, domain_id: str, *, for_update: bool = False) -> Domain | None:
        """Fetch one domain. *for_update* row-locks it on backends that support it."""
        stmt = select(domains).where(domains.c.id == domain_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = self._conn.execute(stmt).first()
        return row_to_domain(row) if row is not None else None

    def get_by_name(self, name: str) -> Domain | None:
        row = self._conn.execute(select(domains).where(domains.c.name == name)).first()
        return row_to_domain(row) if row is not None else None

    def get_many(self, domain_ids: Iterable[str]) -> dict[str, Domain]:
        ids = list(domain_ids)
        if not ids:
            return {}
        rows = self._conn.execute(select(domains).where(domains.c.id.in_(ids))).fetchall()
        return {row.id: row_to_domain(row) for row in rows}

    def conflicting(self, domain_id: str, name: str) -> Domain | None:
        """Return an existing domain sharing *domain_id* or *name*, if any."""
        row = self._conn.execute(
            select(domains).where(or_(domains.c.id == domain_id, domains.c.name == name))
        ).first()
        return row_to_domain(row) if row is not None else None

    def list_all(self) -> list[Domain]:
        rows = self._conn.execute(select(domains).order_by(domains.c.name)).fetchall()
        return [row_to_domain(r) for r in rows]

    def list_open(self, now: datetime, *, include_premium: bool) -> list[Domain]:
        """Unexpired, non-full domains; premium-only ones only if *include_premium*."""
        stmt = select(domains).where(
            domains.c.expires_at > to_db(now),
            or_(domains.c.max_usage == 0, domains.c.current_usage < domains.c.max_usage),
        )
        if not include_premium:
            stmt = stmt.where(domains.c.only_premium.is_(False))
        rows = self._conn.execute(stmt.order_by(domains.c.name)).fetchall()
        return [row_to_domain(r) for r in rows]

    def list_expired(self, now: datetime) -> list[Domain]:
        rows = self._conn.execute(
            select(domains).where(domains.c.expires_at <= to_db(now)).order_by(domains.c.id)
        ).fetchall()
        return [row_to_domain(r) for r in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, domain: Domain) -> None:
        self._conn.execute(
            insert(domains).values(
                id=domain.id,
                name=domain.name,
                only_premium=domain.only_premium,
                max_usage=domain.max_usage,
                current_usage=domain.current_usage,
                expires_at=to_db(domain.expires_at),
                created_at=to_db(domain.created_at),
                updated_at=to_db(domain.updated_at),
            )
        )

    def claim_slot(self, domain_id: str, now: datetime) -> bool:
        """Increment ``current_usage`` by one iff the domain has a free slot.

        Returns False (and writes nothing) when the domain is full.
        """
        result = self._conn.execute(
            update(domains)
            .where(
                domains.c.id == domain_id,
                or_(domains.c.max_usage == 0, domains.c.current_usage < domains.c.max_usage),
            )
            .values(current_usage=domains.c.current_usage + 1, updated_at=to_db(now))
        )
        return result.rowcount == 1

    def release_slot(self, domain_id: str, now: datetime) -> bool:
        """Decrement ``current_usage`` by one, clamped at zero.

        Returns False if the domain row no longer exists.
        """
        result = self._conn.execute(
            update(domains)
            .where(domains.c.id == domain_id)
            .values(
                current_usage=case(
                    (domains.c.current_usage > 0, domains.c.current_usage - 1),
                    else_=0,
                ),
                updated_at=to_db(now),
            )
        )
        return result.rowcount == 1

    def set_usage(self, domain_id: str, usage: int, now: datetime) -> None:
        self._conn.execute(
            update(domains)
            .where(domains.c.id == domain_id)
            .values(current_usage=usage, updated_at=to_db(now))
        )

    def update_fields(self, domain_id: str, values: dict[str, Any], now: datetime) -> None:
        """Apply admin field changes. ``expires_at`` may be a datetime."""
        encoded = dict(values)
        if isinstance(encoded.get("expires_at"), datetime):
            encoded["expires_at"] = to_db(encoded["expires_at"])
        encoded["updated_at"] = to_db(now)
        self._conn.execute(update(domains).where(domains.c.id == domain_id).values(**encoded))

    def delete(self, domain_id: str) -> int:
        return self._conn.execute(delete(domains).where(domains.c.id == domain_id)).rowcount
