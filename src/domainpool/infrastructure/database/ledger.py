"""Assignment ledger storage adapter.

One row per active (uid, domain_id) claim. The caller owns the
transaction; pair every insert/delete here with the matching
:class:`Catalog` slot update in the same transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, select

from domainpool.domain.models import Assignment
from domainpool.infrastructure.database.schema import domain_assignments, domains
from domainpool.infrastructure.database.timestamps import from_db, to_db

if TYPE_CHECKING:
    from sqlalchemy import Connection, Row


def row_to_assignment(row: Row[Any]) -> Assignment:
    return Assignment(
        id=row.id,
        uid=row.uid,
        domain_id=row.domain_id,
        assigned_at=from_db(row.assigned_at),
        created_at=from_db(row.created_at),
        updated_at=from_db(row.updated_at),
    )


class Ledger:
    """Reads and writes ``domain_assignments`` rows."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get(self, uid: int, domain_id: str) -> Assignment | None:
        row = self._conn.execute(
            select(domain_assignments).where(
                domain_assignments.c.uid == uid,
                domain_assignments.c.domain_id == domain_id,
            )
        ).first()
        return row_to_assignment(row) if row is not None else None

    def for_user(self, uid: int) -> list[Assignment]:
        rows = self._conn.execute(
            select(domain_assignments)
            .where(domain_assignments.c.uid == uid)
            .order_by(domain_assignments.c.assigned_at, domain_assignments.c.id)
        ).fetchall()
        return [row_to_assignment(r) for r in rows]

    def count_for_user(self, uid: int) -> int:
        return int(
            self._conn.execute(
                select(func.count()).where(domain_assignments.c.uid == uid)
            ).scalar_one()
        )

    def for_domain(self, domain_id: str) -> list[Assignment]:
        rows = self._conn.execute(
            select(domain_assignments)
            .where(domain_assignments.c.domain_id == domain_id)
            .order_by(domain_assignments.c.id)
        ).fetchall()
        return [row_to_assignment(r) for r in rows]

    def count_by_domain(self) -> dict[str, int]:
        rows = self._conn.execute(
            select(domain_assignments.c.domain_id, func.count().label("n")).group_by(
                domain_assignments.c.domain_id
            )
        ).fetchall()
        return {row.domain_id: int(row.n) for row in rows}

    def orphans(self) -> list[Assignment]:
        """Assignments whose domain row is missing."""
        rows = self._conn.execute(
            select(domain_assignments).where(
                domain_assignments.c.domain_id.not_in(select(domains.c.id))
            )
        ).fetchall()
        return [row_to_assignment(r) for r in rows]

    def insert(self, uid: int, domain_id: str, now: datetime) -> Assignment:
        stamp = to_db(now)
        result = self._conn.execute(
            insert(domain_assignments).values(
                uid=uid,
                domain_id=domain_id,
                assigned_at=stamp,
                created_at=stamp,
                updated_at=stamp,
            )
        )
        assignment_id = result.inserted_primary_key[0]
        return Assignment(
            id=int(assignment_id),
            uid=uid,
            domain_id=domain_id,
            assigned_at=now,
            created_at=now,
            updated_at=now,
        )

    def delete(self, assignment_id: int) -> int:
        return self._conn.execute(
            delete(domain_assignments).where(domain_assignments.c.id == assignment_id)
        ).rowcount

    def delete_for_domain(self, domain_id: str) -> int:
        return self._conn.execute(
            delete(domain_assignments).where(domain_assignments.c.domain_id == domain_id)
        ).rowcount
