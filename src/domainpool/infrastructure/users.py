"""User/premium-status collaborators.

The allocation engine never decides who is premium or admin; it asks a
:class:`UserDirectory`. Two implementations ship:

- :class:`TableUserDirectory` reads the local ``users`` table (managed by
  ``domainpool user set``). Premium is active while the flag is set and
  ``premium_until`` (if any) is still in the future.
- :class:`StaticUserDirectory` holds in-memory sets, for embedding the
  engine behind an existing account system and for tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import insert, select, update

from domainpool.infrastructure.database.schema import users
from domainpool.infrastructure.database.timestamps import from_db, to_db

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from domainpool.infrastructure.clock import Clock


class UserDirectory(Protocol):
    """Read-only facts about a user consumed by the engine."""

    def has_premium(self, uid: int) -> bool: ...

    def is_admin(self, uid: int) -> bool: ...


@dataclass(frozen=True)
class UserRecord:
    uid: int
    premium: bool
    premium_until: datetime | None
    admin: bool
    created_at: datetime
    updated_at: datetime

    def premium_active(self, now: datetime) -> bool:
        if not self.premium:
            return False
        return self.premium_until is None or now < self.premium_until


def fetch_user(conn: Connection, uid: int) -> UserRecord | None:
    row = conn.execute(select(users).where(users.c.uid == uid)).first()
    if row is None:
        return None
    return UserRecord(
        uid=row.uid,
        premium=bool(row.premium),
        premium_until=from_db(row.premium_until) if row.premium_until else None,
        admin=bool(row.admin),
        created_at=from_db(row.created_at),
        updated_at=from_db(row.updated_at),
    )


def upsert_user(
    conn: Connection,
    uid: int,
    now: datetime,
    *,
    premium: bool | None = None,
    premium_until: datetime | None = None,
    clear_premium_until: bool = False,
    admin: bool | None = None,
) -> UserRecord:
    """Create or update a ``users`` row; unspecified fields keep their value."""
    existing = fetch_user(conn, uid)
    values: dict[str, object] = {"updated_at": to_db(now)}
    if premium is not None:
        values["premium"] = premium
    if premium_until is not None:
        values["premium_until"] = to_db(premium_until)
    elif clear_premium_until:
        values["premium_until"] = None
    if admin is not None:
        values["admin"] = admin

    if existing is None:
        values.setdefault("premium", False)
        values.setdefault("admin", False)
        conn.execute(insert(users).values(uid=uid, created_at=to_db(now), **values))
    else:
        conn.execute(update(users).where(users.c.uid == uid).values(**values))

    record = fetch_user(conn, uid)
    assert record is not None
    return record


class TableUserDirectory:
    """UserDirectory backed by the ``users`` table. Unknown users are standard, non-admin."""

    def __init__(self, engine: Engine, clock: Clock) -> None:
        self._engine = engine
        self._clock = clock

    def get(self, uid: int) -> UserRecord | None:
        with self._engine.connect() as conn:
            return fetch_user(conn, uid)

    def has_premium(self, uid: int) -> bool:
        record = self.get(uid)
        return record is not None and record.premium_active(self._clock.now())

    def is_admin(self, uid: int) -> bool:
        record = self.get(uid)
        return record is not None and record.admin


@dataclass
class StaticUserDirectory:
    """In-memory UserDirectory."""

    premium: set[int] = field(default_factory=set)
    admins: set[int] = field(default_factory=set)

    def has_premium(self, uid: int) -> bool:
        return uid in self.premium

    def is_admin(self, uid: int) -> bool:
        return uid in self.admins

    def grant_premium(self, uid: int) -> None:
        self.premium.add(uid)

    def revoke_premium(self, uid: int) -> None:
        self.premium.discard(uid)
