"""Database engine setup.

SQLite (the default) runs in WAL mode so snapshot reads never block the
writer. pysqlite's implicit transaction handling is disabled and BEGIN is
emitted by us: write transactions request ``BEGIN IMMEDIATE`` through the
``domainpool_immediate`` execution option, which takes the database write
lock up front and serialises every allocation. Other backends run at
SERIALIZABLE isolation.

SQLAlchemy Core (not ORM) is used throughout.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine, make_url

from domainpool.infrastructure.database.schema import metadata

IMMEDIATE_OPTION = "domainpool_immediate"
DATA_DIRNAME = ".domainpool"
DB_FILENAME = "domainpool.db"


def default_db_path(root: Path) -> Path:
    return root / DATA_DIRNAME / DB_FILENAME


def is_sqlite(engine: Engine) -> bool:
    return engine.dialect.name == "sqlite"


def create_db_engine(db_url: str, *, busy_timeout: float = 5.0) -> Engine:
    """Create an engine for *db_url* with the transaction semantics described above."""
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, isolation_level="SERIALIZABLE", pool_pre_ping=True)

    # Connections are pooled and handed across threads (event bus workers).
    engine = create_engine(
        url,
        echo=False,
        connect_args={"timeout": busy_timeout, "check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(conn: Connection) -> None:
        immediate = conn.get_execution_options().get(IMMEDIATE_OPTION, False)
        conn.exec_driver_sql("BEGIN IMMEDIATE" if immediate else "BEGIN")

    return engine


def init_database(db_url: str, *, busy_timeout: float = 5.0) -> Engine:
    """Create all tables from :data:`schema.metadata` on *db_url*.

    For file-backed SQLite the parent directory (``.domainpool/``) and its
    ``backups/`` subdirectory are created first.

    Idempotent: safe to call on an existing database.
    """
    url = make_url(db_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        db_dir = Path(url.database).parent
        db_dir.mkdir(parents=True, exist_ok=True)
        (db_dir / "backups").mkdir(exist_ok=True)

    engine = create_db_engine(db_url, busy_timeout=busy_timeout)
    metadata.create_all(engine)
    return engine
