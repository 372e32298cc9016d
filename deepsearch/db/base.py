from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

# Seconds a writer waits for another writer's lock before failing
BUSY_TIMEOUT = 30.0


def _on_connect(dbapi_connection, connection_record) -> None:
    # Hand transaction control to SQLAlchemy so reads made inside
    # session.begin() share the same SQLite transaction as the writes.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    # WAL lets readers keep seeing the last committed snapshot during a replace
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_begin(conn) -> None:
    mode = conn.get_execution_options().get("sqlite_begin")
    conn.exec_driver_sql(f"BEGIN {mode}" if mode else "BEGIN")


def get_engine(db_path: Path) -> Engine:
    """Create a SQLite engine for the given DB path.

    Uses check_same_thread=False to allow access from worker threads.
    Ensures parent directory exists.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db_url = f"sqlite+pysqlite:///{db_path}"
    engine = create_engine(
        db_url,
        connect_args={"check_same_thread": False, "timeout": BUSY_TIMEOUT},
    )
    event.listen(engine, "connect", _on_connect)
    event.listen(engine, "begin", _on_begin)
    return engine


@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Context manager yielding a SQLAlchemy Session bound to engine."""
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()


@contextmanager
def write_transaction(engine: Engine) -> Iterator[Session]:
    """Session inside one `BEGIN IMMEDIATE` transaction.

    The write lock is taken before the first read, so concurrent writers
    queue up on the busy timeout instead of failing when they upgrade from
    a read snapshot. Commits on success, rolls back on error.
    """
    with get_session(engine) as session, session.begin():
        session.connection(execution_options={"sqlite_begin": "IMMEDIATE"})
        yield session
