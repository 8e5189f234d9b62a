"""
core/db.py -- SQLAlchemy engine construction shared by every store.

Both auth/store.py and events/store.py are SQLAlchemy Core repositories. They
build their engines here so driver quirks live in one place:

  SQLite:      check_same_thread=False (FastAPI runs sync routes in a thread
               pool), a busy timeout, and WAL journal mode per connection.
  PostgreSQL / MySQL: connect_timeout so a dead server fails the request
               instead of hanging it.

Swapping SQLite for PostgreSQL is a DATABASE_URL change, not a rewrite.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'agenda.db'}"


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str, connect_timeout: int = 3) -> Engine:
    """Return an Engine for db_url with a bounded wait on connection."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = connect_timeout
    elif db_url.startswith(("postgresql", "mysql")):
        connect_args["connect_timeout"] = connect_timeout
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine
