"""
events/store.py -- SQLAlchemy Core persistence layer for calendar events.

Uses SQLAlchemy Core (not ORM) so the dataclasses in events/models.py remain
the authoritative domain representation.

Pattern: Repository + Data Mapper. EventStore is the repository; _row_to_event
is the mapper. Route handlers never touch SQL directly, and the scheduler only
talks to this class.

One event per date:
  The `date` column is UNIQUE. That constraint is the authoritative guard:
  two writers racing for the same date can both pass find_by_date(), but only
  one INSERT/UPDATE commits. The loser gets sqlalchemy.exc.IntegrityError,
  which events/scheduler.py translates into DateConflictError. This module
  lets IntegrityError propagate on purpose.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = EventStore()                                # SQLite default
    store = EventStore("postgresql://user:pw@host/db")  # PostgreSQL
    event_id = store.create_event(event)
    events = store.list_events(owner_id=3)
    store.close()
"""

from __future__ import annotations

import datetime
from typing import Optional

from sqlalchemy import Column, Date, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from core.db import DEFAULT_DB_URL, create_db_engine
from events.models import Event

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_events = Table(
    "events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("date", Date, nullable=False, unique=True),
    Column("time", String(50), nullable=False),
    Column("location", String(255), nullable=False),
    Column("description", Text),
    Column("category", String(30), nullable=False),
    Column("color", String(20), nullable=False),
    Column("owner_id", Integer, nullable=False, index=True),
    Column("created_by", String(255), nullable=False),  # owner name snapshot
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Columns an update may touch. Identity, ownership and created_at are fixed.
_MUTABLE_FIELDS = frozenset({"title", "date", "time", "location", "description", "category", "color"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class EventStore:
    def __init__(self, db_url: str = DEFAULT_DB_URL, connect_timeout: int = 3) -> None:
        self.engine: Engine = create_db_engine(db_url, connect_timeout)
        metadata.create_all(self.engine)

    def create_event(self, event: Event) -> int:
        """Insert a new event and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if an event already occupies
        event.date.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _events.insert().values(
                    title=event.title,
                    date=event.date,
                    time=event.time,
                    location=event.location,
                    description=event.description,
                    category=event.category,
                    color=event.color,
                    owner_id=event.owner_id,
                    created_by=event.created_by,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_id(self, event_id: int) -> Optional[Event]:
        """Look up an event by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_events.select().where(_events.c.id == event_id)).fetchone()
        return _row_to_event(row) if row is not None else None

    def find_by_date(self, date: datetime.date, exclude_id: Optional[int] = None) -> Optional[Event]:
        """Return the event scheduled on `date`, or None.

        exclude_id skips one record, so an event being updated never conflicts
        with itself.
        """
        query = _events.select().where(_events.c.date == date)
        if exclude_id is not None:
            query = query.where(_events.c.id != exclude_id)
        with self.engine.connect() as conn:
            row = conn.execute(query).fetchone()
        return _row_to_event(row) if row is not None else None

    def list_events(self, owner_id: Optional[int] = None) -> list[Event]:
        """Return events ordered by date, then by time string (both ascending).

        When owner_id is given, only that owner's events are returned.
        """
        query = _events.select()
        if owner_id is not None:
            query = query.where(_events.c.owner_id == owner_id)
        query = query.order_by(_events.c.date, _events.c.time, _events.c.id)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_event(r) for r in rows]

    def update_event(self, event_id: int, **fields) -> bool:
        """Update mutable fields on an existing event and stamp updated_at.

        Accepted fields: title, date, time, location, description, category,
        color. Unknown keys raise ValueError rather than being ignored.

        Returns True if a row was updated, False if event_id was not found.
        Raises sqlalchemy.exc.IntegrityError if the new date is taken.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown event fields: {unknown!r}")
        with self.engine.connect() as conn:
            result = conn.execute(
                _events.update().where(_events.c.id == event_id).values(updated_at=_now_iso(), **fields)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_event(self, event_id: int) -> bool:
        """Permanently delete an event. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_events.delete().where(_events.c.id == event_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_event(row) -> Event:
    return Event(
        id=row.id,
        title=row.title,
        date=row.date,
        time=row.time,
        location=row.location,
        description=row.description,
        category=row.category,
        color=row.color,
        owner_id=row.owner_id,
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
